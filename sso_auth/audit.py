"""
Audit trail for authentication attempts.

Handlers and the handler chain report every outcome here. Events are stored
in memory and mirrored to the standard logger, so a deployment that only
configures logging still gets a record of who authenticated with what.
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from .models import Credential, Principal

logger = logging.getLogger(__name__)


class AuditEventType(str, Enum):
    """Types of audit events for authentication"""

    AUTHENTICATION_SUCCESS = "authentication_success"
    AUTHENTICATION_FAILURE = "authentication_failure"
    UNSUPPORTED_CREDENTIAL = "unsupported_credential"
    HANDLER_RETRY = "handler_retry"


class SecurityLevel(str, Enum):
    """Security levels for audit events"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AuditEvent(BaseModel):
    """Audit event model"""

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: AuditEventType
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    credential_id: Optional[str] = None
    credential_type: Optional[str] = None
    handler_name: Optional[str] = None
    principal_id: Optional[str] = None
    failure_kind: Optional[str] = None

    message: str
    details: Optional[dict[str, Any]] = None
    security_level: SecurityLevel = SecurityLevel.LOW


class AuditStorage:
    """In-memory storage for audit events"""

    def __init__(self):
        self.events: list[AuditEvent] = []
        self._lock = None  # created lazily inside a running loop
        self._principal_index: dict[str, list[int]] = defaultdict(list)
        self._event_type_index: dict[AuditEventType, list[int]] = defaultdict(list)

    def _ensure_lock(self):
        if self._lock is None:
            self._lock = asyncio.Lock()

    async def store_event(self, event: AuditEvent) -> str:
        """Store an audit event"""
        self._ensure_lock()
        async with self._lock:
            event_index = len(self.events)
            self.events.append(event)
            if event.principal_id:
                self._principal_index[event.principal_id].append(event_index)
            self._event_type_index[event.event_type].append(event_index)
            return event.event_id

    async def query_events(
        self,
        event_type: Optional[AuditEventType] = None,
        principal_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Query audit events, newest first"""
        self._ensure_lock()
        async with self._lock:
            indices = set(range(len(self.events)))
            if event_type is not None:
                indices &= set(self._event_type_index.get(event_type, []))
            if principal_id is not None:
                indices &= set(self._principal_index.get(principal_id, []))
            return [self.events[i] for i in sorted(indices, reverse=True)][:limit]


class AuditLogger:
    """High-level audit logging interface"""

    def __init__(self, storage: AuditStorage = None):
        self.storage = storage or AuditStorage()

    async def log_event(
        self,
        event_type: AuditEventType,
        message: str,
        credential: Optional[Credential] = None,
        principal: Optional[Principal] = None,
        **kwargs,
    ) -> str:
        """Log an audit event with credential and principal context"""
        event = AuditEvent(
            event_type=event_type,
            message=message,
            credential_id=credential.id if credential is not None else None,
            credential_type=type(credential).__name__ if credential is not None else None,
            principal_id=principal.id if principal else None,
            **kwargs,
        )

        event_id = await self.storage.store_event(event)

        log_level = {
            SecurityLevel.LOW: logging.INFO,
            SecurityLevel.MEDIUM: logging.WARNING,
            SecurityLevel.HIGH: logging.ERROR,
        }.get(event.security_level, logging.INFO)

        logger.log(
            log_level,
            f"AUDIT: {event_type.value} - {message}",
            extra={
                "event_id": event_id,
                "principal_id": event.principal_id,
                "event_type": event_type.value,
                "security_level": event.security_level.value,
            },
        )

        return event_id

    async def log_authentication_success(
        self, credential: Credential, principal: Principal, handler_name: str
    ) -> str:
        return await self.log_event(
            AuditEventType.AUTHENTICATION_SUCCESS,
            f"{handler_name} authenticated {principal.id}",
            credential=credential,
            principal=principal,
            handler_name=handler_name,
        )

    async def log_authentication_failure(
        self,
        credential: Credential,
        failure_kind: str,
        description: str,
        handler_name: Optional[str] = None,
    ) -> str:
        if failure_kind == "unsupported_credential":
            event_type = AuditEventType.UNSUPPORTED_CREDENTIAL
        else:
            event_type = AuditEventType.AUTHENTICATION_FAILURE
        return await self.log_event(
            event_type,
            description,
            credential=credential,
            handler_name=handler_name,
            failure_kind=failure_kind,
            security_level=SecurityLevel.MEDIUM,
        )


# Global audit logger
audit_logger = AuditLogger()


def get_audit_logger() -> AuditLogger:
    """Get the global audit logger instance"""
    return audit_logger
