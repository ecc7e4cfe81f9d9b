import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..audit import AuditLogger
from ..models import (
    Credential,
    CredentialMetaData,
    HandlerResult,
    Principal,
    WebContext,
)

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    UNSUPPORTED_CREDENTIAL = "unsupported_credential"
    MALFORMED = "malformed"
    REJECTED = "rejected"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class AuthFailure:
    kind: FailureKind
    description: str
    handler_name: Optional[str] = None

    @property
    def transient(self) -> bool:
        return self.kind is FailureKind.UNAVAILABLE


@dataclass(frozen=True)
class AuthOutcome:
    """Either a HandlerResult or an AuthFailure, never both."""

    valid: bool
    result: Optional[HandlerResult] = None
    failure: Optional[AuthFailure] = None

    @classmethod
    def success(cls, result: HandlerResult) -> "AuthOutcome":
        return cls(valid=True, result=result)

    @classmethod
    def failed(cls, failure: AuthFailure) -> "AuthOutcome":
        return cls(valid=False, failure=failure)

    @property
    def principal(self) -> Optional[Principal]:
        return self.result.principal if self.result else None


class AuthenticationError(Exception):
    """Raised inside a handler to report a typed authentication failure."""

    kind: FailureKind = FailureKind.REJECTED

    def __init__(self, message: str, kind: Optional[FailureKind] = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class MalformedCredentialError(AuthenticationError):
    kind = FailureKind.MALFORMED


class CredentialRejectedError(AuthenticationError):
    kind = FailureKind.REJECTED


class BackendUnavailableError(AuthenticationError):
    kind = FailureKind.UNAVAILABLE


class HandlerContractViolation(RuntimeError):
    """A handler was asked to authenticate a credential it does not support.

    This is a wiring defect and must never be turned into an AuthFailure.
    """


class AuthenticationHandler(ABC):
    """Verifies one or more credential variants.

    Subclasses declare ``credential_types`` and implement ``do_authenticate``.
    ``authenticate`` wraps it with the pre/post processing steps and converts
    ``AuthenticationError`` into an ``AuthOutcome`` failure.
    """

    credential_types: tuple = ()

    def __init__(self, name: Optional[str] = None, audit_logger: Optional[AuditLogger] = None):
        self._name = name
        self.audit_logger = audit_logger

    @property
    def name(self) -> str:
        return self._name or type(self).__name__

    def supports(self, credential: Credential) -> bool:
        return credential is not None and isinstance(credential, self.credential_types)

    async def pre_authenticate(self, credential: Credential) -> bool:
        """Hook run before verification; returning False rejects the credential."""
        return True

    async def post_authenticate(
        self, credential: Credential, result: HandlerResult
    ) -> HandlerResult:
        return result

    @abstractmethod
    async def do_authenticate(
        self, credential: Credential, context: Optional[WebContext]
    ) -> HandlerResult:
        """Verify the credential and return a HandlerResult or raise AuthenticationError."""
        raise NotImplementedError()

    async def authenticate(
        self, credential: Credential, context: Optional[WebContext] = None
    ) -> AuthOutcome:
        if not self.supports(credential):
            raise HandlerContractViolation(
                f"{self.name} does not support {type(credential).__name__}"
            )

        try:
            if not await self.pre_authenticate(credential):
                raise CredentialRejectedError(f"Pre-authentication failed for {credential.id}")
            result = await self.do_authenticate(credential, context)
            result = await self.post_authenticate(credential, result)
        except AuthenticationError as e:
            failure = AuthFailure(kind=e.kind, description=str(e), handler_name=self.name)
            logger.info("%s failed to authenticate %r: %s (%s)", self.name, credential, e, e.kind.value)
            if self.audit_logger:
                await self.audit_logger.log_authentication_failure(
                    credential.redacted(), e.kind.value, str(e), handler_name=self.name
                )
            return AuthOutcome.failed(failure)

        logger.info("%s authenticated %r as %s", self.name, credential, result.principal.id)
        if self.audit_logger:
            await self.audit_logger.log_authentication_success(
                credential.redacted(), result.principal, self.name
            )
        return AuthOutcome.success(result)

    def authenticate_sync(
        self, credential: Credential, context: Optional[WebContext] = None
    ) -> AuthOutcome:
        """Sync wrapper for `authenticate`."""
        return asyncio.run(self.authenticate(credential, context))

    def create_result(
        self, credential: Credential, principal: Principal
    ) -> HandlerResult:
        return HandlerResult(
            handler=self,
            metadata=CredentialMetaData.from_credential(credential),
            principal=principal,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"
