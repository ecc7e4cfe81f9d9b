"""
Handler chain: routes one credential to the handler that owns it.

Handlers are tried in registration order and the first one whose ``supports``
returns True is the only one allowed to authenticate the credential. In
``permissive`` dispatch mode a handler that reports the backend as unavailable
hands over to the next supporting handler; every other failure is final.

Example:
    >>> chain = AuthenticationHandlerChain(
    ...     [AcceptUsersAuthenticationHandler(users), DelegatedAuthenticationHandler(registry)]
    ... )
    >>> outcome = await chain.resolve(ClientCredential("github", "gho_..."), context)
    >>> outcome.principal.id
    'github:octocat'
"""

import asyncio
import logging
from typing import Iterable, Optional, Union

from .audit import AuditEventType, AuditLogger
from .handlers.base import AuthenticationHandler, AuthFailure, AuthOutcome, FailureKind
from .models import Credential, WebContext
from .settings import DispatchMode

logger = logging.getLogger(__name__)


class AuthenticationHandlerChain:
    """Ordered, read-only set of authentication handlers."""

    def __init__(
        self,
        handlers: Iterable[AuthenticationHandler],
        dispatch_mode: Union[DispatchMode, str] = DispatchMode.STRICT,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.handlers = tuple(handlers)
        self.dispatch_mode = DispatchMode(dispatch_mode)
        self.audit_logger = audit_logger
        self._validate()

    def _validate(self) -> None:
        """
        Reject handler sets that make credential ownership ambiguous.

        Raises:
            ValueError: On duplicate handler names, or, in strict mode, when two
                handlers declare overlapping credential types.
        """
        seen = set()
        for handler in self.handlers:
            if handler.name in seen:
                raise ValueError(f"Duplicate authentication handler name: {handler.name}")
            seen.add(handler.name)

        if self.dispatch_mode is not DispatchMode.STRICT:
            return
        for i, first in enumerate(self.handlers):
            for second in self.handlers[i + 1 :]:
                for a in first.credential_types:
                    for b in second.credential_types:
                        if issubclass(a, b) or issubclass(b, a):
                            raise ValueError(
                                f"Handlers {first.name} and {second.name} both claim "
                                f"{a.__name__}; use permissive dispatch or remove one"
                            )

    @property
    def handler_names(self) -> list[str]:
        return [handler.name for handler in self.handlers]

    async def resolve(
        self, credential: Credential, context: Optional[WebContext] = None
    ) -> AuthOutcome:
        """
        Authenticate a credential with the first handler that supports it.

        Args:
            credential: The credential to verify.
            context: Request/response exchange forwarded to the handler.

        Returns:
            The successful outcome, or the terminal failure.

        Raises:
            HandlerContractViolation: If a handler breaks the supports/authenticate
                contract. This is never reported as an authentication failure.
        """
        last_failure: Optional[AuthFailure] = None

        for handler in self.handlers:
            if not handler.supports(credential):
                continue

            if last_failure is not None:
                logger.info(
                    "Retrying %r with %s after %s", credential, handler.name, last_failure.handler_name
                )
                if self.audit_logger:
                    await self.audit_logger.log_event(
                        AuditEventType.HANDLER_RETRY,
                        f"{last_failure.handler_name} unavailable, trying {handler.name}",
                        credential=credential.redacted(),
                        handler_name=handler.name,
                        failure_kind=last_failure.kind.value,
                    )

            outcome = await handler.authenticate(credential, context)
            if outcome.valid:
                return outcome

            last_failure = outcome.failure
            if self.dispatch_mode is DispatchMode.STRICT or not last_failure.transient:
                return outcome

        if last_failure is not None:
            logger.warning(
                "All handlers supporting %r are unavailable: %s", credential, last_failure.description
            )
            return AuthOutcome.failed(last_failure)

        description = f"No authentication handler supports {type(credential).__name__}"
        logger.warning(description)
        if self.audit_logger:
            await self.audit_logger.log_authentication_failure(
                credential.redacted() if isinstance(credential, Credential) else None,
                FailureKind.UNSUPPORTED_CREDENTIAL.value,
                description,
            )
        return AuthOutcome.failed(
            AuthFailure(kind=FailureKind.UNSUPPORTED_CREDENTIAL, description=description)
        )

    def resolve_sync(
        self, credential: Credential, context: Optional[WebContext] = None
    ) -> AuthOutcome:
        """Sync wrapper for `resolve`."""
        return asyncio.run(self.resolve(credential, context))
