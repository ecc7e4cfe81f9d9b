"""Username/password authentication against a configured set of bcrypt hashes."""

import logging
from typing import Callable, Mapping, Optional

import bcrypt

from ..audit import AuditLogger
from ..models import Principal, UsernamePasswordCredential, WebContext
from .base import (
    AuthenticationHandler,
    BackendUnavailableError,
    CredentialRejectedError,
    MalformedCredentialError,
)

logger = logging.getLogger(__name__)

# Default bcrypt cost factor (2^12 = 4096 iterations)
BCRYPT_COST_FACTOR = 12
# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_PASSWORD_BYTES = 72


def hash_password(password: str, cost_factor: int = BCRYPT_COST_FACTOR) -> str:
    """Hash a password using bcrypt.

    Args:
        password: The raw password to hash
        cost_factor: bcrypt cost factor (default: 12)

    Returns:
        The bcrypt hash string
    """
    salt = bcrypt.gensalt(rounds=cost_factor)
    return bcrypt.hashpw(password.encode(), salt).decode()


class AcceptUsersAuthenticationHandler(AuthenticationHandler):
    """Accepts users whose password matches the configured bcrypt hash.

    ``principal_name_transformer`` normalizes the username (e.g. ``str.lower``)
    before lookup; the transformed name becomes the principal id.
    """

    credential_types = (UsernamePasswordCredential,)

    def __init__(
        self,
        users: Mapping[str, str],
        principal_name_transformer: Optional[Callable[[str], str]] = None,
        name: Optional[str] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(name=name, audit_logger=audit_logger)
        self.users = dict(users)
        self.principal_name_transformer = principal_name_transformer

    async def do_authenticate(
        self, credential: UsernamePasswordCredential, context: Optional[WebContext]
    ):
        if not credential.username or not credential.username.strip():
            raise MalformedCredentialError("Username is blank")
        if not credential.password:
            raise MalformedCredentialError("Password is blank")

        username = credential.username.strip()
        if self.principal_name_transformer:
            username = self.principal_name_transformer(username)

        password_hash = self.users.get(username)
        if password_hash is None:
            raise CredentialRejectedError(f"{username} not found in accepted users")

        password = credential.password.encode()
        if len(password) > BCRYPT_MAX_PASSWORD_BYTES:
            raise CredentialRejectedError(
                f"Password for {username} exceeds {BCRYPT_MAX_PASSWORD_BYTES} bytes"
            )

        try:
            matched = bcrypt.checkpw(password, password_hash.encode())
        except ValueError:
            # bcrypt raises on a malformed stored hash
            logger.error("Stored password hash for %s is invalid", username)
            raise BackendUnavailableError(f"Password store entry for {username} is invalid")

        if not matched:
            raise CredentialRejectedError(f"Password mismatch for {username}")
        return self.create_result(credential, Principal(id=username))
