import logging
from typing import Optional, Sequence

from jose import ExpiredSignatureError, JWTError, jwt

from ..audit import AuditLogger
from ..models import Principal, TokenCredential, WebContext
from .base import AuthenticationHandler, CredentialRejectedError, MalformedCredentialError

logger = logging.getLogger(__name__)


class JWTAuthenticationHandler(AuthenticationHandler):
    """Verifies locally issued JWTs; the claims become principal attributes."""

    credential_types = (TokenCredential,)

    def __init__(
        self,
        secret: str,
        algorithms: Sequence[str] = ("HS256",),
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
        name: Optional[str] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(name=name, audit_logger=audit_logger)
        self.secret = secret
        self.algorithms = list(algorithms)
        self.issuer = issuer
        self.audience = audience

    async def do_authenticate(self, credential: TokenCredential, context: Optional[WebContext]):
        token = credential.token.strip() if credential.token else ""
        if not token or token.count(".") != 2:
            raise MalformedCredentialError("Token is not a compact JWT")

        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=self.algorithms,
                options={"verify_aud": bool(self.audience)},
                audience=self.audience,
                issuer=self.issuer,
            )
        except ExpiredSignatureError:
            raise CredentialRejectedError("Token has expired")
        except JWTError as e:
            raise CredentialRejectedError(f"Invalid token: {e}")

        principal_id = claims.get("sub") or claims.get("email")
        if not principal_id or not str(principal_id).strip():
            raise CredentialRejectedError("Token carries no subject")
        return self.create_result(credential, Principal(id=str(principal_id), attributes=claims))
