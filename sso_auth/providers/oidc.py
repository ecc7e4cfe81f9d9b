import asyncio
import logging
import time
from typing import Any, Mapping, Optional

import httpx
import requests
from jose import JWTError, jwt

from ..models import ProviderProfile, WebContext
from .base import IdentityProvider, ProviderError

logger = logging.getLogger(__name__)

# Registered claims that describe the token rather than the user
TOKEN_CLAIMS = ("exp", "iat", "nbf", "jti", "aud", "iss", "at_hash", "nonce")


class JWKSCache:
    def __init__(self, url: str, ttl: int = 3600, timeout: float = 5.0):
        self.url = url
        self.ttl = ttl
        self.timeout = timeout
        self._keys = None
        self._fetched = 0

    def _fresh(self) -> bool:
        return self._keys is not None and time.time() - self._fetched <= self.ttl

    def get_jwks(self):
        """Synchronous JWKS fetch (blocking)."""
        if not self._fresh():
            resp = requests.get(self.url, timeout=self.timeout)
            resp.raise_for_status()
            self._keys = resp.json()
            self._fetched = time.time()
        return self._keys

    async def get_jwks_async(self):
        """Async JWKS fetch using httpx."""
        if not self._fresh():
            async with httpx.AsyncClient() as client:
                resp = await client.get(self.url, timeout=self.timeout)
                resp.raise_for_status()
            self._keys = resp.json()
            self._fetched = time.time()
        return self._keys


def get_jwks_url_from_well_known(well_known_url: str, timeout: float = 5.0) -> str:
    resp = requests.get(well_known_url, timeout=timeout)
    resp.raise_for_status()
    jwks_uri = resp.json().get("jwks_uri")
    if not jwks_uri:
        raise RuntimeError("jwks_uri not found in well-known config")
    return jwks_uri


class OIDCIdentityProvider(IdentityProvider):
    """Identity provider that verifies OpenID Connect ID tokens.

    Config options:
        - well_known: OpenID configuration URL used to discover the JWKS URL
        - jwks_url: JWKS URL, takes precedence over well_known
        - audience: expected audience (client ID); not enforced when omitted
        - issuer: expected issuer; not enforced when omitted
        - algorithms: accepted signing algorithms (default RS256)
        - id_claim: claim holding the user id (default sub)

    The delegated credentials are either the raw ID token or a mapping with an
    ``id_token`` entry.
    """

    def __init__(self, config: Optional[dict] = None, name: str = "oidc"):
        self.config = config or {}
        self.name = name
        self._jwks_cache: Optional[JWKSCache] = None
        if self.config.get("jwks_url"):
            self._jwks_cache = JWKSCache(self.config["jwks_url"])

    async def _get_jwks_cache(self) -> JWKSCache:
        if self._jwks_cache is not None:
            return self._jwks_cache
        well_known = self.config.get("well_known")
        if not well_known:
            raise ProviderError(
                "OIDCIdentityProvider requires 'well_known' or 'jwks_url' in config",
                code="misconfigured",
                transient=True,
            )
        # discovery uses the blocking client; keep it off the event loop
        loop = asyncio.get_event_loop()
        jwks_url = await loop.run_in_executor(None, get_jwks_url_from_well_known, well_known)
        self._jwks_cache = JWKSCache(jwks_url)
        return self._jwks_cache

    @staticmethod
    def _extract_token(credentials: Any) -> Optional[str]:
        if isinstance(credentials, str):
            return credentials
        if isinstance(credentials, Mapping):
            return credentials.get("id_token")
        return None

    async def get_user_profile(
        self, credentials: Any, context: Optional[WebContext]
    ) -> Optional[ProviderProfile]:
        token = self._extract_token(credentials)
        if not token:
            raise ProviderError("No ID token in credentials", code="invalid_request")

        try:
            cache = await self._get_jwks_cache()
            jwks = await cache.get_jwks_async()
        except (httpx.HTTPError, requests.RequestException, RuntimeError) as e:
            raise ProviderError(f"JWKS unavailable: {e}", code="jwks_unavailable", transient=True)

        audience = self.config.get("audience")
        try:
            claims = jwt.decode(
                token,
                jwks,
                algorithms=self.config.get("algorithms", ["RS256"]),
                options={"verify_aud": bool(audience)},
                audience=audience if audience else None,
                issuer=self.config.get("issuer"),
            )
        except JWTError as e:
            raise ProviderError(str(e), code="invalid_token")

        user_id = claims.get(self.config.get("id_claim", "sub"))
        if not user_id:
            logger.debug("ID token carries no %s claim", self.config.get("id_claim", "sub"))
            return None

        attributes = {k: v for k, v in claims.items() if k not in TOKEN_CLAIMS}
        return ProviderProfile.for_provider(self.name, str(user_id), attributes)
