"""
Configuration settings for sso-auth-py.

This module defines the configuration schema using Pydantic settings,
supporting environment variables, .env files, and direct configuration.
"""

import codecs
import warnings
from enum import Enum
from typing import Any, Optional

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class IdentityMode(str, Enum):
    """Which provider identifier becomes the principal id"""

    TYPED = "typed"
    BARE = "bare"


class DispatchMode(str, Enum):
    """How many handlers may attempt one credential"""

    STRICT = "strict"
    PERMISSIVE = "permissive"


WEAK_SECRETS = ["secret", "password", "supersecret", "jwt_secret", "change_me"]


class Settings(BaseSettings):
    """
    Configuration settings for the authentication handler chain.

    Environment Variable Mapping:
        All settings can be configured via environment variables by prefixing
        with 'SSO_AUTH_' (e.g. SSO_AUTH_DISPATCH_MODE, SSO_AUTH_IDENTITY_MODE).

    Example:
        Delegated authentication against GitHub with bare identifiers:

        >>> settings = Settings(
        ...     identity_mode="bare",
        ...     provider_config={"github": {}},
        ... )
    """

    # Handler chain
    dispatch_mode: DispatchMode = Field(
        default=DispatchMode.STRICT,
        description="'strict': one handler per credential; 'permissive': retry on unavailable",
    )

    # Delegated authentication
    identity_mode: IdentityMode = Field(
        default=IdentityMode.TYPED,
        description="'typed': provider-namespaced id; 'bare': raw provider id",
    )
    provider_timeout_seconds: float = Field(
        default=10.0, description="Upper bound for one identity provider call"
    )
    provider_config: Optional[dict[str, dict[str, Any]]] = None
    """
    Identity providers to register, keyed by provider name.

    Recognized providers:
        - 'oidc': well_known or jwks_url, audience, issuer, algorithms
        - 'github': api_base_url
    """

    # Local password authentication: username -> bcrypt hash
    accepted_users: Optional[dict[str, str]] = None
    lowercase_usernames: bool = False

    # Token authentication
    jwt_secret: Optional[str] = Field(
        default=None, description="Secret for JWT verification; disables the token handler when unset"
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    token_issuer: Optional[str] = None
    token_audience: Optional[str] = None

    # Legacy validation failure response
    failure_response_encoding: str = Field(
        default="UTF-8",
        description="Charset declared by the failure response header and XML declaration",
    )

    debug: bool = False

    model_config = ConfigDict(
        env_file=".env", env_prefix="SSO_AUTH_", case_sensitive=False, extra="forbid"
    )

    def get_provider_config(self, name: str) -> dict[str, Any]:
        return dict((self.provider_config or {}).get(name) or {})

    def validate_configuration(self) -> None:
        """
        Validate the current configuration for common issues.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self.provider_timeout_seconds <= 0:
            raise ValueError("provider_timeout_seconds must be positive")

        try:
            codecs.lookup(self.failure_response_encoding)
        except LookupError:
            raise ValueError(
                f"Unknown failure_response_encoding '{self.failure_response_encoding}'"
            )

        if self.jwt_secret is not None:
            if self.jwt_secret.lower() in WEAK_SECRETS:
                warnings.warn(
                    "JWT secret appears to be a common/weak value. Use a strong, unique secret!",
                    UserWarning,
                    stacklevel=2,
                )
            elif len(self.jwt_secret) < 32:
                warnings.warn(
                    "JWT secret should be at least 32 characters for production use!",
                    UserWarning,
                    stacklevel=2,
                )

        known = {"oidc", "github"}
        unknown = sorted(set(self.provider_config or {}) - known)
        if unknown:
            raise ValueError(
                f"Unknown providers {unknown} in provider_config. Must be one of: {sorted(known)}"
            )

        oidc = self.get_provider_config("oidc")
        if self.provider_config and "oidc" in self.provider_config:
            if not (oidc.get("well_known") or oidc.get("jwks_url")):
                raise ValueError("OIDC provider requires 'well_known' or 'jwks_url' in provider_config")
