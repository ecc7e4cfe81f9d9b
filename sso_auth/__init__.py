"""
sso-auth-py: Pluggable authentication handler chain for single sign-on servers

This package routes incoming credentials of any shape to the authentication
handler that owns them, delegates verification to external identity providers
when required, and maps the result into a normalized principal.

Features:
    - Ordered handler chain with strict or permissive dispatch
    - Password, JWT and delegated (external identity provider) handlers
    - OIDC and GitHub identity providers with bounded call timeouts
    - Audit trail of authentication outcomes
    - SOAP envelope failure responses for legacy ticket-validation clients

Example:
    Delegated authentication through GitHub:

    >>> from sso_auth import ClientCredential, Settings, build_handler_chain
    >>>
    >>> chain = build_handler_chain(Settings(provider_config={"github": {}}))
    >>> outcome = chain.resolve_sync(ClientCredential("github", "gho_..."))
    >>> outcome.principal.id
    'github:octocat'
"""

__version__ = "0.1.0"

from .chain import AuthenticationHandlerChain
from .handlers import (
    AcceptUsersAuthenticationHandler,
    AuthenticationHandler,
    AuthFailure,
    AuthOutcome,
    DelegatedAuthenticationHandler,
    FailureKind,
    HandlerContractViolation,
    JWTAuthenticationHandler,
)
from .models import (
    ClientCredential,
    Credential,
    CredentialMetaData,
    HandlerResult,
    Principal,
    ProviderProfile,
    TokenCredential,
    UsernamePasswordCredential,
    WebContext,
)
from .providers import IdentityProvider, ProviderError, ProviderRegistry
from .settings import DispatchMode, IdentityMode, Settings
from .setup import build_handler_chain, setup_auth
from .views import SamlFailureResponseView

__all__ = [
    "AuthenticationHandlerChain",
    "AuthenticationHandler",
    "AcceptUsersAuthenticationHandler",
    "DelegatedAuthenticationHandler",
    "JWTAuthenticationHandler",
    "AuthFailure",
    "AuthOutcome",
    "FailureKind",
    "HandlerContractViolation",
    "Credential",
    "UsernamePasswordCredential",
    "TokenCredential",
    "ClientCredential",
    "CredentialMetaData",
    "HandlerResult",
    "Principal",
    "ProviderProfile",
    "WebContext",
    "IdentityProvider",
    "ProviderError",
    "ProviderRegistry",
    "Settings",
    "DispatchMode",
    "IdentityMode",
    "build_handler_chain",
    "setup_auth",
    "SamlFailureResponseView",
]
