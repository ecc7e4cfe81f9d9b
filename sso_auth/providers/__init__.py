from .base import IdentityProvider, ProviderError
from .github import GitHubIdentityProvider
from .oidc import JWKSCache, OIDCIdentityProvider
from .registry import ProviderRegistry, default_registry, get_provider, register_provider

__all__ = [
    "IdentityProvider",
    "ProviderError",
    "ProviderRegistry",
    "GitHubIdentityProvider",
    "OIDCIdentityProvider",
    "JWKSCache",
    "default_registry",
    "get_provider",
    "register_provider",
]
