from typing import Dict, Optional

from .base import IdentityProvider


class ProviderRegistry:
    """Identity providers by name, populated at startup and then frozen."""

    def __init__(self, providers: Optional[Dict[str, IdentityProvider]] = None):
        self._providers: Dict[str, IdentityProvider] = {}
        self._frozen = False
        for name, provider in (providers or {}).items():
            self.register(name, provider)

    def register(self, name: str, provider: IdentityProvider):
        if self._frozen:
            raise RuntimeError(f"Cannot register provider {name!r}: registry is frozen")
        if not name:
            raise ValueError("Provider name cannot be empty")
        self._providers[name] = provider

    def get(self, name: str) -> IdentityProvider:
        provider = self._providers.get(name)
        if not provider:
            raise LookupError(f"Unknown provider: {name}")
        return provider

    def freeze(self):
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def names(self) -> list:
        return list(self._providers)

    def __contains__(self, name) -> bool:
        return name in self._providers

    def __len__(self) -> int:
        return len(self._providers)


default_registry = ProviderRegistry()


def register_provider(name: str, provider: IdentityProvider):
    default_registry.register(name, provider)


def get_provider(name: str) -> IdentityProvider:
    return default_registry.get(name)
