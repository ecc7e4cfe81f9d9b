"""
Core data models for sso-auth-py.

This module defines the credential variants accepted by the handler chain, the
normalized principal produced by a successful authentication, and the result
records that tie the two together.

Credentials and principals are value objects: every class here is a frozen
dataclass and helpers such as ``with_profile`` return copies instead of
mutating the instance.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, Mapping, Optional, Union

if TYPE_CHECKING:
    from .handlers.base import AuthenticationHandler


def _freeze_attributes(attributes: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    if attributes is not None and not isinstance(attributes, Mapping):
        raise TypeError(f"Attributes must be a mapping, got {type(attributes).__name__}")
    frozen = {}
    for key, value in (attributes or {}).items():
        if key is None:
            raise ValueError("Attribute names cannot be None")
        if not isinstance(key, str):
            raise ValueError(f"Attribute names must be strings, got {key!r}")
        if isinstance(value, (list, set, frozenset)):
            value = tuple(value)
        frozen[key] = value
    return MappingProxyType(frozen)


class CredentialKind(str, Enum):
    """Variant tag carried by every credential"""

    PASSWORD = "password"
    TOKEN = "token"
    DELEGATED = "delegated"


@dataclass(frozen=True)
class Credential:
    """Base class for all credential variants."""

    kind: ClassVar[CredentialKind]

    @property
    def id(self) -> str:
        raise NotImplementedError()

    def redacted(self) -> "Credential":
        """Return a copy of this credential with the secret payload removed."""
        raise NotImplementedError()


@dataclass(frozen=True)
class UsernamePasswordCredential(Credential):
    kind: ClassVar[CredentialKind] = CredentialKind.PASSWORD

    username: str
    password: str = field(default="", repr=False)

    @property
    def id(self) -> str:
        return self.username

    def redacted(self) -> "UsernamePasswordCredential":
        return replace(self, password="")


@dataclass(frozen=True)
class TokenCredential(Credential):
    kind: ClassVar[CredentialKind] = CredentialKind.TOKEN

    token: str = field(default="", repr=False)

    @property
    def id(self) -> str:
        # never expose the token itself
        return "token"

    def redacted(self) -> "TokenCredential":
        return replace(self, token="")


@dataclass(frozen=True)
class ProviderProfile:
    """
    Identity returned by an external identity provider.

    Attributes:
        id: Bare identifier as known by the provider (e.g. "alice").
        typed_id: Provider-namespaced identifier (e.g. "github:alice").
        attributes: Raw attribute mapping from the provider.
    """

    id: str
    typed_id: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.attributes, Mapping):
            object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    @classmethod
    def for_provider(
        cls, provider_name: str, id: str, attributes: Optional[Mapping[str, Any]] = None
    ) -> "ProviderProfile":
        typed_id = f"{provider_name}:{id}" if id else ""
        return cls(id=id, typed_id=typed_id, attributes=dict(attributes or {}))


@dataclass(frozen=True)
class ClientCredential(Credential):
    """
    Credential whose verification is delegated to an external identity provider.

    Attributes:
        provider_name: Name of the provider in the provider registry.
        credentials: Opaque provider-specific payload (authorization code,
            ID token, access token, ...).
        profile: Profile set once the provider has verified the credentials.
    """

    kind: ClassVar[CredentialKind] = CredentialKind.DELEGATED

    provider_name: str
    credentials: Any = field(default=None, repr=False)
    profile: Optional[ProviderProfile] = None

    @property
    def id(self) -> str:
        if self.profile is not None:
            return self.profile.typed_id or self.profile.id
        return self.provider_name

    def with_profile(self, profile: ProviderProfile) -> "ClientCredential":
        return replace(self, profile=profile)

    def redacted(self) -> "ClientCredential":
        return replace(self, credentials=None)


AnyCredential = Union[UsernamePasswordCredential, TokenCredential, ClientCredential]


@dataclass(frozen=True)
class Principal:
    """
    Represents an authenticated identity.

    This is the normalized output of every authentication handler, whatever
    the credential variant or backend that verified it.

    Attributes:
        id: Non-blank identifier. Uniqueness is the caller's concern.
        attributes: Attribute name to one-or-many values. Multi-valued
            attributes are stored as tuples and the mapping is read-only.

    Example:
        >>> principal = Principal(
        ...     id="alice",
        ...     attributes={"email": "alice@example.com", "groups": ["staff"]},
        ... )
        >>> principal.get_values("groups")
        ['staff']
    """

    id: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate principal data after initialization."""
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValueError("Principal ID cannot be blank")
        object.__setattr__(self, "attributes", _freeze_attributes(self.attributes))

    def get_values(self, name: str) -> list[Any]:
        """
        Return every value of an attribute.

        Args:
            name: Attribute name.

        Returns:
            A list of values, empty when the attribute is absent.
        """
        value = self.attributes.get(name)
        if value is None:
            return []
        if isinstance(value, tuple):
            return list(value)
        return [value]

    def get_first(self, name: str, default: Any = None) -> Any:
        values = self.get_values(name)
        return values[0] if values else default

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "attributes": {
                key: list(value) if isinstance(value, tuple) else value
                for key, value in self.attributes.items()
            },
        }


@dataclass(frozen=True)
class CredentialMetaData:
    """Audit record of the credential a handler consumed, without its secret."""

    id: str
    credential_type: str
    credential: Credential

    @classmethod
    def from_credential(cls, credential: Credential) -> "CredentialMetaData":
        redacted = credential.redacted()
        return cls(
            id=redacted.id,
            credential_type=type(credential).__name__,
            credential=redacted,
        )


@dataclass(frozen=True)
class HandlerResult:
    handler: "AuthenticationHandler"
    metadata: CredentialMetaData
    principal: Principal

    @property
    def handler_name(self) -> str:
        return self.handler.name


@dataclass(frozen=True)
class WebContext:
    """
    Request/response exchange handed to identity providers.

    Both members are opaque to the core; in a FastAPI deployment they are the
    Starlette ``Request`` and ``Response`` of the current exchange.
    """

    request: Any = None
    response: Any = None
