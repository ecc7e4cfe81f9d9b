from abc import ABC, abstractmethod
from typing import Any, Awaitable, Optional, Union

from ..models import ProviderProfile, WebContext


class ProviderError(Exception):
    """Provider-specific error with optional machine-readable code.

    ``transient`` marks failures where the provider could not answer (network
    error, outage, throttling) as opposed to a definitive negative answer.
    """

    def __init__(self, message: str, code: Optional[str] = None, transient: bool = False):
        super().__init__(message)
        self.code = code
        self.transient = transient


class IdentityProvider(ABC):
    """External identity provider the delegated handler forwards credentials to."""

    name: str = ""

    @abstractmethod
    def get_user_profile(
        self, credentials: Any, context: Optional[WebContext]
    ) -> Union[Optional[ProviderProfile], Awaitable[Optional[ProviderProfile]]]:
        """Verify provider-specific credentials and return the user's profile.

        Implementations may be synchronous or asynchronous (returning a coroutine).
        Returning None means the provider did not authenticate the user; raise
        ProviderError for anything else.
        """
        raise NotImplementedError()
