import asyncio
import inspect
import logging
from functools import partial
from typing import Optional, Union

from ..audit import AuditLogger
from ..models import ClientCredential, Principal, ProviderProfile, WebContext
from ..providers.base import ProviderError
from ..providers.registry import ProviderRegistry
from ..settings import IdentityMode
from .base import (
    AuthenticationHandler,
    BackendUnavailableError,
    CredentialRejectedError,
    MalformedCredentialError,
)

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_TIMEOUT = 10.0


class DelegatedAuthenticationHandler(AuthenticationHandler):
    """Authenticates client credentials through an external identity provider.

    The provider named by the credential turns its opaque payload into a
    profile, which is then mapped onto a Principal. ``identity_mode`` picks
    the provider-namespaced identifier ("typed", default) or the raw one
    ("bare").
    """

    credential_types = (ClientCredential,)

    def __init__(
        self,
        registry: ProviderRegistry,
        identity_mode: Union[IdentityMode, str] = IdentityMode.TYPED,
        timeout: float = DEFAULT_PROVIDER_TIMEOUT,
        name: Optional[str] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(name=name, audit_logger=audit_logger)
        self.registry = registry
        self.identity_mode = IdentityMode(identity_mode)
        self.timeout = timeout

    async def _call_provider(self, provider, credential: ClientCredential, context):
        result = provider.get_user_profile(credential.credentials, context)
        if hasattr(result, "__await__"):
            return await result
        return result

    async def _get_profile(self, provider, credential: ClientCredential, context):
        if inspect.iscoroutinefunction(provider.get_user_profile):
            call = self._call_provider(provider, credential, context)
        else:
            # run blocking providers in the threadpool so the timeout applies
            loop = asyncio.get_event_loop()
            call = loop.run_in_executor(
                None, partial(provider.get_user_profile, credential.credentials, context)
            )
        return await asyncio.wait_for(call, timeout=self.timeout)

    async def do_authenticate(
        self, credential: ClientCredential, context: Optional[WebContext]
    ):
        provider_name = credential.provider_name
        if not isinstance(provider_name, str) or not provider_name.strip():
            raise MalformedCredentialError("Client credential has no provider name")
        if credential.credentials is None:
            raise MalformedCredentialError(
                f"Client credential for {provider_name} carries no provider credentials"
            )
        logger.debug("clientCredential: %r", credential)

        try:
            provider = self.registry.get(provider_name)
        except LookupError:
            raise BackendUnavailableError(f"No identity provider configured for {provider_name}")
        logger.debug("provider: %r", provider)

        try:
            profile = await self._get_profile(provider, credential, context)
        except asyncio.TimeoutError:
            raise BackendUnavailableError(
                f"Provider {provider_name} did not answer within {self.timeout}s"
            )
        except ProviderError as e:
            if e.transient:
                raise BackendUnavailableError(f"Provider {provider_name} unavailable: {e}")
            raise CredentialRejectedError(f"Provider {provider_name} rejected credentials: {e}")
        except OSError as e:
            logger.warning("Provider %s could not be reached: %s", provider_name, e)
            raise BackendUnavailableError(f"Provider {provider_name} unreachable: {e}")
        logger.debug("profile: %r", profile)

        if profile is None:
            raise CredentialRejectedError(f"Provider did not produce profile for {credential!r}")
        if not isinstance(profile, ProviderProfile):
            raise MalformedCredentialError(
                f"Provider {provider_name} returned {type(profile).__name__}, not a profile"
            )

        if self.identity_mode is IdentityMode.TYPED:
            identifier = profile.typed_id
        else:
            identifier = profile.id
        if identifier is not None and not isinstance(identifier, str):
            raise MalformedCredentialError(f"Provider {provider_name} returned a non-text identifier")
        if not identifier or not identifier.strip():
            raise CredentialRejectedError(f"Provider did not produce profile for {credential!r}")

        try:
            principal = Principal(id=identifier, attributes=profile.attributes)
        except (TypeError, ValueError) as e:
            raise MalformedCredentialError(f"Provider {provider_name} returned an unusable profile: {e}")
        return self.create_result(credential.with_profile(profile), principal)
