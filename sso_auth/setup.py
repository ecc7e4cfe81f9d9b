"""
Application setup for sso-auth-py.

This module assembles the handler chain from configuration: it registers the
configured identity providers, freezes the provider registry, orders the
handlers and attaches the result to a FastAPI application.
"""

import logging
from typing import Iterable, Optional

from fastapi import FastAPI

from .audit import AuditLogger, get_audit_logger
from .chain import AuthenticationHandlerChain
from .handlers.base import AuthenticationHandler
from .handlers.delegated import DelegatedAuthenticationHandler
from .handlers.password import AcceptUsersAuthenticationHandler
from .handlers.token import JWTAuthenticationHandler
from .providers.github import GitHubIdentityProvider
from .providers.oidc import OIDCIdentityProvider
from .providers.registry import ProviderRegistry
from .settings import Settings
from .views import SamlFailureResponseView

logger = logging.getLogger(__name__)

PROVIDER_FACTORIES = {
    "oidc": OIDCIdentityProvider,
    "github": GitHubIdentityProvider,
}


def register_configured_providers(settings: Settings, registry: ProviderRegistry) -> list[str]:
    """
    Register every provider named in ``settings.provider_config``.

    Providers already present in the registry are left alone, so callers can
    pre-register custom implementations under the same name.

    Returns:
        Names of the providers registered by this call.
    """
    registered = []
    for name in (settings.provider_config or {}):
        if name in registry:
            logger.debug(f"Provider {name} already registered; keeping existing instance")
            continue
        factory = PROVIDER_FACTORIES[name]
        registry.register(name, factory(settings.get_provider_config(name), name=name))
        registered.append(name)
        logger.info(f"Registered {name} identity provider")
    return registered


def build_handler_chain(
    settings: Optional[Settings] = None,
    registry: Optional[ProviderRegistry] = None,
    extra_handlers: Iterable[AuthenticationHandler] = (),
    audit_logger: Optional[AuditLogger] = None,
) -> AuthenticationHandlerChain:
    """
    Build the authentication handler chain from configuration.

    Handlers are ordered password, token, delegated, then ``extra_handlers``.
    The password handler is only present when ``accepted_users`` is set and
    the token handler only when ``jwt_secret`` is set.

    Args:
        settings: Configuration settings. If None, default settings are used.
        registry: Provider registry. A fresh one is created when omitted. It
            is frozen before this function returns.
        extra_handlers: Additional handlers appended after the built-in ones.
        audit_logger: Audit logger shared by the chain and its handlers.

    Returns:
        The configured handler chain.

    Raises:
        ValueError: If the configuration or the resulting handler set is invalid.
    """
    settings = settings or Settings()
    registry = registry if registry is not None else ProviderRegistry()
    audit_logger = audit_logger or get_audit_logger()

    try:
        settings.validate_configuration()
    except ValueError as e:
        logger.error(f"Configuration validation failed: {e}")
        raise

    register_configured_providers(settings, registry)
    registry.freeze()

    handlers: list[AuthenticationHandler] = []
    if settings.accepted_users:
        handlers.append(
            AcceptUsersAuthenticationHandler(
                settings.accepted_users,
                principal_name_transformer=str.lower if settings.lowercase_usernames else None,
                audit_logger=audit_logger,
            )
        )
    if settings.jwt_secret:
        handlers.append(
            JWTAuthenticationHandler(
                settings.jwt_secret,
                algorithms=[settings.jwt_algorithm],
                issuer=settings.token_issuer,
                audience=settings.token_audience,
                audit_logger=audit_logger,
            )
        )
    handlers.append(
        DelegatedAuthenticationHandler(
            registry,
            identity_mode=settings.identity_mode,
            timeout=settings.provider_timeout_seconds,
            audit_logger=audit_logger,
        )
    )
    handlers.extend(extra_handlers)

    chain = AuthenticationHandlerChain(
        handlers, dispatch_mode=settings.dispatch_mode, audit_logger=audit_logger
    )
    logger.info(
        f"Authentication handlers ({settings.dispatch_mode.value}): {chain.handler_names}; "
        f"identity providers: {registry.names()}"
    )
    return chain


def setup_auth(
    app: FastAPI,
    settings: Optional[Settings] = None,
    registry: Optional[ProviderRegistry] = None,
    extra_handlers: Iterable[AuthenticationHandler] = (),
) -> FastAPI:
    """
    Set up authentication for a FastAPI application.

    The handler chain is stored on ``app.state.auth_chain`` and the legacy
    validation failure view on ``app.state.failure_view``.

    Example:
        >>> app = FastAPI()
        >>> app = setup_auth(app, Settings(provider_config={"github": {}}))
        >>> outcome = await app.state.auth_chain.resolve(credential, WebContext(request))
    """
    settings = settings or Settings()
    registry = registry if registry is not None else ProviderRegistry()
    audit_logger = get_audit_logger()

    app.state.auth_chain = build_handler_chain(
        settings, registry, extra_handlers=extra_handlers, audit_logger=audit_logger
    )
    app.state.failure_view = SamlFailureResponseView(encoding=settings.failure_response_encoding)
    logger.info("Authentication handler chain configured")
    return app
