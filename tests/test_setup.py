import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from sso_auth.handlers.delegated import DelegatedAuthenticationHandler
from sso_auth.handlers.password import AcceptUsersAuthenticationHandler
from sso_auth.handlers.token import JWTAuthenticationHandler
from sso_auth.models import ClientCredential, UsernamePasswordCredential, WebContext
from sso_auth.providers.github import GitHubIdentityProvider
from sso_auth.providers.registry import ProviderRegistry
from sso_auth.settings import DispatchMode, Settings
from sso_auth.setup import build_handler_chain, setup_auth
from sso_auth.views import SamlFailureResponseView

SECRET = "test-secret-key-for-testing-purposes-only"


def test_handler_order(accepted_users, audit_logger):
    registry = ProviderRegistry()
    settings = Settings(
        _env_file=None,
        accepted_users=accepted_users,
        jwt_secret=SECRET,
        provider_config={"github": {}},
    )
    chain = build_handler_chain(settings, registry, audit_logger=audit_logger)

    assert [type(h) for h in chain.handlers] == [
        AcceptUsersAuthenticationHandler,
        JWTAuthenticationHandler,
        DelegatedAuthenticationHandler,
    ]
    assert chain.dispatch_mode is DispatchMode.STRICT
    assert isinstance(registry.get("github"), GitHubIdentityProvider)
    assert registry.frozen


def test_minimal_chain_only_delegates():
    chain = build_handler_chain(Settings(_env_file=None))
    assert chain.handler_names == ["DelegatedAuthenticationHandler"]


def test_preregistered_provider_is_kept(registry, static_provider):
    registry.register("github", static_provider)
    build_handler_chain(Settings(_env_file=None, provider_config={"github": {}}), registry)
    assert registry.get("github") is static_provider


def test_invalid_configuration_raises():
    with pytest.raises(ValueError):
        build_handler_chain(Settings(_env_file=None, provider_timeout_seconds=-1))


def test_identity_mode_reaches_delegated_handler(registry):
    chain = build_handler_chain(Settings(_env_file=None, identity_mode="bare"), registry)
    outcome = chain.resolve_sync(ClientCredential("provider", "code-alice"))
    assert outcome.principal.id == "alice"


def test_setup_auth_over_http(accepted_users, registry):
    app = FastAPI()
    app = setup_auth(
        app,
        Settings(_env_file=None, accepted_users=accepted_users, failure_response_encoding="ISO-8859-1"),
        registry=registry,
    )
    assert isinstance(app.state.failure_view, SamlFailureResponseView)

    @app.post("/login")
    async def login(request: Request, username: str, password: str):
        outcome = await request.app.state.auth_chain.resolve(
            UsernamePasswordCredential(username, password), WebContext(request=request)
        )
        if not outcome.valid:
            return request.app.state.failure_view.to_response(outcome.failure.description)
        return {"principal": outcome.principal.id}

    client = TestClient(app)
    r = client.post("/login", params={"username": "alice", "password": "wonderland"})
    assert r.json() == {"principal": "alice"}

    r = client.post("/login", params={"username": "alice", "password": "nope"})
    assert r.headers["content-type"] == "text/xml; charset=ISO-8859-1"
    assert r.text.startswith('<?xml version="1.0" encoding="ISO-8859-1"?><SOAP-ENV:Envelope')
