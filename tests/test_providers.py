import httpx
import pytest
from jose import JWTError

from sso_auth.providers import registry as registry_module
from sso_auth.providers.base import ProviderError
from sso_auth.providers.github import GitHubIdentityProvider
from sso_auth.providers.oidc import JWKSCache, OIDCIdentityProvider
from sso_auth.providers.registry import ProviderRegistry


class TestProviderRegistry:
    def test_register_and_get(self):
        provider = GitHubIdentityProvider()
        registry = ProviderRegistry()
        registry.register("github", provider)
        assert registry.get("github") is provider
        assert "github" in registry
        assert registry.names() == ["github"]
        assert len(registry) == 1

    def test_unknown_provider(self):
        with pytest.raises(LookupError):
            ProviderRegistry().get("nope")

    def test_frozen_registry_refuses_changes(self):
        registry = ProviderRegistry({"github": GitHubIdentityProvider()})
        registry.freeze()
        assert registry.frozen
        with pytest.raises(RuntimeError):
            registry.register("oidc", OIDCIdentityProvider({"jwks_url": "https://idp/jwks"}))

    def test_empty_name_refused(self):
        with pytest.raises(ValueError):
            ProviderRegistry().register("", GitHubIdentityProvider())

    def test_default_registry_helpers(self, monkeypatch):
        monkeypatch.setattr(registry_module, "default_registry", ProviderRegistry())
        provider = GitHubIdentityProvider()
        registry_module.register_provider("github", provider)
        assert registry_module.get_provider("github") is provider


class TestOIDCProvider:
    @pytest.fixture
    def provider(self, monkeypatch):
        async def fake_jwks(self):
            return {"keys": []}

        monkeypatch.setattr(JWKSCache, "get_jwks_async", fake_jwks)
        return OIDCIdentityProvider(
            {"jwks_url": "https://idp.example.com/jwks", "audience": "client-1"}
        )

    @pytest.mark.asyncio
    async def test_valid_id_token(self, provider, monkeypatch):
        def fake_decode(token, jwks, algorithms, options, audience=None, issuer=None):
            assert token == "good-token"
            assert audience == "client-1"
            assert options == {"verify_aud": True}
            return {"sub": "user-1", "email": "u@example.com", "exp": 123, "aud": "client-1"}

        monkeypatch.setattr("sso_auth.providers.oidc.jwt.decode", fake_decode)

        profile = await provider.get_user_profile("good-token", None)
        assert profile.id == "user-1"
        assert profile.typed_id == "oidc:user-1"
        assert profile.attributes == {"sub": "user-1", "email": "u@example.com"}

    @pytest.mark.asyncio
    async def test_mapping_credentials(self, provider, monkeypatch):
        monkeypatch.setattr(
            "sso_auth.providers.oidc.jwt.decode", lambda token, *a, **kw: {"sub": token}
        )
        profile = await provider.get_user_profile({"id_token": "abc"}, None)
        assert profile.id == "abc"

    @pytest.mark.asyncio
    async def test_invalid_token_is_definitive(self, provider, monkeypatch):
        def fake_decode(*args, **kwargs):
            raise JWTError("Signature verification failed")

        monkeypatch.setattr("sso_auth.providers.oidc.jwt.decode", fake_decode)
        with pytest.raises(ProviderError) as exc:
            await provider.get_user_profile("bad-token", None)
        assert exc.value.transient is False

    @pytest.mark.asyncio
    async def test_token_without_subject_yields_no_profile(self, provider, monkeypatch):
        monkeypatch.setattr("sso_auth.providers.oidc.jwt.decode", lambda *a, **kw: {"email": "x"})
        assert await provider.get_user_profile("token", None) is None

    @pytest.mark.asyncio
    async def test_missing_token(self, provider):
        with pytest.raises(ProviderError):
            await provider.get_user_profile({"code": "abc"}, None)

    @pytest.mark.asyncio
    async def test_jwks_outage_is_transient(self, monkeypatch):
        async def failing_jwks(self):
            raise httpx.ConnectError("connection refused")

        monkeypatch.setattr(JWKSCache, "get_jwks_async", failing_jwks)
        provider = OIDCIdentityProvider({"jwks_url": "https://idp.example.com/jwks"})
        with pytest.raises(ProviderError) as exc:
            await provider.get_user_profile("token", None)
        assert exc.value.transient is True

    @pytest.mark.asyncio
    async def test_well_known_discovery(self, monkeypatch):
        discovered = []

        def fake_discovery(url):
            discovered.append(url)
            return "https://idp.example.com/discovered-jwks"

        async def fake_jwks(self):
            assert self.url == "https://idp.example.com/discovered-jwks"
            return {"keys": []}

        monkeypatch.setattr("sso_auth.providers.oidc.get_jwks_url_from_well_known", fake_discovery)
        monkeypatch.setattr(JWKSCache, "get_jwks_async", fake_jwks)
        monkeypatch.setattr("sso_auth.providers.oidc.jwt.decode", lambda *a, **kw: {"sub": "u"})

        provider = OIDCIdentityProvider({"well_known": "https://idp.example.com/.well-known/openid-configuration"})
        await provider.get_user_profile("token", None)
        await provider.get_user_profile("token", None)
        assert discovered == ["https://idp.example.com/.well-known/openid-configuration"]

    @pytest.mark.asyncio
    async def test_missing_jwks_configuration_is_transient(self):
        with pytest.raises(ProviderError) as exc:
            await OIDCIdentityProvider({}).get_user_profile("token", None)
        assert exc.value.transient is True


def github(handler, **config):
    return GitHubIdentityProvider(config, transport=httpx.MockTransport(handler))


class TestGitHubProvider:
    @pytest.mark.asyncio
    async def test_access_token(self):
        def handler(request: httpx.Request):
            assert request.url.path == "/user"
            assert request.headers["Authorization"] == "Bearer gho_good"
            return httpx.Response(200, json={"login": "octocat", "id": 1, "name": "Mona"})

        profile = await github(handler).get_user_profile("gho_good", None)
        assert profile.id == "octocat"
        assert profile.typed_id == "github:octocat"
        assert profile.attributes["name"] == "Mona"
        assert profile.attributes["github_id"] == 1

    @pytest.mark.asyncio
    async def test_code_exchange(self):
        def handler(request: httpx.Request):
            if request.url.path == "/login/oauth/access_token":
                assert b"code=abc" in request.content
                return httpx.Response(200, json={"access_token": "gho_exchanged"})
            assert request.headers["Authorization"] == "Bearer gho_exchanged"
            return httpx.Response(200, json={"login": "octocat", "id": 1})

        provider = github(handler, client_id="cid", client_secret="csecret")
        profile = await provider.get_user_profile({"code": "abc"}, None)
        assert profile.id == "octocat"

    @pytest.mark.asyncio
    async def test_bad_code_is_definitive(self):
        def handler(request: httpx.Request):
            return httpx.Response(200, json={"error": "bad_verification_code"})

        provider = github(handler, client_id="cid", client_secret="csecret")
        with pytest.raises(ProviderError) as exc:
            await provider.get_user_profile({"code": "expired"}, None)
        assert exc.value.transient is False
        assert exc.value.code == "bad_verification_code"

    @pytest.mark.asyncio
    async def test_invalid_token_is_definitive(self):
        provider = github(lambda request: httpx.Response(401, json={"message": "Bad credentials"}))
        with pytest.raises(ProviderError) as exc:
            await provider.get_user_profile("gho_bad", None)
        assert exc.value.transient is False
        assert exc.value.code == "invalid_token"

    @pytest.mark.asyncio
    async def test_server_error_is_transient(self):
        provider = github(lambda request: httpx.Response(502))
        with pytest.raises(ProviderError) as exc:
            await provider.get_user_profile("gho_good", None)
        assert exc.value.transient is True

    @pytest.mark.asyncio
    async def test_network_timeout_is_transient(self):
        def handler(request: httpx.Request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ProviderError) as exc:
            await github(handler).get_user_profile("gho_good", None)
        assert exc.value.transient is True
        assert exc.value.code == "timeout"

    @pytest.mark.asyncio
    async def test_organization_restriction(self):
        def handler(request: httpx.Request):
            if request.url.path == "/user/orgs":
                return httpx.Response(200, json=[{"login": "other-org"}])
            return httpx.Response(200, json={"login": "octocat", "id": 1})

        provider = github(handler, allowed_organizations=["github"])
        with pytest.raises(ProviderError) as exc:
            await provider.get_user_profile("gho_good", None)
        assert exc.value.code == "organization_denied"
        assert exc.value.transient is False

    @pytest.mark.asyncio
    async def test_non_json_answer_is_transient(self):
        provider = github(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
        with pytest.raises(ProviderError) as exc:
            await provider.get_user_profile("gho_good", None)
        assert exc.value.transient is True
        assert exc.value.code == "bad_response"

    @pytest.mark.asyncio
    async def test_reshaped_organizations_answer_is_transient(self):
        def handler(request: httpx.Request):
            if request.url.path == "/user/orgs":
                return httpx.Response(200, json=[{"name": "github"}])
            return httpx.Response(200, json={"login": "octocat", "id": 1})

        provider = github(handler, allowed_organizations=["github"])
        with pytest.raises(ProviderError) as exc:
            await provider.get_user_profile("gho_good", None)
        assert exc.value.transient is True
