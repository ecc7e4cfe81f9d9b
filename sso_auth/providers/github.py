"""
GitHub OAuth2 identity provider for sso-auth-py

Resolves a GitHub OAuth access token (or an authorization code, when a client
secret is configured) into a provider profile:
- Public GitHub.com and GitHub Enterprise Server
- Optional organization membership restriction
"""

import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from ..models import ProviderProfile, WebContext
from .base import IdentityProvider, ProviderError

logger = logging.getLogger(__name__)


class GitHubIdentityProvider(IdentityProvider):
    """GitHub OAuth2 identity provider"""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        name: str = "github",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize GitHub provider

        Args:
            config: Configuration dictionary containing:
                - client_id: OAuth App client ID (needed for code exchange)
                - client_secret: OAuth App client secret (needed for code exchange)
                - base_url: GitHub base URL (default: https://github.com)
                - allowed_organizations: Optional list of allowed organizations
            name: Registry name, also the typed identifier prefix
            transport: Optional httpx transport, used by tests
        """
        config = config or {}
        self.name = name
        self.client_id = config.get("client_id")
        self.client_secret = config.get("client_secret")
        self.base_url = config.get("base_url", "https://github.com")
        self.api_base_url = config.get("api_base_url", "https://api.github.com")
        self.allowed_organizations = config.get("allowed_organizations", [])
        self._transport = transport

        # GitHub Enterprise Server support
        if self.base_url != "https://github.com":
            self.api_base_url = f"{self.base_url}/api/v3"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=10.0)

    @staticmethod
    def _headers(token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "sso-auth-py/1.0",
        }

    async def exchange_code(self, client: httpx.AsyncClient, code: str) -> str:
        """Exchange an authorization code for an access token."""
        if not (self.client_id and self.client_secret):
            raise ProviderError("Client credentials required for code exchange", code="misconfigured")

        response = await client.post(
            f"{self.base_url}/login/oauth/access_token",
            headers={"Accept": "application/json"},
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
            },
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, Mapping):
            raise ValueError("GitHub token endpoint returned an unexpected payload")
        if "access_token" not in payload:
            # GitHub answers 200 with an error body for bad or expired codes
            raise ProviderError(
                payload.get("error_description", "Code exchange failed"),
                code=payload.get("error", "bad_verification_code"),
            )
        return payload["access_token"]

    async def get_user_profile(
        self, credentials: Any, context: Optional[WebContext]
    ) -> Optional[ProviderProfile]:
        if isinstance(credentials, str):
            credentials = {"access_token": credentials}
        if not isinstance(credentials, Mapping):
            raise ProviderError("Unsupported GitHub credentials", code="invalid_request")

        try:
            async with self._client() as client:
                token = credentials.get("access_token")
                if not token and credentials.get("code"):
                    token = await self.exchange_code(client, credentials["code"])
                if not token:
                    raise ProviderError("No access token or code in credentials", code="invalid_request")

                user_response = await client.get(
                    f"{self.api_base_url}/user", headers=self._headers(token)
                )
                user_response.raise_for_status()
                user_data = user_response.json()
                if not isinstance(user_data, Mapping):
                    raise ValueError("GitHub /user returned an unexpected payload")

                organizations = []
                if self.allowed_organizations:
                    orgs_response = await client.get(
                        f"{self.api_base_url}/user/orgs", headers=self._headers(token)
                    )
                    orgs_response.raise_for_status()
                    organizations = [org["login"] for org in orgs_response.json()]
                    if not set(self.allowed_organizations).intersection(organizations):
                        raise ProviderError(
                            f"User not member of allowed organizations: {self.allowed_organizations}",
                            code="organization_denied",
                        )

        except httpx.HTTPStatusError as e:
            if e.response.status_code == 401:
                raise ProviderError("Invalid GitHub token", code="invalid_token")
            if e.response.headers.get("X-RateLimit-Remaining") == "0":
                raise ProviderError(
                    "GitHub API rate limit exceeded", code="rate_limited", transient=True
                )
            logger.error(f"GitHub API error: {e.response.status_code}")
            raise ProviderError(
                f"GitHub API error: {e.response.status_code}", code="api_error", transient=True
            )
        except httpx.TimeoutException:
            logger.error("Timeout connecting to GitHub API")
            raise ProviderError("GitHub API timeout", code="timeout", transient=True)
        except httpx.HTTPError as e:
            raise ProviderError(f"GitHub API unreachable: {e}", code="unreachable", transient=True)
        except (ValueError, KeyError, TypeError) as e:
            # non-JSON or reshaped bodies come from proxies and maintenance pages
            logger.error(f"Unexpected GitHub API response: {e}")
            raise ProviderError(
                f"Unexpected GitHub API response: {e}", code="bad_response", transient=True
            )

        login = user_data.get("login")
        if not login:
            return None

        logger.info(f"Resolved GitHub user: {login}")
        attributes = {
            "github_id": user_data.get("id"),
            "name": user_data.get("name") or login,
            "email": user_data.get("email"),
            "avatar_url": user_data.get("avatar_url"),
            "profile_url": user_data.get("html_url"),
            "account_type": user_data.get("type", "User"),
        }
        if organizations:
            attributes["organizations"] = organizations
        return ProviderProfile.for_provider(self.name, login, attributes)
