import asyncio
import os
import sys

import bcrypt
import pytest

# Ensure project root is on sys.path so tests can import the package under test
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from sso_auth.audit import AuditLogger, AuditStorage  # noqa: E402
from sso_auth.models import ProviderProfile, WebContext  # noqa: E402
from sso_auth.providers.base import IdentityProvider, ProviderError  # noqa: E402
from sso_auth.providers.registry import ProviderRegistry  # noqa: E402


class StaticProvider(IdentityProvider):
    """Identity provider answering from a fixed credentials -> profile table"""

    def __init__(self, name, profiles):
        self.name = name
        self.profiles = profiles
        self.calls = []

    async def get_user_profile(self, credentials, context):
        await asyncio.sleep(0)
        self.calls.append((credentials, context))
        if credentials not in self.profiles:
            raise ProviderError("unknown credentials", code="invalid_grant")
        return self.profiles[credentials]


@pytest.fixture
def alice_profile():
    return ProviderProfile(
        id="alice",
        typed_id="provider:alice",
        attributes={"email": "alice@example.com", "groups": ["staff", "admins"]},
    )


@pytest.fixture
def static_provider(alice_profile):
    return StaticProvider(
        "provider",
        {
            "code-alice": alice_profile,
            "code-blank": ProviderProfile(id="  ", typed_id="", attributes={}),
            "code-none": None,
        },
    )


@pytest.fixture
def registry(static_provider):
    return ProviderRegistry({"provider": static_provider})


@pytest.fixture
def web_context():
    return WebContext(request=object(), response=object())


@pytest.fixture
def audit_logger():
    """Audit logger with its own storage, isolated from the global one"""
    return AuditLogger(AuditStorage())


@pytest.fixture(scope="session")
def accepted_users():
    # low cost factor keeps the suite fast
    salt = bcrypt.gensalt(rounds=4)
    return {
        "alice": bcrypt.hashpw(b"wonderland", salt).decode(),
        "bob": bcrypt.hashpw(b"builder", salt).decode(),
    }
