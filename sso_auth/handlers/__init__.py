from .base import (
    AuthenticationError,
    AuthenticationHandler,
    AuthFailure,
    AuthOutcome,
    BackendUnavailableError,
    CredentialRejectedError,
    FailureKind,
    HandlerContractViolation,
    MalformedCredentialError,
)
from .delegated import DelegatedAuthenticationHandler
from .password import AcceptUsersAuthenticationHandler, hash_password
from .token import JWTAuthenticationHandler

__all__ = [
    "AuthenticationHandler",
    "AuthenticationError",
    "AuthFailure",
    "AuthOutcome",
    "FailureKind",
    "HandlerContractViolation",
    "MalformedCredentialError",
    "CredentialRejectedError",
    "BackendUnavailableError",
    "AcceptUsersAuthenticationHandler",
    "DelegatedAuthenticationHandler",
    "JWTAuthenticationHandler",
    "hash_password",
]
