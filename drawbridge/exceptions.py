"""Drawbridge exceptions.

All exceptions inherit from DrawbridgeError for easy catching.
"""

from __future__ import annotations

from typing import Optional, Sequence


class DrawbridgeError(Exception):
    """Base exception for Drawbridge errors."""

    def __init__(self, message: str, code: str):
        self.message = message
        self.code = code
        super().__init__(message)


class ConfigurationError(DrawbridgeError):
    """Raised when required Cognito settings are missing."""

    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__(
            message=f"Cognito is not configured: missing {', '.join(self.missing)}",
            code="CONFIGURATION_ERROR",
        )


class IdentityProviderError(DrawbridgeError):
    """Raised when a Cognito management API call fails."""

    def __init__(self, message: str, operation: str):
        super().__init__(message=message, code="IDENTITY_PROVIDER_ERROR")
        self.operation = operation


class JWKSFetchError(DrawbridgeError):
    """Raised when the user pool's JWKS document cannot be fetched."""

    def __init__(self, message: str = "Failed to fetch JWKS"):
        super().__init__(message=message, code="JWKS_FETCH_FAILED")


# ==================== Authentication Errors ====================


class AuthenticationError(DrawbridgeError):
    """Base class for errors that end a sign-in attempt."""

    def __init__(self, message: str, code: str = "AUTHENTICATION_ERROR"):
        super().__init__(message=message, code=code)


class InvalidStateError(AuthenticationError):
    """Raised when the callback state is missing, forged or already used."""

    def __init__(self, message: str = "Invalid authentication state"):
        super().__init__(message=message, code="INVALID_STATE")


class TokenExchangeError(AuthenticationError):
    """Raised when the authorization code cannot be exchanged for tokens."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message=message, code="TOKEN_EXCHANGE_FAILED")
        self.status_code = status_code


class TokenVerificationError(AuthenticationError):
    """Raised when an ID token fails verification.

    The code is the name of the failed check (e.g. ``EXPIRED``).
    """

    def __init__(self, failure: str, detail: str = ""):
        super().__init__(
            message=f"Token verification failed: {detail or failure}",
            code=failure,
        )
        self.failure = failure
        self.detail = detail


class UserProvisioningError(AuthenticationError):
    """Raised when no local user can be found or created for the claims."""

    def __init__(self, message: str):
        super().__init__(message=message, code="USER_PROVISIONING_FAILED")
