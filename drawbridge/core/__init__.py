"""Core abstractions for the Drawbridge sign-in flow."""

from drawbridge.core.session import SessionManager
from drawbridge.core.token_verifier import TokenVerifier
from drawbridge.core.user_store import UserStore

__all__ = [
    "SessionManager",
    "TokenVerifier",
    "UserStore",
]
