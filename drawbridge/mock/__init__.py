"""In-memory collaborators for local development and testing."""

from drawbridge.mock.config_store import InMemoryConfigStore
from drawbridge.mock.session import InMemorySessionManager, SessionRecord
from drawbridge.mock.user_store import InMemoryUserStore

__all__ = [
    "InMemoryConfigStore",
    "InMemorySessionManager",
    "InMemoryUserStore",
    "SessionRecord",
]
