"""Abstract session manager interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from drawbridge.models import AuthRequest, SiteUser, TokenSet


class SessionManager(ABC):
    """Logs users in and out of the host site.

    Implementations:
        - InMemorySessionManager: keeps sessions in a dictionary
    """

    @abstractmethod
    def establish(self, request: AuthRequest, user: SiteUser, tokens: TokenSet) -> None:
        """Log ``user`` in for the request's session.

        The access and refresh tokens are kept with the session so a later
        logout can end the Cognito session too. The ID token is not stored.
        """

    @abstractmethod
    def clear(self, request: AuthRequest) -> None:
        """Log the current user out and drop any Cognito tokens."""
