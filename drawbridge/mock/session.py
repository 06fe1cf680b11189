"""In-memory implementation of SessionManager for testing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from drawbridge.core.session import SessionManager
from drawbridge.models import AuthRequest, SiteUser, TokenSet


@dataclass
class SessionRecord:
    """A signed-in session and the Cognito tokens kept with it."""

    user: SiteUser
    access_token: str
    refresh_token: Optional[str] = None


class InMemorySessionManager(SessionManager):
    """Keeps sessions in a dictionary keyed by the request's session id."""

    def __init__(self):
        self._sessions: Dict[str, SessionRecord] = {}

    def establish(self, request: AuthRequest, user: SiteUser, tokens: TokenSet) -> None:
        self._sessions[request.session_id] = SessionRecord(
            user=user,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        )

    def clear(self, request: AuthRequest) -> None:
        self._sessions.pop(request.session_id, None)

    def get(self, session_id: str) -> Optional[SessionRecord]:
        return self._sessions.get(session_id)

    def current_user(self, session_id: str) -> Optional[SiteUser]:
        record = self._sessions.get(session_id)
        return record.user if record else None
