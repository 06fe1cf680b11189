"""Abstract user store interface.

The sign-in flow never touches user storage directly. The host site exposes
its users through this interface; Drawbridge only looks users up, creates
them on first login and keeps their profile and roles in step with Cognito.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from drawbridge.models import SiteUser, UserAttributes


class UserStore(ABC):
    """Abstract interface to the site's user records.

    Implementations:
        - InMemoryUserStore: dictionary-backed store for tests and local runs
    """

    @abstractmethod
    def find_by_cognito_id(self, cognito_user_id: str) -> Optional[SiteUser]:
        """Find the user linked to a Cognito ``sub``."""

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[SiteUser]:
        """Find a user by email address."""

    @abstractmethod
    def username_exists(self, username: str) -> bool:
        """True when ``username`` is already taken."""

    @abstractmethod
    def create(self, username: str, email: str) -> SiteUser:
        """Create a user with a random password.

        Raises:
            Exception: Any storage error; the caller wraps it.
        """

    @abstractmethod
    def link_cognito_id(self, user: SiteUser, cognito_user_id: str) -> None:
        """Remember which Cognito ``sub`` belongs to ``user``."""

    @abstractmethod
    def set_role(self, user: SiteUser, role: str) -> None:
        """Replace all of the user's roles with ``role``."""

    @abstractmethod
    def get_roles(self, user: SiteUser) -> list[str]:
        """Current roles of ``user``."""

    @abstractmethod
    def add_role(self, user: SiteUser, role: str) -> None:
        """Grant ``role`` in addition to the current ones."""

    @abstractmethod
    def remove_role(self, user: SiteUser, role: str) -> None:
        """Revoke ``role``."""

    @abstractmethod
    def update_attributes(self, user: SiteUser, attributes: UserAttributes) -> None:
        """Apply profile updates. ``None`` fields are left unchanged."""

    @abstractmethod
    def can_access_admin(self, user: SiteUser) -> bool:
        """True for users who land on the dashboard after signing in."""
