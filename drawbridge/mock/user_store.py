"""In-memory implementation of UserStore for testing.

No database required. Users live in a dictionary and are lost when the
process exits.
"""

from __future__ import annotations

import itertools
import secrets
from dataclasses import replace
from typing import Dict, Iterable, Optional

from drawbridge.core.user_store import UserStore
from drawbridge.models import SiteUser, UserAttributes

# Roles that carry the edit_posts or manage_options capability
ADMIN_ROLES = frozenset({"administrator", "editor", "author", "contributor"})


class InMemoryUserStore(UserStore):
    """Dictionary-backed user store.

    Example:
        >>> store = InMemoryUserStore()
        >>> user = store.create("jane", "jane@example.com")
        >>> store.set_role(user, "editor")
        >>> store.can_access_admin(user)
        True
    """

    def __init__(self, users: Optional[Iterable[SiteUser]] = None):
        self._users: Dict[int, SiteUser] = {}
        self._passwords: Dict[int, str] = {}
        self._ids = itertools.count(1)
        for user in users or []:
            self.add(user)

    def add(self, user: SiteUser) -> SiteUser:
        """Insert an existing user record (e.g. test fixtures)."""
        if user.user_id is None:
            user = replace(user, user_id=next(self._ids))
        self._users[user.user_id] = user
        return user

    def get(self, user_id: int) -> Optional[SiteUser]:
        return self._users.get(user_id)

    @property
    def users(self) -> list[SiteUser]:
        return list(self._users.values())

    def find_by_cognito_id(self, cognito_user_id: str) -> Optional[SiteUser]:
        for user in self._users.values():
            if user.cognito_user_id == cognito_user_id:
                return user
        return None

    def find_by_email(self, email: str) -> Optional[SiteUser]:
        wanted = email.lower()
        for user in self._users.values():
            if user.email.lower() == wanted:
                return user
        return None

    def username_exists(self, username: str) -> bool:
        return any(user.username == username for user in self._users.values())

    def create(self, username: str, email: str) -> SiteUser:
        if self.username_exists(username):
            raise ValueError(f"Username '{username}' already exists")
        if self.find_by_email(email) is not None:
            raise ValueError(f"Email '{email}' already registered")
        user = SiteUser(user_id=next(self._ids), username=username, email=email)
        self._users[user.user_id] = user
        self._passwords[user.user_id] = secrets.token_urlsafe(24)
        return user

    def link_cognito_id(self, user: SiteUser, cognito_user_id: str) -> None:
        user.cognito_user_id = cognito_user_id

    def set_role(self, user: SiteUser, role: str) -> None:
        user.roles = [role]

    def get_roles(self, user: SiteUser) -> list[str]:
        return list(user.roles)

    def add_role(self, user: SiteUser, role: str) -> None:
        if role not in user.roles:
            user.roles.append(role)

    def remove_role(self, user: SiteUser, role: str) -> None:
        user.roles = [existing for existing in user.roles if existing != role]

    def update_attributes(self, user: SiteUser, attributes: UserAttributes) -> None:
        if attributes.first_name is not None:
            user.first_name = attributes.first_name
        if attributes.last_name is not None:
            user.last_name = attributes.last_name
        if attributes.display_name is not None:
            user.display_name = attributes.display_name
        if attributes.groups is not None:
            user.groups = list(attributes.groups)
        user.meta.update(attributes.custom_attrs)

    def can_access_admin(self, user: SiteUser) -> bool:
        return bool(ADMIN_ROLES.intersection(user.roles))
