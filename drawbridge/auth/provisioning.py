"""Create or update the local user for a verified set of claims."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import structlog

from drawbridge.config import AuthConfig
from drawbridge.core.user_store import UserStore
from drawbridge.exceptions import UserProvisioningError
from drawbridge.models import GROUPS_CLAIM, Claims, SiteUser, UserAttributes

log = structlog.get_logger()

# Cognito group "WP_editor" grants the site role "editor"
GROUP_ROLE_PREFIX = "WP_"


@dataclass(frozen=True)
class NamePolicy:
    """Which claims supply a user's first and last name, in priority order.

    The first non-empty claim wins. When either name is still missing and
    ``split_full_name`` is set, the ``name`` claim is split on its first space.
    """

    first_name_claims: Tuple[str, ...] = ("given_name", "custom:first_name")
    last_name_claims: Tuple[str, ...] = ("family_name", "custom:last_name")
    split_full_name: bool = True

    @staticmethod
    def _first_present(claims: Claims, names: Sequence[str]) -> Optional[str]:
        for name in names:
            value = claims.get(name)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    def derive(self, claims: Claims) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        """Return ``(first_name, last_name, display_name)``."""
        first = self._first_present(claims, self.first_name_claims)
        last = self._first_present(claims, self.last_name_claims)

        full_name = (claims.name or "").strip()
        if self.split_full_name and full_name and (not first or not last):
            parts = full_name.split(" ", 1)
            if not first:
                first = parts[0]
            if not last and len(parts) > 1 and parts[1].strip():
                last = parts[1].strip()

        if full_name:
            display = full_name
        elif first and last:
            display = f"{first} {last}"
        else:
            display = first
        return first, last, display


class UserProvisioner:
    """Maps Cognito identities onto local users.

    Args:
        store: The site's user store.
        config: Site settings (auto-creation, default role, synced groups,
            custom attribute map).
        name_policy: How first/last/display names are derived from claims.
    """

    def __init__(
        self,
        store: UserStore,
        config: AuthConfig,
        name_policy: Optional[NamePolicy] = None,
    ):
        self.store = store
        self.config = config
        self.name_policy = name_policy or NamePolicy()

    def provision(self, claims: Claims) -> SiteUser:
        """Find, link or create the user for ``claims`` and refresh its profile.

        Raises:
            UserProvisioningError: If no user matches and none may be created,
                or the store fails
        """
        if not claims.sub:
            raise UserProvisioningError("Token has no subject")

        try:
            user = self._find_or_create(claims)
            self._update_profile(user, claims)
            self._sync_roles(user, claims)
        except UserProvisioningError:
            raise
        except Exception as e:
            log.error("user_provisioning_failed", sub=claims.sub, error=str(e))
            raise UserProvisioningError(f"User store error: {e}")
        return user

    def _find_or_create(self, claims: Claims) -> SiteUser:
        user = self.store.find_by_cognito_id(claims.sub)
        if user is not None:
            return user

        if claims.email:
            user = self.store.find_by_email(claims.email)
            if user is not None:
                self.store.link_cognito_id(user, claims.sub)
                log.info("user_linked_by_email", user_id=user.user_id, sub=claims.sub)
                return user

        if not self.config.auto_create_users:
            log.warning("user_auto_create_disabled", sub=claims.sub)
            raise UserProvisioningError("No matching user and auto-creation is disabled")
        if not claims.email:
            raise UserProvisioningError("Cannot create a user without an email claim")

        username = self.generate_username(claims)
        user = self.store.create(username, claims.email)
        self.store.set_role(user, self.config.default_role)
        self.store.link_cognito_id(user, claims.sub)
        log.info(
            "user_created",
            user_id=user.user_id,
            username=username,
            role=self.config.default_role,
        )
        return user

    def generate_username(self, claims: Claims) -> str:
        """``preferred_username`` or the email's local part, made unique."""
        base = claims.preferred_username or (claims.email or "").split("@")[0] or claims.sub
        username = base
        counter = 1
        while self.store.username_exists(username):
            username = f"{base}{counter}"
            counter += 1
        return username

    def _update_profile(self, user: SiteUser, claims: Claims) -> None:
        first, last, display = self.name_policy.derive(claims)
        custom_attrs = {
            meta_key: claims.custom[claim]
            for claim, meta_key in self.config.custom_attribute_map.items()
            if claim in claims.custom
        }
        self.store.update_attributes(
            user,
            UserAttributes(
                first_name=first,
                last_name=last,
                display_name=display,
                groups=list(claims.groups) if GROUPS_CLAIM in claims.raw else None,
                custom_attrs=custom_attrs,
            ),
        )

    def _sync_roles(self, user: SiteUser, claims: Claims) -> None:
        groups = set(claims.groups)
        current = set(self.store.get_roles(user))
        for role in self.config.synced_groups:
            member = f"{GROUP_ROLE_PREFIX}{role}" in groups
            if member and role not in current:
                self.store.add_role(user, role)
                log.info("role_granted_from_group", user_id=user.user_id, role=role)
            elif not member and role in current:
                self.store.remove_role(user, role)
                log.info("role_revoked_from_group", user_id=user.user_id, role=role)
