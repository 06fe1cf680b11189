"""Settings for the Cognito sign-in flow.

Settings live in the site's option store under the same option names the
WordPress plugin uses, so an existing installation can be read as-is.
``AuthConfig`` is loaded once per controller and passed to every component
that needs it.
"""

from __future__ import annotations

import os
import secrets
import string
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlencode

import structlog

log = structlog.get_logger()

OPTION_USER_POOL_ID = "wp_cognito_auth_user_pool_id"
OPTION_CLIENT_ID = "wp_cognito_auth_client_id"
OPTION_CLIENT_SECRET = "wp_cognito_auth_client_secret"
OPTION_REGION = "wp_cognito_auth_region"
OPTION_HOSTED_UI_DOMAIN = "wp_cognito_auth_hosted_ui_domain"
OPTION_AUTO_CREATE_USERS = "wp_cognito_auth_auto_create_users"
OPTION_DEFAULT_ROLE = "wp_cognito_auth_default_role"
OPTION_FORCE_COGNITO = "wp_cognito_auth_force_cognito"
OPTION_BUTTON_TEXT = "wp_cognito_auth_login_button_text"
OPTION_BUTTON_COLOR = "wp_cognito_auth_login_button_color"
OPTION_BUTTON_TEXT_COLOR = "wp_cognito_auth_login_button_text_color"
OPTION_LOGOUT_REDIRECT_URL = "wp_cognito_auth_logout_redirect_url"
OPTION_FEATURES = "wp_cognito_features"
OPTION_SYNC_GROUPS = "wp_cognito_sync_groups"
OPTION_EMERGENCY_ACCESS_PARAM = "wp_cognito_emergency_access_param"

DEFAULT_BUTTON_TEXT = "Login with Cognito"
DEFAULT_BUTTON_COLOR = "#ff9900"
DEFAULT_BUTTON_TEXT_COLOR = "#ffffff"
DEFAULT_ROLE = "subscriber"

DEFAULT_CUSTOM_ATTRIBUTE_MAP: Dict[str, str] = {
    "custom:wp_memberrank": "wpuef_cid_c6",
    "custom:wp_membercategory": "wpuef_cid_c10",
}

EMERGENCY_PARAM_LENGTH = 32

_TRUE_STRINGS = {"1", "true", "yes", "on"}


class ConfigStore(ABC):
    """Flat key-value option store owned by the host site."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for ``key`` or ``default``."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Persist ``value`` under ``key``."""


class EnvironmentConfigStore(ConfigStore):
    """Reads options from ``DRAWBRIDGE_<OPTION_NAME>`` environment variables.

    Option names are upper-cased, so ``wp_cognito_auth_client_id`` is read from
    ``DRAWBRIDGE_WP_COGNITO_AUTH_CLIENT_ID``. Writes are kept in memory for
    the life of the process.
    """

    def __init__(self, prefix: str = "DRAWBRIDGE_", environ: Optional[Mapping[str, str]] = None):
        self.prefix = prefix
        self._environ = environ if environ is not None else os.environ
        self._overrides: Dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._overrides:
            return self._overrides[key]
        return self._environ.get(f"{self.prefix}{key.upper()}", default)

    def set(self, key: str, value: Any) -> None:
        self._overrides[key] = value


def _as_bool(value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _as_tuple(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(",") if part.strip())
    return tuple(str(part) for part in value)


def _feature_enabled(features: Any, name: str) -> bool:
    if isinstance(features, Mapping):
        return _as_bool(features.get(name), False)
    # Comma separated list, as it comes out of an environment variable
    return name in _as_tuple(features)


@dataclass(frozen=True)
class AuthConfig:
    """Cognito sign-in settings for one site."""

    user_pool_id: str = ""
    client_id: str = ""
    client_secret: str = ""
    region: str = ""
    hosted_ui_domain: str = ""
    auto_create_users: bool = True
    default_role: str = DEFAULT_ROLE
    force_cognito: bool = False
    authentication_enabled: bool = False
    button_text: str = DEFAULT_BUTTON_TEXT
    button_color: str = DEFAULT_BUTTON_COLOR
    button_text_color: str = DEFAULT_BUTTON_TEXT_COLOR
    logout_redirect_url: str = ""
    synced_groups: Tuple[str, ...] = ()
    emergency_access_param: str = ""
    custom_attribute_map: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_CUSTOM_ATTRIBUTE_MAP)
    )

    @classmethod
    def from_store(cls, store: ConfigStore) -> "AuthConfig":
        """Load settings from the site's option store."""
        features = store.get(OPTION_FEATURES, {})
        config = cls(
            user_pool_id=(store.get(OPTION_USER_POOL_ID) or "").strip(),
            client_id=(store.get(OPTION_CLIENT_ID) or "").strip(),
            client_secret=store.get(OPTION_CLIENT_SECRET) or "",
            region=(store.get(OPTION_REGION) or "").strip(),
            hosted_ui_domain=(store.get(OPTION_HOSTED_UI_DOMAIN) or "").strip(),
            auto_create_users=_as_bool(store.get(OPTION_AUTO_CREATE_USERS), True),
            default_role=store.get(OPTION_DEFAULT_ROLE) or DEFAULT_ROLE,
            force_cognito=_as_bool(store.get(OPTION_FORCE_COGNITO), False),
            authentication_enabled=_feature_enabled(features, "authentication"),
            button_text=store.get(OPTION_BUTTON_TEXT) or DEFAULT_BUTTON_TEXT,
            button_color=store.get(OPTION_BUTTON_COLOR) or DEFAULT_BUTTON_COLOR,
            button_text_color=store.get(OPTION_BUTTON_TEXT_COLOR) or DEFAULT_BUTTON_TEXT_COLOR,
            logout_redirect_url=store.get(OPTION_LOGOUT_REDIRECT_URL) or "",
            synced_groups=_as_tuple(store.get(OPTION_SYNC_GROUPS)),
            emergency_access_param=store.get(OPTION_EMERGENCY_ACCESS_PARAM) or "",
        )
        log.debug(
            "auth_config_loaded",
            configured=config.is_configured,
            force_cognito=config.force_cognito,
            authentication_enabled=config.authentication_enabled,
        )
        return config

    @property
    def issuer(self) -> str:
        return f"https://cognito-idp.{self.region}.amazonaws.com/{self.user_pool_id}"

    @property
    def jwks_url(self) -> str:
        return f"{self.issuer}/.well-known/jwks.json"

    @property
    def is_configured(self) -> bool:
        """True when the Hosted UI can be reached (domain and client id set)."""
        return bool(self.hosted_ui_domain and self.client_id)

    @property
    def is_forced(self) -> bool:
        return self.authentication_enabled and self.force_cognito

    def missing_fields(self) -> list[str]:
        """Names of settings a complete sign-in flow still needs."""
        required = {
            "user_pool_id": self.user_pool_id,
            "client_id": self.client_id,
            "region": self.region,
            "hosted_ui_domain": self.hosted_ui_domain,
        }
        return [name for name, value in required.items() if not value]


def generate_emergency_access_param(length: int = EMERGENCY_PARAM_LENGTH) -> str:
    """Random alphanumeric secret used as the emergency query flag."""
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def ensure_emergency_access_param(store: ConfigStore) -> str:
    """Return the installation's emergency parameter, creating it once."""
    param = store.get(OPTION_EMERGENCY_ACCESS_PARAM)
    if param:
        return param
    param = generate_emergency_access_param()
    store.set(OPTION_EMERGENCY_ACCESS_PARAM, param)
    log.info("emergency_access_param_created")
    return param


def emergency_access_url(login_url: str, param: str) -> str:
    """Login URL that skips the forced Cognito redirect."""
    separator = "&" if "?" in login_url else "?"
    return f"{login_url}{separator}{urlencode({param: '1'})}"
