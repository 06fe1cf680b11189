"""Tests for settings loading."""

import pytest

from drawbridge.config import (
    OPTION_AUTO_CREATE_USERS,
    OPTION_CLIENT_ID,
    OPTION_EMERGENCY_ACCESS_PARAM,
    OPTION_FEATURES,
    OPTION_FORCE_COGNITO,
    OPTION_HOSTED_UI_DOMAIN,
    OPTION_REGION,
    OPTION_SYNC_GROUPS,
    OPTION_USER_POOL_ID,
    AuthConfig,
    ConfigStore,
    EnvironmentConfigStore,
    emergency_access_url,
    ensure_emergency_access_param,
    generate_emergency_access_param,
)
from drawbridge.mock import InMemoryConfigStore
from tests.helpers import CLIENT_ID, HOSTED_UI_DOMAIN, ISSUER, REGION, USER_POOL_ID


def test_config_store_is_abstract():
    with pytest.raises(TypeError):
        ConfigStore()


def test_defaults_from_empty_store():
    config = AuthConfig.from_store(InMemoryConfigStore())

    assert config.auto_create_users is True
    assert config.default_role == "subscriber"
    assert config.force_cognito is False
    assert config.authentication_enabled is False
    assert config.button_text == "Login with Cognito"
    assert config.button_color == "#ff9900"
    assert config.button_text_color == "#ffffff"
    assert config.synced_groups == ()
    assert config.custom_attribute_map == {
        "custom:wp_memberrank": "wpuef_cid_c6",
        "custom:wp_membercategory": "wpuef_cid_c10",
    }
    assert not config.is_configured
    assert config.missing_fields() == ["user_pool_id", "client_id", "region", "hosted_ui_domain"]


def test_from_store_reads_plugin_options():
    store = InMemoryConfigStore(
        {
            OPTION_USER_POOL_ID: f" {USER_POOL_ID} ",
            OPTION_CLIENT_ID: CLIENT_ID,
            OPTION_REGION: REGION,
            OPTION_HOSTED_UI_DOMAIN: HOSTED_UI_DOMAIN,
            OPTION_AUTO_CREATE_USERS: "0",
            OPTION_FORCE_COGNITO: "1",
            OPTION_FEATURES: {"authentication": True, "sync": False},
            OPTION_SYNC_GROUPS: ["editor", "author"],
        }
    )

    config = AuthConfig.from_store(store)

    assert config.user_pool_id == USER_POOL_ID
    assert config.auto_create_users is False
    assert config.is_forced
    assert config.synced_groups == ("editor", "author")
    assert config.missing_fields() == []
    assert config.issuer == ISSUER
    assert config.jwks_url == f"{ISSUER}/.well-known/jwks.json"


def test_forced_needs_authentication_feature():
    store = InMemoryConfigStore({OPTION_FORCE_COGNITO: True, OPTION_FEATURES: {}})
    assert not AuthConfig.from_store(store).is_forced


def test_environment_store():
    store = EnvironmentConfigStore(
        environ={
            "DRAWBRIDGE_WP_COGNITO_AUTH_CLIENT_ID": CLIENT_ID,
            "DRAWBRIDGE_WP_COGNITO_FEATURES": "authentication, sync",
            "DRAWBRIDGE_WP_COGNITO_SYNC_GROUPS": "editor,author",
            "DRAWBRIDGE_WP_COGNITO_AUTH_FORCE_COGNITO": "true",
        }
    )

    config = AuthConfig.from_store(store)

    assert config.client_id == CLIENT_ID
    assert config.authentication_enabled
    assert config.force_cognito
    assert config.synced_groups == ("editor", "author")


def test_environment_store_writes_stay_in_memory():
    environ = {}
    store = EnvironmentConfigStore(environ=environ)

    store.set(OPTION_CLIENT_ID, "abc")

    assert store.get(OPTION_CLIENT_ID) == "abc"
    assert environ == {}


# ==================== Emergency access ====================


def test_generate_emergency_access_param():
    param = generate_emergency_access_param()

    assert len(param) == 32
    assert param.isalnum()
    assert param != generate_emergency_access_param()


def test_ensure_emergency_access_param_is_stable():
    store = InMemoryConfigStore()

    first = ensure_emergency_access_param(store)

    assert store.get(OPTION_EMERGENCY_ACCESS_PARAM) == first
    assert ensure_emergency_access_param(store) == first


def test_emergency_access_url():
    assert emergency_access_url("https://example.com/wp-login.php", "abc") == (
        "https://example.com/wp-login.php?abc=1"
    )
    assert emergency_access_url("https://example.com/login?x=1", "abc") == (
        "https://example.com/login?x=1&abc=1"
    )
