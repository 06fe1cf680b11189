"""Tests for drawbridge models."""

import pytest

from drawbridge.exceptions import TokenVerificationError
from drawbridge.models import (
    AuthRequest,
    AuthResponse,
    Claims,
    SiteUser,
    TokenSet,
    UserAttributes,
    VerificationFailure,
    VerificationResult,
)


def test_token_set_defaults():
    """Test TokenSet dataclass."""
    tokens = TokenSet(access_token="a", id_token="i")
    assert tokens.refresh_token is None
    assert tokens.expires_in is None
    assert tokens.token_type == "Bearer"


def test_claims_from_payload():
    """Test Claims splits standard, group and custom claims."""
    payload = {
        "sub": "abc",
        "email": "jane@example.com",
        "cognito:groups": ["WP_editor"],
        "custom:wp_memberrank": "gold",
        "custom:wp_membercategory": "staff",
        "token_use": "id",
    }

    claims = Claims.from_payload(payload)

    assert claims.sub == "abc"
    assert claims.groups == ["WP_editor"]
    assert claims.custom == {"custom:wp_memberrank": "gold", "custom:wp_membercategory": "staff"}
    assert claims.raw == payload
    assert claims.get("custom:wp_memberrank") == "gold"
    assert claims.get("missing", "x") == "x"


def test_claims_single_group_string():
    assert Claims.from_payload({"sub": "abc", "cognito:groups": "admins"}).groups == ["admins"]


def test_claims_without_groups():
    assert Claims.from_payload({"sub": "abc"}).groups == []


def test_verification_result_success():
    claims = Claims(sub="abc")
    result = VerificationResult.success(claims)

    assert result.ok
    assert result.unwrap() is claims


def test_verification_result_failure():
    result = VerificationResult.fail(VerificationFailure.INVALID_ISSUER, "Invalid issuer")

    assert not result.ok
    with pytest.raises(TokenVerificationError) as exc_info:
        result.unwrap()
    assert exc_info.value.code == "INVALID_ISSUER"


def test_verification_failure_is_string():
    assert VerificationFailure.EXPIRED == "EXPIRED"


def test_site_user_defaults():
    """Test SiteUser dataclass."""
    user = SiteUser(user_id=1, username="jane", email="jane@example.com")
    assert user.roles == []
    assert user.groups == []
    assert user.meta == {}
    assert user.cognito_user_id is None


def test_user_attributes_leave_groups_unset():
    assert UserAttributes().groups is None


def test_auth_request_flags():
    request = AuthRequest(query={"cognito_login": "1", "reauth": "0"})

    assert request.flag("cognito_login")
    assert not request.flag("reauth")
    assert not request.flag("cognito_logout")
    assert not request.is_authenticated


def test_auth_response_redirect():
    response = AuthResponse.redirect("https://example.com/")

    assert response.status_code == 302
    assert response.location == "https://example.com/"
    assert response.is_redirect
    assert not AuthResponse(status_code=403, body="no").is_redirect
