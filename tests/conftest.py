"""Shared pytest fixtures for drawbridge tests."""

import os

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from moto import mock_aws

from drawbridge.auth.redirects import SiteUrls
from drawbridge.auth.state import HmacNonceManager
from drawbridge.config import AuthConfig
from tests.helpers import (
    CLIENT_ID,
    HOME_URL,
    HOSTED_UI_DOMAIN,
    KID,
    REGION,
    USER_POOL_ID,
    claims_payload,
    private_pem,
    public_jwk,
)


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for testing."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = REGION


@pytest.fixture
def mock_cognito(aws_credentials):
    """Mock Cognito service."""
    with mock_aws():
        yield


@pytest.fixture
def region():
    """AWS region for tests."""
    return REGION


# ==================== Keys and tokens ====================


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def jwks(rsa_key):
    return {"keys": [public_jwk(rsa_key)]}


@pytest.fixture
def make_token(rsa_key):
    """Sign a payload with the test key (RS256 and kid=KID unless overridden)."""

    def _make(payload=None, key=None, kid=KID, algorithm="RS256"):
        if algorithm.startswith("RS"):
            signing_key = private_pem(key or rsa_key)
        else:
            signing_key = key
        headers = {"kid": kid} if kid is not None else None
        return jwt.encode(
            payload if payload is not None else claims_payload(),
            signing_key,
            algorithm=algorithm,
            headers=headers,
        )

    return _make


# ==================== Site ====================


@pytest.fixture
def config():
    return AuthConfig(
        user_pool_id=USER_POOL_ID,
        client_id=CLIENT_ID,
        region=REGION,
        hosted_ui_domain=HOSTED_UI_DOMAIN,
        authentication_enabled=True,
        synced_groups=("editor",),
        emergency_access_param="letmein",
    )


@pytest.fixture
def site():
    return SiteUrls(HOME_URL)


@pytest.fixture
def nonces():
    return HmacNonceManager(secret="test-secret")
