"""Keys, tokens and request builders shared by the tests."""

import time

from cryptography.hazmat.primitives import serialization
from jwt.utils import base64url_encode

from drawbridge.models import AuthRequest

REGION = "us-east-1"
USER_POOL_ID = "us-east-1_TestPool"
CLIENT_ID = "test-client-id"
HOSTED_UI_DOMAIN = "auth.example.com"
HOME_URL = "https://example.com"
KID = "test-key-1"
ISSUER = f"https://cognito-idp.{REGION}.amazonaws.com/{USER_POOL_ID}"
SUB = "11111111-2222-3333-4444-555555555555"


def _int_to_base64url(value: int) -> str:
    raw = value.to_bytes((value.bit_length() + 7) // 8, "big")
    return base64url_encode(raw).decode("ascii")


def public_jwk(private_key, kid: str = KID) -> dict:
    """RSA JWK for the public half of ``private_key``."""
    numbers = private_key.public_key().public_numbers()
    return {
        "kty": "RSA",
        "kid": kid,
        "alg": "RS256",
        "use": "sig",
        "n": _int_to_base64url(numbers.n),
        "e": _int_to_base64url(numbers.e),
    }


def private_pem(private_key) -> bytes:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def claims_payload(**overrides) -> dict:
    """A valid Cognito ID token payload. A None override drops the claim."""
    now = int(time.time())
    payload = {
        "sub": SUB,
        "email": "jane@example.com",
        "given_name": "Jane",
        "family_name": "Doe",
        "aud": CLIENT_ID,
        "iss": ISSUER,
        "token_use": "id",
        "iat": now,
        "exp": now + 3600,
    }
    payload.update(overrides)
    return {key: value for key, value in payload.items() if value is not None}


def login_page(query=None, **kwargs) -> AuthRequest:
    """A request for the login page."""
    kwargs.setdefault("session_id", "session-1")
    return AuthRequest(query=query or {}, is_login_page=True, **kwargs)
