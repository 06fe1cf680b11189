"""Tests for JWK to PEM conversion."""

from cryptography.hazmat.primitives.serialization import load_pem_public_key

from drawbridge.cognito.jwk import (
    PEM_FOOTER,
    PEM_HEADER,
    der_to_pem,
    encode_integer,
    encode_length,
    encode_oid,
    jwk_to_der,
    jwk_to_pem,
    rsa_public_key_der,
)
from tests.helpers import public_jwk


# ==================== DER primitives ====================


def test_encode_length_short_form():
    assert encode_length(0) == b"\x00"
    assert encode_length(127) == b"\x7f"


def test_encode_length_long_form():
    assert encode_length(128) == b"\x81\x80"
    assert encode_length(256) == b"\x82\x01\x00"
    assert encode_length(65535) == b"\x82\xff\xff"


def test_encode_integer_pads_high_bit():
    """A value with the top bit set gets a 0x00 prefix to stay positive."""
    assert encode_integer(b"\x80") == b"\x02\x02\x00\x80"


def test_encode_integer_strips_leading_zeros():
    assert encode_integer(b"\x00\x00\x01\x00\x01") == b"\x02\x03\x01\x00\x01"


def test_encode_oid_rsa_encryption():
    assert encode_oid("1.2.840.113549.1.1.1") == bytes.fromhex("06092a864886f70d010101")


def test_der_to_pem_wraps_lines():
    pem = der_to_pem(bytes(range(256)))
    lines = pem.strip().split("\n")

    assert lines[0] == PEM_HEADER
    assert lines[-1] == PEM_FOOTER
    assert all(len(line) <= 64 for line in lines[1:-1])
    assert pem.endswith("\n")


def test_small_key_der_is_well_formed():
    der = rsa_public_key_der(b"\x00\xc3", b"\x01\x00\x01")

    # Outer SEQUENCE covers the rest of the bytes
    assert der[0] == 0x30
    assert der[1] == len(der) - 2


# ==================== JWK conversion ====================


def test_jwk_to_pem_matches_original_key(rsa_key):
    """The PEM loads as the same public key the JWK was made from."""
    pem = jwk_to_pem(public_jwk(rsa_key))

    loaded = load_pem_public_key(pem.encode("ascii"))
    assert loaded.public_numbers() == rsa_key.public_key().public_numbers()


def test_jwk_to_pem_is_deterministic(rsa_key):
    jwk = public_jwk(rsa_key)
    assert jwk_to_pem(jwk) == jwk_to_pem(dict(jwk))


def test_jwk_to_pem_rejects_non_rsa():
    assert jwk_to_pem({"kty": "EC", "crv": "P-256", "x": "AQ", "y": "AQ"}) is None


def test_jwk_to_pem_rejects_missing_components(rsa_key):
    jwk = public_jwk(rsa_key)
    del jwk["e"]
    assert jwk_to_pem(jwk) is None
    assert jwk_to_pem({"kty": "RSA", "n": "", "e": "AQAB"}) is None


def test_jwk_to_der_rejects_zero_modulus():
    assert jwk_to_der({"kty": "RSA", "n": "AA", "e": "AQAB"}) is None
