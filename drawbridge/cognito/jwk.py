"""JSON Web Key to PEM conversion.

Builds an X.509 SubjectPublicKeyInfo for an RSA JWK by hand:

    SubjectPublicKeyInfo ::= SEQUENCE {
        algorithm         SEQUENCE { OID rsaEncryption, NULL },
        subjectPublicKey  BIT STRING (RSAPublicKey)
    }
    RSAPublicKey ::= SEQUENCE { modulus INTEGER, publicExponent INTEGER }

Only the handful of DER types needed for that structure are encoded here.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, Mapping, Optional

import structlog
from jwt.utils import base64url_decode

log = structlog.get_logger()

RSA_ENCRYPTION_OID = "1.2.840.113549.1.1.1"

PEM_HEADER = "-----BEGIN PUBLIC KEY-----"
PEM_FOOTER = "-----END PUBLIC KEY-----"
PEM_LINE_LENGTH = 64

_TAG_INTEGER = 0x02
_TAG_BIT_STRING = 0x03
_TAG_NULL = 0x05
_TAG_OID = 0x06
_TAG_SEQUENCE = 0x30


def encode_length(length: int) -> bytes:
    """DER length octets: short form below 128, long form otherwise."""
    if length < 0x80:
        return bytes([length])
    octets = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([0x80 | len(octets)]) + octets


def encode_integer(value: bytes) -> bytes:
    """DER INTEGER for an unsigned big-endian value."""
    value = value.lstrip(b"\x00") or b"\x00"
    if value[0] & 0x80:
        # Keep the value positive
        value = b"\x00" + value
    return bytes([_TAG_INTEGER]) + encode_length(len(value)) + value


def encode_sequence(content: bytes) -> bytes:
    return bytes([_TAG_SEQUENCE]) + encode_length(len(content)) + content


def encode_bit_string(content: bytes) -> bytes:
    # Leading octet: number of unused bits in the last byte
    payload = b"\x00" + content
    return bytes([_TAG_BIT_STRING]) + encode_length(len(payload)) + payload


def encode_null() -> bytes:
    return bytes([_TAG_NULL, 0x00])


def _encode_oid_arc(arc: int) -> bytes:
    if arc < 0x80:
        return bytes([arc])
    groups = []
    while arc:
        groups.append(arc & 0x7F)
        arc >>= 7
    groups.reverse()
    return bytes([group | 0x80 for group in groups[:-1]] + [groups[-1]])


def encode_oid(oid: str) -> bytes:
    """DER OBJECT IDENTIFIER from dotted notation."""
    arcs = [int(part) for part in oid.split(".")]
    body = bytes([40 * arcs[0] + arcs[1]])
    body += b"".join(_encode_oid_arc(arc) for arc in arcs[2:])
    return bytes([_TAG_OID]) + encode_length(len(body)) + body


def rsa_public_key_der(modulus: bytes, exponent: bytes) -> bytes:
    """SubjectPublicKeyInfo DER for an RSA modulus and exponent."""
    rsa_public_key = encode_sequence(encode_integer(modulus) + encode_integer(exponent))
    algorithm = encode_sequence(encode_oid(RSA_ENCRYPTION_OID) + encode_null())
    return encode_sequence(algorithm + encode_bit_string(rsa_public_key))


def der_to_pem(der: bytes) -> str:
    encoded = base64.b64encode(der).decode("ascii")
    lines = [
        encoded[i : i + PEM_LINE_LENGTH] for i in range(0, len(encoded), PEM_LINE_LENGTH)
    ]
    return "\n".join([PEM_HEADER, *lines, PEM_FOOTER]) + "\n"


def jwk_to_der(jwk: Mapping[str, Any]) -> Optional[bytes]:
    """DER public key for an RSA JWK, or None if the JWK is unusable."""
    if jwk.get("kty") != "RSA":
        log.debug("jwk_unsupported_key_type", kid=jwk.get("kid"), kty=jwk.get("kty"))
        return None

    n = jwk.get("n")
    e = jwk.get("e")
    if not n or not e:
        log.debug("jwk_missing_components", kid=jwk.get("kid"))
        return None

    try:
        modulus = base64url_decode(n)
        exponent = base64url_decode(e)
    except (binascii.Error, ValueError, TypeError) as exc:
        log.debug("jwk_decode_failed", kid=jwk.get("kid"), error=str(exc))
        return None

    if not modulus.strip(b"\x00") or not exponent.strip(b"\x00"):
        return None

    return rsa_public_key_der(modulus, exponent)


def jwk_to_pem(jwk: Mapping[str, Any]) -> Optional[str]:
    """PEM public key for an RSA JWK, or None if the JWK is unusable."""
    der = jwk_to_der(jwk)
    if der is None:
        return None
    return der_to_pem(der)
