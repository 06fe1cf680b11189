"""AWS Cognito ID token verifier.

This module verifies Cognito-issued ID tokens against a JWKS document:
- Only RS256 is accepted; the ``alg`` header is checked before anything else
- Keys are converted from JWK to PEM locally (see ``drawbridge.cognito.jwk``)
- Time-bound claims are checked before the signature, identity claims after
"""

from __future__ import annotations

import binascii
import json
import math
import time
from typing import Any, Callable, Mapping, Optional

import structlog
from jwt.algorithms import RSAAlgorithm
from jwt.exceptions import InvalidKeyError
from jwt.utils import base64url_decode

from drawbridge.cognito.jwk import jwk_to_pem
from drawbridge.core.token_verifier import TokenVerifier
from drawbridge.models import (
    Claims,
    ExpectedClaims,
    VerificationFailure,
    VerificationResult,
)

log = structlog.get_logger()

SUPPORTED_ALGORITHM = "RS256"
ID_TOKEN_USE = "id"
# Largest allowed gap between a token's iat and our clock
DEFAULT_MAX_FUTURE_IAT_SECONDS = 300


def _decode_segment(segment: str) -> Optional[dict[str, Any]]:
    try:
        decoded = json.loads(base64url_decode(segment))
    except (binascii.Error, ValueError, TypeError):
        return None
    return decoded if isinstance(decoded, dict) else None


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


class CognitoTokenVerifier(TokenVerifier):
    """Verifies RS256 ID tokens issued by a Cognito user pool.

    Args:
        clock: Returns the current time in seconds. Defaults to time.time.
        max_future_iat_seconds: How far in the future ``iat`` may be before
            the token is rejected as issued in the future. Defaults to 300.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        max_future_iat_seconds: int = DEFAULT_MAX_FUTURE_IAT_SECONDS,
    ):
        self.clock = clock
        self.max_future_iat_seconds = max_future_iat_seconds
        self._algorithm = RSAAlgorithm(RSAAlgorithm.SHA256)

    def _reject(
        self, failure: VerificationFailure, detail: str, **context: Any
    ) -> VerificationResult:
        log.warning(
            "token_verification_failed",
            failure=failure.value,
            detail=detail,
            **context,
        )
        return VerificationResult.fail(failure, detail)

    def _check_time_claims(self, payload: Mapping[str, Any]) -> Optional[VerificationResult]:
        now = self.clock()

        for claim in ("exp", "nbf", "iat"):
            if claim in payload and not _is_number(payload[claim]):
                return self._reject(
                    VerificationFailure.MALFORMED_TOKEN, f"Claim '{claim}' is not numeric"
                )

        if "exp" in payload and payload["exp"] < now:
            return self._reject(
                VerificationFailure.EXPIRED, "Token has expired", exp=payload["exp"]
            )
        if "nbf" in payload and payload["nbf"] > now:
            return self._reject(
                VerificationFailure.NOT_YET_VALID, "Token not yet valid", nbf=payload["nbf"]
            )
        if "iat" in payload and payload["iat"] > now + self.max_future_iat_seconds:
            return self._reject(
                VerificationFailure.ISSUED_IN_FUTURE,
                "Token issued in the future",
                iat=payload["iat"],
            )
        return None

    def _find_key(self, jwks: Mapping[str, Any], kid: str) -> Optional[Mapping[str, Any]]:
        keys = jwks.get("keys") if isinstance(jwks, Mapping) else None
        for jwk in keys or []:
            if isinstance(jwk, Mapping) and jwk.get("kid") == kid:
                return jwk
        return None

    def _signature_matches(self, signing_input: bytes, signature: str, pem: str) -> bool:
        try:
            key = self._algorithm.prepare_key(pem)
            raw_signature = base64url_decode(signature)
        except (InvalidKeyError, binascii.Error, ValueError, TypeError) as e:
            log.debug("signature_check_aborted", error=str(e))
            return False
        return self._algorithm.verify(signing_input, key, raw_signature)

    def _check_identity_claims(
        self, payload: Mapping[str, Any], expected: ExpectedClaims
    ) -> Optional[VerificationResult]:
        if expected.audience:
            aud = payload.get("aud")
            if isinstance(aud, list):
                audience_ok = expected.audience in aud
            else:
                audience_ok = aud == expected.audience
            if not audience_ok:
                return self._reject(
                    VerificationFailure.INVALID_AUDIENCE, "Invalid audience", aud=aud
                )

        iss = payload.get("iss")
        if iss != expected.issuer:
            return self._reject(
                VerificationFailure.INVALID_ISSUER, "Invalid issuer", iss=iss
            )

        token_use = payload.get("token_use")
        if token_use != ID_TOKEN_USE:
            return self._reject(
                VerificationFailure.WRONG_TOKEN_TYPE,
                f"Invalid token_use: expected {ID_TOKEN_USE}, got {token_use}",
            )
        return None

    def verify(
        self,
        token: str,
        jwks: Mapping[str, Any],
        expected: ExpectedClaims,
    ) -> VerificationResult:
        """Verify a Cognito ID token and return its claims."""
        if not isinstance(token, str):
            return self._reject(VerificationFailure.MALFORMED_TOKEN, "Token is not a string")

        parts = token.split(".")
        if len(parts) != 3:
            return self._reject(
                VerificationFailure.MALFORMED_TOKEN, "Invalid JWT format", parts=len(parts)
            )
        header_b64, payload_b64, signature_b64 = parts

        header = _decode_segment(header_b64)
        payload = _decode_segment(payload_b64)
        if header is None or payload is None:
            return self._reject(VerificationFailure.MALFORMED_TOKEN, "Invalid JWT encoding")

        alg = header.get("alg")
        if alg != SUPPORTED_ALGORITHM:
            return self._reject(
                VerificationFailure.INVALID_SIGNATURE, "Unsupported algorithm", alg=alg
            )

        kid = header.get("kid")
        if not kid:
            return self._reject(VerificationFailure.UNKNOWN_KEY, "Token missing kid header")

        failed = self._check_time_claims(payload)
        if failed is not None:
            return failed

        jwk = self._find_key(jwks, kid)
        if jwk is None:
            return self._reject(
                VerificationFailure.UNKNOWN_KEY, "Signing key not found", kid=kid
            )

        pem = jwk_to_pem(jwk)
        if pem is None:
            return self._reject(
                VerificationFailure.UNKNOWN_KEY, "Signing key is not a usable RSA key", kid=kid
            )

        signing_input = f"{header_b64}.{payload_b64}".encode("ascii", errors="replace")
        if not self._signature_matches(signing_input, signature_b64, pem):
            return self._reject(
                VerificationFailure.INVALID_SIGNATURE, "Invalid JWT signature", kid=kid
            )

        failed = self._check_identity_claims(payload, expected)
        if failed is not None:
            return failed

        claims = Claims.from_payload(payload)
        log.debug("token_verified", sub=claims.sub)
        return VerificationResult.success(claims)
