"""Abstract token verifier interface.

This module defines the interface for ID token verification. Verifiers do
not raise for a rejected token: every outcome, good or bad, comes back as a
VerificationResult so callers can match on the failure reason.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from drawbridge.models import ExpectedClaims, VerificationResult


class TokenVerifier(ABC):
    """Abstract interface for JWT verification against a key set.

    Implementations handle:
    - Token parsing
    - Signature verification with a JWKS key
    - Time-bound and identity claim validation

    Implementations:
        - CognitoTokenVerifier: RS256 ID tokens issued by a Cognito user pool
    """

    @abstractmethod
    def verify(
        self,
        token: str,
        jwks: Mapping[str, Any],
        expected: ExpectedClaims,
    ) -> VerificationResult:
        """Verify a compact JWT.

        Args:
            token: The JWT to verify
            jwks: Key set document, ``{"keys": [...]}``
            expected: Issuer and (optional) audience the token must carry

        Returns:
            VerificationResult holding Claims, or the failure reason
        """
