"""AWS Cognito implementations: key decoding, verification, Hosted UI."""

from drawbridge.cognito.diagnostics import CognitoDiagnostics, ConnectionCheck
from drawbridge.cognito.hosted_ui import HostedUIClient
from drawbridge.cognito.jwk import jwk_to_der, jwk_to_pem
from drawbridge.cognito.jwks import JWKSCache
from drawbridge.cognito.token_verifier import CognitoTokenVerifier

__all__ = [
    "CognitoDiagnostics",
    "CognitoTokenVerifier",
    "ConnectionCheck",
    "HostedUIClient",
    "JWKSCache",
    "jwk_to_der",
    "jwk_to_pem",
]
