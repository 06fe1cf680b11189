"""Drawbridge - Cognito Hosted UI sign-in for WordPress-style sites.

Drawbridge signs site users in through an AWS Cognito user pool's Hosted UI
and keeps the local user records in step with the pool.

Features:
- Authorization-code login, callback and logout through the Hosted UI
- ID token verification with locally decoded JWKS keys and JWKS caching
- Replay-safe state tokens and same-site redirect validation
- User provisioning with Cognito group to role sync
- Forced Cognito sign-in with an emergency access bypass
"""

from drawbridge.auth import (
    AuthFlowController,
    HmacNonceManager,
    NamePolicy,
    NonceManager,
    SiteUrls,
    UserProvisioner,
)
from drawbridge.cognito import (
    CognitoDiagnostics,
    CognitoTokenVerifier,
    ConnectionCheck,
    HostedUIClient,
    JWKSCache,
    jwk_to_pem,
)
from drawbridge.config import (
    AuthConfig,
    ConfigStore,
    EnvironmentConfigStore,
    emergency_access_url,
    ensure_emergency_access_param,
)
from drawbridge.core import SessionManager, TokenVerifier, UserStore
from drawbridge.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DrawbridgeError,
    IdentityProviderError,
    InvalidStateError,
    JWKSFetchError,
    TokenExchangeError,
    TokenVerificationError,
    UserProvisioningError,
)
from drawbridge.factory import CognitoAuthFactory, create_factory
from drawbridge.models import (
    AuthRequest,
    AuthResponse,
    Claims,
    ExpectedClaims,
    LoginButton,
    SiteUser,
    TokenSet,
    UserAttributes,
    VerificationFailure,
    VerificationResult,
)

__version__ = "0.1.0"

__all__ = [
    # Core interfaces
    "SessionManager",
    "TokenVerifier",
    "UserStore",
    "ConfigStore",
    "NonceManager",
    # Factory (recommended entry point)
    "create_factory",
    "CognitoAuthFactory",
    # Flow
    "AuthFlowController",
    "HmacNonceManager",
    "NamePolicy",
    "SiteUrls",
    "UserProvisioner",
    # Cognito
    "CognitoDiagnostics",
    "CognitoTokenVerifier",
    "ConnectionCheck",
    "HostedUIClient",
    "JWKSCache",
    "jwk_to_pem",
    # Configuration
    "AuthConfig",
    "EnvironmentConfigStore",
    "emergency_access_url",
    "ensure_emergency_access_param",
    # Models
    "AuthRequest",
    "AuthResponse",
    "Claims",
    "ExpectedClaims",
    "LoginButton",
    "SiteUser",
    "TokenSet",
    "UserAttributes",
    "VerificationFailure",
    "VerificationResult",
    # Exceptions
    "DrawbridgeError",
    "ConfigurationError",
    "IdentityProviderError",
    "JWKSFetchError",
    "AuthenticationError",
    "InvalidStateError",
    "TokenExchangeError",
    "TokenVerificationError",
    "UserProvisioningError",
]
