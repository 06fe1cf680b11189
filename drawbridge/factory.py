"""Factory wiring the Cognito sign-in components together."""

from __future__ import annotations

from typing import Optional, Union

from drawbridge.auth.controller import AuthFlowController
from drawbridge.auth.provisioning import NamePolicy, UserProvisioner
from drawbridge.auth.redirects import SiteUrls
from drawbridge.auth.state import HmacNonceManager, NonceManager
from drawbridge.cognito.diagnostics import CognitoDiagnostics
from drawbridge.cognito.hosted_ui import HostedUIClient
from drawbridge.cognito.jwks import JWKSCache
from drawbridge.cognito.token_verifier import CognitoTokenVerifier
from drawbridge.config import AuthConfig, ConfigStore, ensure_emergency_access_param
from drawbridge.core.session import SessionManager
from drawbridge.core.token_verifier import TokenVerifier
from drawbridge.core.user_store import UserStore


class CognitoAuthFactory:
    """Creates the components of a site's Cognito sign-in.

    The JWKS cache and nonce manager are created once per factory and shared
    by every controller it builds, so keep one factory per process.

    Args:
        config: Site settings.
        site: The site's public URLs.
        users: The site's user store.
        sessions: The site's session manager.
        nonce_secret: Secret for signing state nonces. Must be the same for
            every worker serving the site.
        name_policy: Optional name derivation policy for provisioning.

    Examples:
        >>> factory = CognitoAuthFactory(
        ...     config=AuthConfig.from_store(store),
        ...     site=SiteUrls("https://example.com"),
        ...     users=my_user_store,
        ...     sessions=my_sessions,
        ...     nonce_secret=settings.SECRET_KEY,
        ... )
        >>> controller = factory.create_auth_controller()
        >>> response = controller.dispatch(request)
    """

    def __init__(
        self,
        config: AuthConfig,
        site: SiteUrls,
        users: UserStore,
        sessions: SessionManager,
        nonce_secret: Union[str, bytes, None] = None,
        name_policy: Optional[NamePolicy] = None,
    ):
        self.config = config
        self.site = site
        self.users = users
        self.sessions = sessions
        self.nonce_secret = nonce_secret
        self.name_policy = name_policy
        self._jwks_cache: Optional[JWKSCache] = None
        self._nonces: Optional[NonceManager] = None

    def create_jwks_cache(self) -> JWKSCache:
        """Create or return the shared JWKS cache."""
        if self._jwks_cache is None:
            self._jwks_cache = JWKSCache()
        return self._jwks_cache

    def create_nonce_manager(self) -> NonceManager:
        """Create or return the shared nonce manager."""
        if self._nonces is None:
            self._nonces = HmacNonceManager(secret=self.nonce_secret)
        return self._nonces

    def create_token_verifier(self) -> TokenVerifier:
        return CognitoTokenVerifier()

    def create_hosted_ui_client(self) -> HostedUIClient:
        # The redirect URI must match the app client registration verbatim
        return HostedUIClient(self.config, redirect_uri=self.site.callback_url)

    def create_provisioner(self) -> UserProvisioner:
        return UserProvisioner(self.users, self.config, name_policy=self.name_policy)

    def create_diagnostics(self, endpoint_url: Optional[str] = None) -> CognitoDiagnostics:
        return CognitoDiagnostics(region=self.config.region, endpoint_url=endpoint_url)

    def create_auth_controller(self) -> AuthFlowController:
        return AuthFlowController(
            config=self.config,
            site=self.site,
            hosted_ui=self.create_hosted_ui_client(),
            jwks_cache=self.create_jwks_cache(),
            verifier=self.create_token_verifier(),
            users=self.users,
            sessions=self.sessions,
            nonces=self.create_nonce_manager(),
            provisioner=self.create_provisioner(),
        )


def create_factory(
    store: ConfigStore,
    home_url: str,
    users: UserStore,
    sessions: SessionManager,
    **kwargs,
) -> CognitoAuthFactory:
    """Create a factory from the site's option store.

    Loads ``AuthConfig`` once and makes sure the installation has an
    emergency access parameter before forced sign-in can lock anyone out.

    Args:
        store: The site's option store.
        home_url: The site's home URL.
        users: The site's user store.
        sessions: The site's session manager.
        **kwargs: Passed to CognitoAuthFactory (``nonce_secret``,
            ``name_policy``).

    Raises:
        ValueError: If home_url is empty.
    """
    if not home_url:
        raise ValueError(
            "Missing required argument 'home_url'. "
            "Example: create_factory(store, 'https://example.com', users, sessions)"
        )
    ensure_emergency_access_param(store)
    return CognitoAuthFactory(
        config=AuthConfig.from_store(store),
        site=SiteUrls(home_url),
        users=users,
        sessions=sessions,
        **kwargs,
    )
