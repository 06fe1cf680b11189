"""Sign-in flow controller: login, callback, logout and forced redirects.

Each handler looks at one request and either returns the response to send
or None when the request is not its business. ``dispatch`` runs them in the
order the site's request hooks fire.
"""

from __future__ import annotations

import html
from typing import Callable, Optional, Tuple

import structlog

from drawbridge.auth.provisioning import UserProvisioner
from drawbridge.auth.redirects import CALLBACK_FLAG, SiteUrls, add_query_args
from drawbridge.auth.state import LOGIN_NONCE_ACTION, NonceManager, new_login_state, parse_state
from drawbridge.cognito.hosted_ui import HostedUIClient
from drawbridge.cognito.jwks import JWKSCache
from drawbridge.config import DEFAULT_BUTTON_COLOR, AuthConfig
from drawbridge.core.session import SessionManager
from drawbridge.core.token_verifier import TokenVerifier
from drawbridge.core.user_store import UserStore
from drawbridge.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DrawbridgeError,
    InvalidStateError,
)
from drawbridge.models import (
    AuthRequest,
    AuthResponse,
    ExpectedClaims,
    LoginButton,
    SiteUser,
)

log = structlog.get_logger()

LOGIN_FLAG = "cognito_login"
LOGOUT_FLAG = "cognito_logout"
REAUTH_FLAG = "reauth"

PASSWORD_ACTIONS = ("rp", "resetpass", "lostpassword", "retrievepassword")
# Login-page actions that never trigger a redirect to Cognito or away
EXEMPT_ACTIONS = PASSWORD_ACTIONS + ("register",)

FAILURE_TITLE = "Authentication Error"
FAILURE_MESSAGE = "Authentication failed. Please try again."

BUTTON_HOVER_DARKEN_PERCENT = 20


def darken_hex_color(hex_color: str, percent: int) -> str:
    """Darken ``#rrggbb`` by ``percent``. Invalid input gives the default color."""
    value = hex_color.replace("#", "")
    if len(value) != 6:
        return DEFAULT_BUTTON_COLOR
    try:
        channels = [int(value[i : i + 2], 16) for i in (0, 2, 4)]
    except ValueError:
        return DEFAULT_BUTTON_COLOR
    factor = (100 - percent) / 100
    r, g, b = (max(0, min(255, int(channel * factor))) for channel in channels)
    return f"#{r:02x}{g:02x}{b:02x}"


class AuthFlowController:
    """Drives Cognito Hosted UI sign-in for one site.

    The controller holds no per-request state. The only state shared between
    requests lives in the JWKS cache and the nonce manager.

    Args:
        config: Site settings, loaded once.
        site: The site's public URLs.
        hosted_ui: Client for the user pool's Hosted UI.
        jwks_cache: Key set cache for ID token verification.
        verifier: ID token verifier.
        users: The site's user store.
        sessions: Logs users in and out of the site.
        nonces: Issues and checks the nonce inside the OAuth2 state.
        provisioner: Maps claims to local users. Built from ``users`` and
            ``config`` when omitted.
    """

    def __init__(
        self,
        config: AuthConfig,
        site: SiteUrls,
        hosted_ui: HostedUIClient,
        jwks_cache: JWKSCache,
        verifier: TokenVerifier,
        users: UserStore,
        sessions: SessionManager,
        nonces: NonceManager,
        provisioner: Optional[UserProvisioner] = None,
    ):
        self.config = config
        self.site = site
        self.hosted_ui = hosted_ui
        self.jwks_cache = jwks_cache
        self.verifier = verifier
        self.users = users
        self.sessions = sessions
        self.nonces = nonces
        self.provisioner = provisioner or UserProvisioner(users, config)

    # ==================== Dispatch ====================

    def dispatch(self, request: AuthRequest) -> Optional[AuthResponse]:
        """Handle ``request`` if it belongs to the sign-in flow.

        Returns:
            The response to send, or None to let the site serve the page.
        """
        if not self.config.authentication_enabled:
            return None
        handlers: Tuple[Callable[[AuthRequest], Optional[AuthResponse]], ...] = (
            self.handle_callback,
            self.handle_login,
            self.handle_logout,
            self.handle_reauth_logout,
            self.maybe_redirect_to_cognito,
            self.handle_logged_in_user_on_login_page,
        )
        for handler in handlers:
            response = handler(request)
            if response is not None:
                return response
        return None

    @property
    def expected_claims(self) -> ExpectedClaims:
        return ExpectedClaims(issuer=self.config.issuer, audience=self.config.client_id or None)

    def _failure(self, status_code: int) -> AuthResponse:
        login_url = html.escape(self.site.login_url, quote=True)
        body = (
            "<!DOCTYPE html>\n"
            f"<html><head><title>{FAILURE_TITLE}</title></head>\n"
            f"<body><p>{FAILURE_MESSAGE}</p>\n"
            f'<p><a href="{login_url}">Try Again</a></p></body></html>\n'
        )
        return AuthResponse(status_code=status_code, body=body)

    def _default_destination(self, user: SiteUser) -> str:
        if self.users.can_access_admin(user):
            return self.site.admin_url
        return self.site.home()

    def _destination(self, user: SiteUser, target: str) -> str:
        # The home page is where the login button sends everyone by default
        if not target or target in (self.site.home(), self.site.home_url):
            return self._default_destination(user)
        return target

    # ==================== Login ====================

    def initiate_login(self, request: AuthRequest, redirect_to: Optional[str] = "") -> AuthResponse:
        """Send the browser to the Hosted UI.

        Only a same-site ``redirect_to`` survives into the state token; any
        other target is dropped.
        """
        target = self.site.validate_redirect(redirect_to)
        if redirect_to and not target:
            log.warning("redirect_target_discarded", stage="login")

        try:
            state = new_login_state(self.nonces, request.session_id, target)
            authorize_url = self.hosted_ui.authorize_url(state)
        except ConfigurationError as e:
            log.error("cognito_login_not_configured", missing=e.missing)
            return self._failure(500)

        log.info("cognito_login_initiated", has_redirect=bool(target))
        return AuthResponse.redirect(authorize_url)

    def handle_login(self, request: AuthRequest) -> Optional[AuthResponse]:
        """``?cognito_login=1``: start sign-in, re-authenticating if asked."""
        if not request.flag(LOGIN_FLAG):
            return None

        if request.flag(REAUTH_FLAG) and request.is_authenticated:
            self.sessions.clear(request)
            log.info("reauth_session_cleared")

        target = request.query.get("redirect_to") or self.site.referer_target(request.referer)
        return self.initiate_login(request, target)

    # ==================== Callback ====================

    def handle_callback(self, request: AuthRequest) -> Optional[AuthResponse]:
        """``?cognito_callback=1``: finish sign-in after the Hosted UI.

        Every failure ends the attempt with the same generic page; the cause
        is only logged.
        """
        if not request.flag(CALLBACK_FLAG):
            return None

        provider_error = request.query.get("error")
        if provider_error:
            log.warning(
                "cognito_callback_provider_error",
                error=provider_error,
                description=request.query.get("error_description"),
            )
            return self._failure(400)

        code = request.query.get("code")
        state = request.query.get("state")
        if not code or not state:
            log.warning("cognito_callback_missing_parameters")
            return self._failure(400)

        try:
            user, redirect_to = self._complete_login(request, code, state)
        except AuthenticationError as e:
            log.warning("cognito_login_failed", code=e.code, detail=e.message)
            return self._failure(403)
        except DrawbridgeError as e:
            log.error("cognito_login_error", code=e.code, detail=e.message)
            return self._failure(500)

        return AuthResponse.redirect(redirect_to, user=user)

    def _complete_login(
        self, request: AuthRequest, code: str, state: str
    ) -> Tuple[SiteUser, str]:
        missing = self.config.missing_fields()
        if missing:
            raise ConfigurationError(missing)

        nonce, encoded_target = parse_state(state)
        if not self.nonces.verify(nonce, LOGIN_NONCE_ACTION, request.session_id):
            raise InvalidStateError()

        # The target made a round trip through the browser and Cognito
        redirect_to = self.site.validate_redirect(encoded_target)
        if encoded_target and not redirect_to:
            log.warning("redirect_target_discarded", stage="callback")

        tokens = self.hosted_ui.exchange_code(code)
        jwks = self.jwks_cache.get(self.config.user_pool_id, self.config.region)
        claims = self.verifier.verify(tokens.id_token, jwks, self.expected_claims).unwrap()

        user = self.provisioner.provision(claims)
        self.sessions.establish(request, user, tokens)
        log.info("cognito_login_succeeded", user_id=user.user_id, sub=claims.sub)

        # Capability is only known once the user is loaded
        return user, self._destination(user, redirect_to)

    # ==================== Logout ====================

    def _logout(self, request: AuthRequest, target: str) -> AuthResponse:
        self.sessions.clear(request)

        if not self.config.is_configured:
            log.info("local_logout", reason="cognito_not_configured")
            return AuthResponse.redirect(target)

        log.info("cognito_logout")
        return AuthResponse.redirect(self.hosted_ui.logout_url(target))

    def _logout_target(self, requested: Optional[str]) -> str:
        if self.config.logout_redirect_url:
            return self.config.logout_redirect_url
        return self.site.validate_redirect(requested) or self.site.home()

    def handle_logout(self, request: AuthRequest) -> Optional[AuthResponse]:
        """``?cognito_logout=1``: end the site session and the Cognito one."""
        if not request.flag(LOGOUT_FLAG):
            return None
        return self._logout(request, self._logout_target(request.query.get("redirect_to")))

    def handle_reauth_logout(self, request: AuthRequest) -> Optional[AuthResponse]:
        """``?reauth=1`` on the login page for a signed-in user."""
        if not request.flag(REAUTH_FLAG):
            return None
        if not request.is_authenticated or not request.is_login_page:
            return None
        if not self.config.is_configured:
            return None
        return self._logout(request, self._logout_target(request.query.get("redirect_to")))

    def logout_url(self, default_url: str, redirect: str = "") -> str:
        """The site's logout link, routed through Cognito when configured."""
        if not self.config.is_configured:
            return default_url
        target = self.config.logout_redirect_url or redirect or self.site.home()
        return add_query_args(self.site.login_url, **{LOGOUT_FLAG: "1", "redirect_to": target})

    # ==================== Login page ====================

    def maybe_redirect_to_cognito(self, request: AuthRequest) -> Optional[AuthResponse]:
        """Send anonymous login-page visitors to Cognito when it is forced.

        The emergency access parameter, logout, password reset, registration
        and requests already inside the Cognito flow are let through.
        """
        if not request.is_login_page or request.is_authenticated:
            return None
        if not self.config.is_forced:
            return None

        param = self.config.emergency_access_param
        if param and param in request.query:
            log.info("emergency_access_used")
            return None

        action = request.query.get("action")
        if action == "logout" or action in EXEMPT_ACTIONS:
            return None
        if request.flag(LOGIN_FLAG) or CALLBACK_FLAG in request.query:
            return None

        if not self.config.is_configured:
            # Forcing an unusable Hosted UI would lock everyone out
            log.warning("forced_cognito_skipped", reason="cognito_not_configured")
            return None

        target = (
            request.query.get("redirect_to")
            or request.form.get("redirect_to")
            or self.site.referer_target(request.referer)
        )
        return self.initiate_login(request, target)

    def handle_logged_in_user_on_login_page(
        self, request: AuthRequest
    ) -> Optional[AuthResponse]:
        """Send signed-in users away from the login page."""
        if not request.is_login_page or request.current_user is None:
            return None

        action = request.query.get("action")
        if action == "logout" or action in EXEMPT_ACTIONS:
            return None
        if CALLBACK_FLAG in request.query or request.flag(REAUTH_FLAG):
            return None

        target = self.site.validate_redirect(request.query.get("redirect_to"))
        user = request.current_user
        return AuthResponse.redirect(self._destination(user, target), user=user)

    def login_button(self, request: AuthRequest) -> Optional[LoginButton]:
        """Sign-in button for the login form, or None when it should not show."""
        if request.is_authenticated or not self.config.authentication_enabled:
            return None
        # Forced mode redirects before the form is ever shown
        if self.config.force_cognito:
            return None

        url = add_query_args(self.site.login_url, **{LOGIN_FLAG: "1"})
        redirect_to = request.query.get("redirect_to")
        if redirect_to:
            url = add_query_args(url, redirect_to=redirect_to)

        return LoginButton(
            url=url,
            text=self.config.button_text,
            background_color=self.config.button_color,
            text_color=self.config.button_text_color,
            hover_color=darken_hex_color(self.config.button_color, BUTTON_HOVER_DARKEN_PERCENT),
        )
