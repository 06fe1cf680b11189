"""Cognito Hosted UI endpoints: authorize, token and logout."""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import urlencode

import requests
import structlog

from drawbridge.config import AuthConfig
from drawbridge.exceptions import ConfigurationError, TokenExchangeError
from drawbridge.models import TokenSet

log = structlog.get_logger()

DEFAULT_TIMEOUT_SECONDS = 15
LOGIN_SCOPES = "openid email profile"


def normalize_domain(domain: str) -> str:
    """Bare host of the Hosted UI domain, whatever way it was entered."""
    domain = domain.strip()
    for scheme in ("https://", "http://"):
        if domain.lower().startswith(scheme):
            domain = domain[len(scheme) :]
    return domain.rstrip("/")


class HostedUIClient:
    """Talks to a user pool's Hosted UI.

    Args:
        config: Site settings; hosted_ui_domain and client_id are required
            before any URL is built or request is made.
        redirect_uri: The callback URL. It must be identical at login and at
            token exchange, and registered in the Cognito app client.
        timeout: HTTP timeout for the token request in seconds.
        session: Optional requests session used for the token request.
    """

    def __init__(
        self,
        config: AuthConfig,
        redirect_uri: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.redirect_uri = redirect_uri
        self.timeout = timeout
        self._http = session or requests

    def _base_url(self) -> str:
        missing = [
            name
            for name, value in (
                ("hosted_ui_domain", self.config.hosted_ui_domain),
                ("client_id", self.config.client_id),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(missing)
        return f"https://{normalize_domain(self.config.hosted_ui_domain)}"

    def authorize_url(self, state: str) -> str:
        """URL that starts the authorization-code flow."""
        params = {
            "client_id": self.config.client_id,
            "response_type": "code",
            "scope": LOGIN_SCOPES,
            "redirect_uri": self.redirect_uri,
            "state": state,
        }
        return f"{self._base_url()}/oauth2/authorize?{urlencode(params)}"

    def logout_url(self, logout_uri: str) -> str:
        """URL that ends the Cognito session and returns to ``logout_uri``.

        ``logout_uri`` must be listed as an allowed sign-out URL in the app
        client.
        """
        params = {"client_id": self.config.client_id, "logout_uri": logout_uri}
        return f"{self._base_url()}/logout?{urlencode(params)}"

    def exchange_code(self, code: str) -> TokenSet:
        """Exchange an authorization code for tokens.

        A code can only be redeemed once, so this is never retried.

        Raises:
            ConfigurationError: If the Hosted UI is not configured
            TokenExchangeError: On network errors, non-200 responses or a
                response without tokens
        """
        token_url = f"{self._base_url()}/oauth2/token"
        body = {
            "grant_type": "authorization_code",
            "client_id": self.config.client_id,
            "code": code,
            "redirect_uri": self.redirect_uri,
        }
        if self.config.client_secret:
            body["client_secret"] = self.config.client_secret

        try:
            resp = self._http.post(
                token_url,
                data=body,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            log.error("token_exchange_request_failed", token_url=token_url, error=str(e))
            raise TokenExchangeError(f"Token request failed: {e}")

        if resp.status_code != 200:
            log.error(
                "token_exchange_rejected",
                token_url=token_url,
                status_code=resp.status_code,
            )
            raise TokenExchangeError(
                f"Token endpoint returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            data: Any = resp.json()
        except ValueError:
            log.error("token_exchange_invalid_json", token_url=token_url)
            raise TokenExchangeError("Token response is not valid JSON", status_code=200)

        if not isinstance(data, dict) or not data.get("access_token"):
            log.error("token_exchange_missing_access_token", token_url=token_url)
            raise TokenExchangeError("Token response has no access_token", status_code=200)
        if not data.get("id_token"):
            log.error("token_exchange_missing_id_token", token_url=token_url)
            raise TokenExchangeError("Token response has no id_token", status_code=200)

        log.info("token_exchange_succeeded")
        return TokenSet(
            access_token=data["access_token"],
            id_token=data["id_token"],
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
            token_type=data.get("token_type", "Bearer"),
        )
