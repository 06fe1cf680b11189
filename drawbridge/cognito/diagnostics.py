"""Connection checks for a site's Cognito settings.

These back the "test connection" action of the settings screen:
- Is the JWKS endpoint reachable for the configured pool and region?
- Is the app client set up for the Hosted UI sign-in this library performs?

The app client check reads pool metadata only and needs
``cognito-idp:DescribeUserPoolClient``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

import boto3
import requests
import structlog
from botocore.exceptions import ClientError

from drawbridge.cognito.hosted_ui import LOGIN_SCOPES
from drawbridge.cognito.jwks import build_jwks_url
from drawbridge.exceptions import IdentityProviderError

log = structlog.get_logger()

DEFAULT_TIMEOUT_SECONDS = 10


@dataclass
class ConnectionCheck:
    """Outcome of a connection test, ready to show to an administrator."""

    ok: bool
    message: str


class CognitoDiagnostics:
    """Checks a site's Cognito configuration against the real user pool.

    Args:
        region: AWS region of the user pool.
        endpoint_url: Optional custom endpoint URL for LocalStack testing.
        timeout: HTTP timeout for the JWKS check in seconds.
    """

    def __init__(
        self,
        region: str,
        endpoint_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.region = region
        self.timeout = timeout
        self._endpoint_url = endpoint_url
        self._client: Any = None

    @property
    def client(self) -> Any:
        # Created lazily so a JWKS-only check needs no AWS credentials
        if self._client is None:
            client_kwargs: Dict[str, Any] = {"region_name": self.region}
            if self._endpoint_url:
                client_kwargs["endpoint_url"] = self._endpoint_url
            self._client = boto3.client("cognito-idp", **client_kwargs)
        return self._client

    def check_jwks(self, user_pool_id: str) -> ConnectionCheck:
        """Fetch the pool's JWKS once, bypassing any cache."""
        if not user_pool_id or not self.region:
            return ConnectionCheck(False, "Please configure User Pool ID and Region first")

        jwks_url = build_jwks_url(self.region, user_pool_id)
        try:
            resp = requests.get(jwks_url, timeout=self.timeout)
        except requests.RequestException as e:
            log.warning("jwks_connection_check_failed", jwks_url=jwks_url, error=str(e))
            return ConnectionCheck(False, str(e))

        if resp.status_code != 200:
            log.warning(
                "jwks_connection_check_failed",
                jwks_url=jwks_url,
                status_code=resp.status_code,
            )
            return ConnectionCheck(False, "Invalid User Pool ID or Region")

        return ConnectionCheck(True, "Connection successful!")

    def check_app_client(
        self,
        user_pool_id: str,
        client_id: str,
        callback_url: str,
        logout_urls: Iterable[str] = (),
    ) -> list[str]:
        """List what keeps the app client from serving Hosted UI sign-in.

        Returns:
            Human-readable problems; empty when the client is usable.

        Raises:
            IdentityProviderError: If the pool or client cannot be described
        """
        try:
            response = self.client.describe_user_pool_client(
                UserPoolId=user_pool_id, ClientId=client_id
            )
        except ClientError as e:
            log.error(
                "describe_app_client_failed",
                user_pool_id=user_pool_id,
                client_id=client_id,
                error=str(e),
            )
            raise IdentityProviderError(
                f"Failed to describe app client: {e}", "describe_user_pool_client"
            )

        app_client = response.get("UserPoolClient", {})
        problems: list[str] = []

        if callback_url not in app_client.get("CallbackURLs", []):
            problems.append(f"Callback URL is not registered: {callback_url}")

        allowed_logout_urls = app_client.get("LogoutURLs", [])
        for url in logout_urls:
            if url not in allowed_logout_urls:
                problems.append(f"Sign-out URL is not allowed: {url}")

        if "code" not in app_client.get("AllowedOAuthFlows", []):
            problems.append("Authorization code grant is not enabled")

        scopes = set(app_client.get("AllowedOAuthScopes", []))
        missing_scopes = [scope for scope in LOGIN_SCOPES.split() if scope not in scopes]
        if missing_scopes:
            problems.append(f"Missing OAuth scopes: {', '.join(missing_scopes)}")

        log.info(
            "app_client_checked",
            user_pool_id=user_pool_id,
            client_id=client_id,
            problem_count=len(problems),
        )
        return problems
