"""JWKS fetching and caching for Cognito user pools."""

from __future__ import annotations

import hashlib
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

import requests
import structlog

from drawbridge.exceptions import ConfigurationError, JWKSFetchError

log = structlog.get_logger()

DEFAULT_JWKS_TTL_SECONDS = 3600
DEFAULT_TIMEOUT_SECONDS = 15


def build_jwks_url(region: str, user_pool_id: str) -> str:
    return f"https://cognito-idp.{region}.amazonaws.com/{user_pool_id}/.well-known/jwks.json"


def cache_key(user_pool_id: str) -> str:
    """Cache key for a pool's key set."""
    return "cognito_jwks_" + hashlib.md5(user_pool_id.encode("utf-8")).hexdigest()


class JWKSCache:
    """Time-based cache of user pool key sets.

    Failed fetches are never cached; the next call simply tries again.

    Args:
        ttl_seconds: How long a fetched key set is reused. Defaults to 1 hour.
        timeout: HTTP timeout for the JWKS request in seconds.
        clock: Returns the current time in seconds. Defaults to time.time.
        session: Optional requests session used for the fetch.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_JWKS_TTL_SECONDS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.time,
        session: Optional[requests.Session] = None,
    ):
        self.ttl_seconds = ttl_seconds
        self.timeout = timeout
        self.clock = clock
        self._http = session or requests
        # {cache_key: (expires_at, jwks)}
        self._entries: Dict[str, Tuple[float, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def _cached(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry and entry[0] > self.clock():
                return entry[1]
        return None

    def _fetch(self, url: str) -> Dict[str, Any]:
        try:
            resp = self._http.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            log.error("jwks_fetch_failed", jwks_url=url, error=str(e))
            raise JWKSFetchError(f"Failed to fetch JWKS: {e}")

        if resp.status_code != 200:
            log.error("jwks_fetch_failed", jwks_url=url, status_code=resp.status_code)
            raise JWKSFetchError(f"Failed to fetch JWKS: HTTP {resp.status_code}")

        try:
            jwks = resp.json()
        except ValueError as e:
            log.error("jwks_invalid_json", jwks_url=url, error=str(e))
            raise JWKSFetchError("JWKS response is not valid JSON")

        if not isinstance(jwks, dict) or not isinstance(jwks.get("keys"), list):
            log.error("jwks_missing_keys", jwks_url=url)
            raise JWKSFetchError("JWKS response has no keys")
        return jwks

    def get(self, user_pool_id: str, region: str) -> Dict[str, Any]:
        """Return the pool's key set, fetching it when not cached.

        Raises:
            ConfigurationError: If the pool id or region is missing
            JWKSFetchError: If the key set cannot be fetched
        """
        missing = [
            name
            for name, value in (("user_pool_id", user_pool_id), ("region", region))
            if not value
        ]
        if missing:
            raise ConfigurationError(missing)

        key = cache_key(user_pool_id)
        jwks = self._cached(key)
        if jwks is not None:
            return jwks

        url = build_jwks_url(region, user_pool_id)
        jwks = self._fetch(url)

        # Concurrent misses may both fetch; the last write wins and is equivalent
        with self._lock:
            self._entries[key] = (self.clock() + self.ttl_seconds, jwks)

        log.debug("jwks_cached", jwks_url=url, key_count=len(jwks["keys"]))
        return jwks

    def invalidate(self, user_pool_id: str) -> None:
        with self._lock:
            self._entries.pop(cache_key(user_pool_id), None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
