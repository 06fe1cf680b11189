"""OAuth2 ``state`` tokens and the anti-forgery nonces inside them.

A state token is ``nonce|base64(redirect_target)``. The nonce is bound to the
visitor's session and to the action it was created for, expires after a day,
and can be verified successfully only once.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import secrets
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple, Union

import structlog

log = structlog.get_logger()

STATE_SEPARATOR = "|"
LOGIN_NONCE_ACTION = "cognito_auth"
DEFAULT_NONCE_LIFETIME_SECONDS = 86400
# Tolerated clock drift between web workers issuing and checking nonces
_MAX_ISSUE_SKEW_SECONDS = 60
_MAC_LENGTH = 32


class NonceManager(ABC):
    """Creates and checks session-bound, single-use anti-forgery nonces."""

    @abstractmethod
    def create(self, action: str, session_id: str) -> str:
        """Create a nonce for ``action`` in the given session."""

    @abstractmethod
    def verify(self, nonce: str, action: str, session_id: str) -> bool:
        """Check and consume a nonce. A nonce verifies at most once."""


class HmacNonceManager(NonceManager):
    """HMAC-signed nonces with an in-process record of consumed values.

    Nonces look like ``<random>.<issued-at>.<mac>``. The consumed record only
    keeps entries until they would have expired anyway. Every worker that
    checks nonces must share the same secret; the consumed record is local to
    the process.

    Args:
        secret: Signing key. A random one is generated when omitted, which
            only works for a single process.
        lifetime_seconds: How long a nonce stays valid. Defaults to 24 hours.
        clock: Returns the current time in seconds. Defaults to time.time.
    """

    def __init__(
        self,
        secret: Union[str, bytes, None] = None,
        lifetime_seconds: int = DEFAULT_NONCE_LIFETIME_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if secret is None:
            secret = secrets.token_bytes(32)
        self._secret = secret.encode("utf-8") if isinstance(secret, str) else secret
        self.lifetime_seconds = lifetime_seconds
        self.clock = clock
        self._consumed: Dict[str, float] = {}
        self._lock = threading.Lock()

    def _mac(self, token: str, issued: int, action: str, session_id: str) -> str:
        message = f"{token}:{issued}:{action}:{session_id}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()[:_MAC_LENGTH]

    def create(self, action: str, session_id: str) -> str:
        token = secrets.token_hex(8)
        issued = int(self.clock())
        return f"{token}.{issued}.{self._mac(token, issued, action, session_id)}"

    def _prune(self, now: float) -> None:
        expired = [nonce for nonce, expires_at in self._consumed.items() if expires_at <= now]
        for nonce in expired:
            del self._consumed[nonce]

    def verify(self, nonce: str, action: str, session_id: str) -> bool:
        parts = nonce.split(".") if nonce else []
        if len(parts) != 3:
            return False
        token, issued_raw, mac = parts
        try:
            issued = int(issued_raw)
        except ValueError:
            return False

        expected = self._mac(token, issued, action, session_id)
        if not mac.isascii() or not hmac.compare_digest(mac, expected):
            return False

        now = self.clock()
        if issued > now + _MAX_ISSUE_SKEW_SECONDS or now - issued > self.lifetime_seconds:
            log.debug("nonce_expired", issued=issued)
            return False

        with self._lock:
            self._prune(now)
            if nonce in self._consumed:
                log.warning("nonce_replayed", action=action)
                return False
            self._consumed[nonce] = issued + self.lifetime_seconds
        return True


def build_state(nonce: str, redirect_target: str = "") -> str:
    encoded = base64.b64encode(redirect_target.encode("utf-8")).decode("ascii")
    return f"{nonce}{STATE_SEPARATOR}{encoded}"


def parse_state(state: str) -> Tuple[str, str]:
    """Split a state token into its nonce and decoded redirect target.

    A missing or undecodable redirect part yields an empty target.
    """
    nonce, _, encoded = state.partition(STATE_SEPARATOR)
    return nonce, _decode_target(encoded)


def _decode_target(encoded: str) -> str:
    if not encoded:
        return ""
    # "+" may come back as a space from hosts that form-decode query strings
    encoded = encoded.replace(" ", "+")
    try:
        return base64.b64decode(encoded).decode("utf-8")
    except (binascii.Error, ValueError):
        return ""


def new_login_state(
    nonces: NonceManager, session_id: str, redirect_target: Optional[str] = None
) -> str:
    """State token for a login started from ``session_id``."""
    nonce = nonces.create(LOGIN_NONCE_ACTION, session_id)
    return build_state(nonce, redirect_target or "")
