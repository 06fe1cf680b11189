"""Drawbridge models - data structures shared by the sign-in flow."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from drawbridge.exceptions import TokenVerificationError

CUSTOM_CLAIM_PREFIX = "custom:"
GROUPS_CLAIM = "cognito:groups"


class VerificationFailure(str, Enum):
    """Reasons an ID token can be rejected."""

    MALFORMED_TOKEN = "MALFORMED_TOKEN"
    UNKNOWN_KEY = "UNKNOWN_KEY"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    EXPIRED = "EXPIRED"
    NOT_YET_VALID = "NOT_YET_VALID"
    ISSUED_IN_FUTURE = "ISSUED_IN_FUTURE"
    INVALID_AUDIENCE = "INVALID_AUDIENCE"
    INVALID_ISSUER = "INVALID_ISSUER"
    WRONG_TOKEN_TYPE = "WRONG_TOKEN_TYPE"


@dataclass
class TokenSet:
    """Tokens returned by the Hosted UI token endpoint."""

    access_token: str
    id_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: str = "Bearer"


@dataclass(frozen=True)
class ExpectedClaims:
    """Values the identity claims of an ID token must match."""

    issuer: str
    audience: Optional[str] = None


@dataclass
class Claims:
    """Verified claims of a Cognito ID token.

    ``custom`` holds every ``custom:*`` attribute keyed by its full claim name,
    ``raw`` is the decoded payload exactly as it was signed.
    """

    sub: str
    email: Optional[str] = None
    name: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    preferred_username: Optional[str] = None
    groups: list[str] = field(default_factory=list)
    exp: Optional[int] = None
    nbf: Optional[int] = None
    iat: Optional[int] = None
    aud: Optional[str] = None
    iss: Optional[str] = None
    token_use: Optional[str] = None
    custom: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Claims":
        groups = payload.get(GROUPS_CLAIM) or []
        if isinstance(groups, str):
            groups = [groups]
        return cls(
            sub=str(payload.get("sub", "")),
            email=payload.get("email"),
            name=payload.get("name"),
            given_name=payload.get("given_name"),
            family_name=payload.get("family_name"),
            preferred_username=payload.get("preferred_username"),
            groups=list(groups),
            exp=payload.get("exp"),
            nbf=payload.get("nbf"),
            iat=payload.get("iat"),
            aud=payload.get("aud"),
            iss=payload.get("iss"),
            token_use=payload.get("token_use"),
            custom={
                key: value
                for key, value in payload.items()
                if key.startswith(CUSTOM_CLAIM_PREFIX)
            },
            raw=dict(payload),
        )

    def get(self, claim: str, default: Any = None) -> Any:
        """Look up any claim by its name in the signed payload."""
        return self.raw.get(claim, default)


@dataclass
class VerificationResult:
    """Outcome of verifying a token: claims on success, a failure otherwise."""

    claims: Optional[Claims] = None
    failure: Optional[VerificationFailure] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None and self.claims is not None

    @classmethod
    def success(cls, claims: Claims) -> "VerificationResult":
        return cls(claims=claims)

    @classmethod
    def fail(cls, failure: VerificationFailure, detail: str = "") -> "VerificationResult":
        return cls(failure=failure, detail=detail)

    def unwrap(self) -> Claims:
        """Return the claims, raising TokenVerificationError on failure."""
        if self.failure is not None or self.claims is None:
            failure = self.failure or VerificationFailure.MALFORMED_TOKEN
            raise TokenVerificationError(failure.value, self.detail)
        return self.claims


@dataclass
class SiteUser:
    """Local user record as exposed by the user store."""

    user_id: Any
    username: str
    email: str
    roles: list[str] = field(default_factory=list)
    cognito_user_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None
    groups: list[str] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass
class UserAttributes:
    """Profile updates derived from claims. ``None`` leaves a field unchanged."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None
    groups: Optional[list[str]] = None
    custom_attrs: dict[str, Any] = field(default_factory=dict)


@dataclass
class AuthRequest:
    """Framework-neutral view of an incoming request."""

    query: Mapping[str, str] = field(default_factory=dict)
    form: Mapping[str, str] = field(default_factory=dict)
    referer: Optional[str] = None
    session_id: str = ""
    current_user: Optional[SiteUser] = None
    is_login_page: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    def flag(self, name: str) -> bool:
        """True when a query flag such as ``cognito_login=1`` is set."""
        return self.query.get(name) == "1"


@dataclass
class AuthResponse:
    """What the host should send back for a request the flow handled."""

    status_code: int
    location: Optional[str] = None
    body: Optional[str] = None
    user: Optional[SiteUser] = None

    @classmethod
    def redirect(cls, location: str, user: Optional[SiteUser] = None) -> "AuthResponse":
        return cls(status_code=302, location=location, user=user)

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status_code < 400


@dataclass
class LoginButton:
    """Everything a login form needs to render the Cognito sign-in button."""

    url: str
    text: str
    background_color: str
    text_color: str
    hover_color: str
