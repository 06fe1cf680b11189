"""Site URLs and validation of user-supplied redirect targets."""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlencode, urlsplit

LOGIN_PATH = "/wp-login.php"
ADMIN_PATH = "/wp-admin/"
CALLBACK_FLAG = "cognito_callback"


def _has_unsafe_characters(url: str) -> bool:
    # Browsers read "\\" as "/" and drop tabs and newlines in http(s) URLs
    return any(char == "\\" or char.isspace() or ord(char) < 0x20 or ord(char) == 0x7F for char in url)


def add_query_args(url: str, **params: str) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(params)}"


class SiteUrls:
    """The host site's public URLs.

    Args:
        home_url: Site root, e.g. ``https://example.com`` (no trailing slash
            needed).
        admin_url: Dashboard URL. Defaults to ``{home_url}/wp-admin/``.
        login_path: Path of the login page.
    """

    def __init__(
        self,
        home_url: str,
        admin_url: Optional[str] = None,
        login_path: str = LOGIN_PATH,
    ):
        self.home_url = home_url.rstrip("/")
        self.admin_url = admin_url or f"{self.home_url}{ADMIN_PATH}"
        self.login_path = login_path
        self.host = (urlsplit(self.home_url).hostname or "").lower()

    def home(self, path: str = "") -> str:
        if not path:
            return f"{self.home_url}/"
        return f"{self.home_url}/{path.lstrip('/')}"

    @property
    def login_url(self) -> str:
        return self.home(self.login_path)

    @property
    def callback_url(self) -> str:
        """Redirect URI to register in the Cognito app client, verbatim."""
        return add_query_args(self.login_url, **{CALLBACK_FLAG: "1"})

    def is_same_site(self, url: str) -> bool:
        try:
            parts = urlsplit(url)
        except ValueError:
            return False
        return (
            parts.scheme in ("http", "https")
            and bool(parts.hostname)
            and "@" not in parts.netloc
            and parts.hostname.lower() == self.host
        )

    def validate_redirect(self, target: Optional[str]) -> str:
        """Return a safe absolute redirect for ``target``, or ``""``.

        Absolute URLs are kept only when they point at this site's host.
        Site-relative paths are made absolute on the home URL. Anything else,
        including protocol-relative ``//host`` targets, URLs carrying
        credentials and URLs with backslashes or whitespace, is discarded.
        """
        if not target:
            return ""
        target = target.strip()
        if _has_unsafe_characters(target):
            return ""
        if self.is_same_site(target):
            return target
        if target.startswith("/") and not target.startswith(("//", "/\\")):
            return self.home(target)
        return ""

    def referer_target(self, referer: Optional[str]) -> str:
        """Use the referring page as a target if it is on this site.

        The login page itself is never used, or the user would come back to
        it after signing in.
        """
        if not referer or not referer.startswith(self.home_url):
            return ""
        if self.login_path in referer:
            return ""
        return self.validate_redirect(referer)
