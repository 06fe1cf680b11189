"""Sign-in flow: controller, state tokens, redirects and provisioning."""

from drawbridge.auth.controller import AuthFlowController, darken_hex_color
from drawbridge.auth.provisioning import NamePolicy, UserProvisioner
from drawbridge.auth.redirects import SiteUrls
from drawbridge.auth.state import HmacNonceManager, NonceManager, build_state, parse_state

__all__ = [
    "AuthFlowController",
    "HmacNonceManager",
    "NamePolicy",
    "NonceManager",
    "SiteUrls",
    "UserProvisioner",
    "build_state",
    "darken_hex_color",
    "parse_state",
]
