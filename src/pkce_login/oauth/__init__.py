"""OAuth2 Authorization Code + PKCE building blocks.

Each module covers one step of the login, leaf-first:

- :mod:`~pkce_login.oauth.pkce` -- code verifier and S256 challenge.
- :mod:`~pkce_login.oauth.authorize` -- authorization URL and ``state``.
- :mod:`~pkce_login.oauth.callback` -- single-use redirect listener and
  callback validation.
- :mod:`~pkce_login.oauth.tokens` -- code-for-token exchange.
- :mod:`~pkce_login.oauth.userinfo` -- token-for-profile request.

See Also:
    :class:`pkce_login.flow.FlowOrchestrator`, which sequences them.
"""

from pkce_login.oauth.pkce import (
    CODE_CHALLENGE_METHOD,
    derive_code_challenge,
    generate_pkce_pair,
    is_valid_verifier,
)
from pkce_login.oauth.authorize import build_authorize_url, generate_state
from pkce_login.oauth.callback import CallbackListener, ListenerState, validate_callback
from pkce_login.oauth.tokens import TokenExchanger
from pkce_login.oauth.userinfo import ProfileFetcher

__all__ = [
    "CODE_CHALLENGE_METHOD",
    "CallbackListener",
    "ListenerState",
    "ProfileFetcher",
    "TokenExchanger",
    "build_authorize_url",
    "derive_code_challenge",
    "generate_pkce_pair",
    "generate_state",
    "is_valid_verifier",
    "validate_callback",
]
