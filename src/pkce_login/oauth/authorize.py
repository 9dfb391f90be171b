"""Authorization request construction.

Builds the URL of the provider's ``/authorize`` endpoint for an
Authorization Code + PKCE request, together with the anti-CSRF ``state``
token that the callback must echo back. No network or disk I/O happens
here.
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional, Sequence
from urllib.parse import quote, urlencode

from pkce_login.exceptions import ConfigurationError
from pkce_login.oauth.pkce import CODE_CHALLENGE_METHOD

logger = logging.getLogger(__name__)


def generate_state() -> str:
    """Return a fresh, unguessable ``state`` token."""
    return secrets.token_urlsafe(32)


def build_authorize_url(
    client_id: str,
    issuer: str,
    redirect_uri: str,
    code_challenge: str,
    scopes: Sequence[str],
    state: Optional[str] = None,
) -> tuple[str, str]:
    """Build the authorization URL for a PKCE login.

    Query parameters are emitted in a fixed order: ``response_type``,
    ``client_id``, ``redirect_uri``, ``code_challenge_method``,
    ``code_challenge``, ``scope``, ``state``. Values are percent-encoded
    with ``%20`` for spaces, so the space-joined ``scope`` keeps the order
    of *scopes*.

    Args:
        client_id: OAuth client id.
        issuer: Base URL of the provider; ``/authorize`` is appended.
        redirect_uri: Loopback redirect URI registered with the provider.
        code_challenge: The S256 challenge derived from the code verifier.
        scopes: Requested scopes, at least one.
        state: Optional pre-generated state. A fresh one is generated when
            omitted.

    Returns:
        A tuple of ``(authorize_url, state)``.

    Raises:
        ConfigurationError: If *client_id* or *issuer* is empty or *scopes*
            has no entries.
    """
    logger.debug("Building authorize url")
    if not client_id:
        raise ConfigurationError("client id is required to build the authorize url")
    if not issuer:
        raise ConfigurationError("issuer is required to build the authorize url")
    if not scopes:
        raise ConfigurationError("at least one scope is required")

    if state is None:
        state = generate_state()

    params = [
        ("response_type", "code"),
        ("client_id", client_id),
        ("redirect_uri", redirect_uri),
        ("code_challenge_method", CODE_CHALLENGE_METHOD),
        ("code_challenge", code_challenge),
        ("scope", " ".join(scopes)),
        ("state", state),
    ]
    query = urlencode(params, quote_via=quote)
    return f"{issuer.rstrip('/')}/authorize?{query}", state
