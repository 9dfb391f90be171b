"""PKCE code verifier and challenge generation (:rfc:`7636`).

The verifier is drawn from :mod:`secrets`, the operating system's CSPRNG.
There is no fallback source: if the OS cannot supply entropy
the exception propagates and the login is aborted.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import re
import secrets

logger = logging.getLogger(__name__)

CODE_CHALLENGE_METHOD = "S256"
"""The only challenge method this package announces."""

MIN_VERIFIER_LENGTH = 43
MAX_VERIFIER_LENGTH = 128

_UNRESERVED = re.compile(r"^[A-Za-z0-9\-._~]+$")


def derive_code_challenge(code_verifier: str) -> str:
    """Return ``base64url_nopad(SHA256(code_verifier))``."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_pkce_pair() -> tuple[str, str]:
    """Generate a PKCE code_verifier and code_challenge (S256).

    Returns:
        A tuple of ``(code_verifier, code_challenge)``.
    """
    logger.debug("Generating code challenge")
    # RFC 7636: 43-128 characters from unreserved character set
    code_verifier = secrets.token_urlsafe(64)[:MAX_VERIFIER_LENGTH]
    return code_verifier, derive_code_challenge(code_verifier)


def is_valid_verifier(code_verifier: str) -> bool:
    """Check length and alphabet of *code_verifier* against :rfc:`7636` section 4.1."""
    return (
        MIN_VERIFIER_LENGTH <= len(code_verifier) <= MAX_VERIFIER_LENGTH
        and _UNRESERVED.match(code_verifier) is not None
    )
