"""Exception hierarchy for pkce-login.

All exceptions inherit from :class:`PkceLoginError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`pkce_login.exit_codes`.
The top-level error handler in :func:`pkce_login.app.main` catches
``PkceLoginError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    PkceLoginError (exit 1)
    +-- ConfigurationError          (exit 2)
    +-- ListenerBindError           (exit 8)
    +-- CallbackError               (exit 3)
    |   +-- MissingAuthorizationCode
    |   +-- StateMismatch
    |   +-- AuthorizationDenied
    +-- CallbackTimeout             (exit 9)
    +-- TokenExchangeError          (exit 6)
    +-- ProfileFetchError           (exit 6)
"""

from __future__ import annotations

from pkce_login.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_LISTENER_ERROR,
    EXIT_TIMEOUT,
)


class PkceLoginError(Exception):
    """Base exception for all pkce-login errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`pkce_login.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(PkceLoginError):
    """Raised for a missing or invalid client id, issuer, redirect URI, or config file."""

    exit_code = EXIT_INVALID_USAGE


class ListenerBindError(PkceLoginError):
    """Raised when the callback listener cannot bind to the redirect URI's host and port."""

    exit_code = EXIT_LISTENER_ERROR


class CallbackError(PkceLoginError):
    """Base class for callbacks that arrived but cannot be used for a token exchange."""

    exit_code = EXIT_AUTH_FAILURE


class MissingAuthorizationCode(CallbackError):
    """Raised when the provider redirected back without a ``code`` parameter."""


class StateMismatch(CallbackError):
    """Raised when the callback's ``state`` differs from the one that was issued.

    This is the anti-CSRF check of the flow; a callback that fails it never
    reaches the token endpoint.
    """


class AuthorizationDenied(CallbackError):
    """Raised when the provider redirected back with an ``error`` parameter.

    Args:
        error: The OAuth error code (e.g. ``access_denied``).
        description: The optional ``error_description`` sent by the provider.
    """

    def __init__(self, error: str, description: str | None = None):
        self.error = error
        self.description = description
        message = f"Authorization failed: {error}"
        if description:
            message += f" - {description}"
        super().__init__(message)


class CallbackTimeout(PkceLoginError):
    """Raised when no callback arrives before the configured timeout."""

    exit_code = EXIT_TIMEOUT


class TokenExchangeError(PkceLoginError):
    """Raised when the code-for-token exchange cannot be completed.

    Covers transport failures and successful responses that carry no usable
    ``access_token``. A non-success status from the provider is *not* an
    error: its body is returned verbatim in a
    :class:`~pkce_login.models.TokenResult`.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ProfileFetchError(PkceLoginError):
    """Raised when the userinfo request fails at the transport level or returns unparsable data."""

    exit_code = EXIT_CONNECTION_ERROR
