"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~pkce_login.exceptions.PkceLoginError` subclass.
Shell scripts wrapping ``pkce-login`` can inspect the exit code to tell a
rejected login from a busy port or an abandoned browser tab without parsing
stderr.

Example::

    $ pkce-login -c cid -i https://idp.example/oauth2 --timeout 5
    $ echo $?
    9   # EXIT_TIMEOUT -- nobody completed the login in the browser
"""

EXIT_SUCCESS = 0
"""The flow reached the end of the callback handler path.

This includes runs where the provider answered with an error payload that
was printed to the terminal.
"""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Missing or invalid client id, issuer, redirect URI, or other settings."""

EXIT_AUTH_FAILURE = 3
"""The callback was rejected (missing code, state mismatch, provider error)."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred talking to the token or userinfo endpoint."""

EXIT_LISTENER_ERROR = 8
"""The local callback listener could not bind to the redirect URI's port."""

EXIT_TIMEOUT = 9
"""No callback arrived before the configured timeout elapsed."""

EXIT_CANCELLED = 130
"""The user interrupted the run with Ctrl-C."""
