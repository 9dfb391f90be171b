"""pkce-login -- drive an OAuth2 Authorization Code + PKCE login from the terminal.

This package runs a single Authorization Code grant with Proof Key for Code
Exchange (:rfc:`7636`) against a standards-compliant identity provider. It
needs no client secret: the login is bound to a locally generated code
verifier, the provider redirects the browser back to a one-shot listener on
the loopback interface, and the code is traded for an access token and the
user's profile.

Typical usage::

    pkce-login --clientid 0oa1b2c3 --issuer https://idp.example/oauth2

Modules:
    app: Typer application and CLI entry point.
    flow: Orchestration of the full login flow.
    oauth: PKCE, authorization URL, callback listener, token and userinfo.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
