"""Typer application and CLI entry point for pkce-login.

The application has a single command that runs the whole login: it
resolves the configuration, starts the PKCE flow, and prints the access
token and user profile.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a signal handler and invokes the Typer app.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`pkce_login.config`: Configuration resolution.
    :mod:`pkce_login.flow`: The login orchestration.
    :mod:`pkce_login.output`: Output formatting initialised in :func:`login`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.logging import RichHandler

from pkce_login import __version__
from pkce_login.config import (
    ENV_CLIENT_ID,
    ENV_ISSUER,
    ENV_REDIRECT_URI,
    ENV_SCOPES,
    ENV_TIMEOUT,
)
from pkce_login.exit_codes import EXIT_CANCELLED, EXIT_GENERIC_FAILURE, EXIT_INVALID_USAGE


app = typer.Typer(
    name="pkce-login",
    help="Log in to an OAuth2 provider with the Authorization Code + PKCE flow.",
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"pkce-login {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool, no_color: bool) -> None:
    """Route the package's log records to stderr.

    Records go through a :class:`~rich.logging.RichHandler` sharing the
    diagnostics console of the active output manager, or a plain stream
    handler when colour is disabled.
    """
    from pkce_login.output import get_output

    package_logger = logging.getLogger("pkce_login")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)

    handler: logging.Handler
    if no_color:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    else:
        handler = RichHandler(
            console=get_output().stderr_console,
            show_time=False,
            show_path=False,
            markup=False,
        )
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    package_logger.propagate = False


@app.command()
def login(
    clientid: Optional[str] = typer.Option(
        None,
        "--clientid",
        "-c",
        help=f"OAuth client (application) id [REQUIRED if not supplied through env var {ENV_CLIENT_ID}]",
    ),
    issuer: Optional[str] = typer.Option(
        None,
        "--issuer",
        "-i",
        help="OAuth issuer (e.g. https://idp.example.com/oauth2) "
        f"[REQUIRED if not supplied through env var {ENV_ISSUER}]",
    ),
    redirecturi: Optional[str] = typer.Option(
        None,
        "--redirecturi",
        "-r",
        help="Redirect uri registered with the provider "
        f"(default http://localhost:8080/callback, env var {ENV_REDIRECT_URI})",
    ),
    scope: Optional[List[str]] = typer.Option(
        None,
        "--scope",
        "-s",
        help=f"Scope to request; repeat for several (default: openid profile email, env var {ENV_SCOPES})",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help=f"Seconds to wait for the browser callback (default 300, env var {ENV_TIMEOUT})",
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Print the login URL instead of opening a browser."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Print the authorization URL and exit."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Run an OAuth2 Authorization Code + PKCE login and print the token and user info.

    Opens the provider's authorization page in the browser, waits for the
    redirect on the local redirect URI, exchanges the code for an access
    token, and fetches the user's profile from the userinfo endpoint.

    Example::

        pkce-login -c 0oa1b2c3 -i https://idp.example.com/oauth2
    """
    from pkce_login.config import resolve_flow_config
    from pkce_login.exceptions import PkceLoginError
    from pkce_login.flow import ConsoleDisplay, FlowOrchestrator
    from pkce_login.output import OutputFormat, OutputManager, error, print_data, set_output, suggest

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet)
    set_output(output)
    _configure_logging(verbose, no_color)

    try:
        config = resolve_flow_config(
            cli_client_id=clientid,
            cli_issuer=issuer,
            cli_redirect_uri=redirecturi,
            cli_scopes=scope,
            cli_timeout=timeout,
            open_browser=not no_browser,
        )
        orchestrator = FlowOrchestrator(config, ConsoleDisplay())

        if dry_run:
            context = orchestrator.preview()
            print_data(context.authorize_url)
            return

        orchestrator.run()
    except PkceLoginError as exc:
        error(str(exc))
        if exc.exit_code == EXIT_INVALID_USAGE:
            suggest("Run 'pkce-login --help' to see the available options.")
        raise typer.Exit(code=exc.exit_code) from None


def _cancel(signum: Optional[int] = None, frame: Any = None) -> None:
    """Leave with exit code 130 after Ctrl-C.

    Raising :class:`SystemExit` from the main thread unwinds the flow, so
    the callback listener still releases its port on the way out.
    """
    sys.stderr.write("\nLogin cancelled.\n")
    sys.exit(EXIT_CANCELLED)


def _write_crash_log(exc: BaseException) -> Path:
    """Save the traceback of *exc* under ``<data dir>/logs`` and return the file."""
    from pkce_login.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    log_path.write_text(
        f"pkce-login {__version__}\n"
        + "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        encoding="utf-8",
    )
    return log_path


def main() -> None:
    """Console-script entry point for ``pkce-login``.

    Login failures are already turned into exit codes inside :func:`login`.
    This wrapper adds the Ctrl-C handler and a last-resort crash log for
    anything that escapes as an unexpected exception.
    """
    signal.signal(signal.SIGINT, _cancel)
    try:
        app()
    except KeyboardInterrupt:
        _cancel()
    except Exception as exc:
        from pkce_login.exceptions import PkceLoginError
        from pkce_login.output import error

        if isinstance(exc, PkceLoginError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Details were written to {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
