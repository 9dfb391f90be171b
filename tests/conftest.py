"""Shared test fixtures for pkce-login.

Provides isolated config environments, output state management, a CLI
runner, and a helper that plays the browser's part by sending the
provider redirect to a running callback listener.
"""

from __future__ import annotations

import http.client
import threading
import time
from pathlib import Path
from typing import Callable

import pytest

from pkce_login.output import reset_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config. Clears all PKCE_LOGIN_*
    environment variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("pkce_login.config._is_xdg_platform", lambda: True)

    for var in [
        "PKCE_LOGIN_CLIENTID",
        "PKCE_LOGIN_ISSUER",
        "PKCE_LOGIN_REDIRECTURI",
        "PKCE_LOGIN_SCOPES",
        "PKCE_LOGIN_TIMEOUT",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


# ---------------------------------------------------------------------------
# Browser simulation
# ---------------------------------------------------------------------------


def send_callback(
    port: int, path_and_query: str, delay: float = 0.3
) -> tuple[threading.Thread, dict[str, object]]:
    """Send a GET to the local listener from a background thread.

    Returns the thread and a dict that receives ``status`` and ``body`` of
    the listener's response (or ``error`` if the request failed).
    """
    response: dict[str, object] = {}

    def _send() -> None:
        time.sleep(delay)
        conn = http.client.HTTPConnection("127.0.0.1", port, timeout=5)
        try:
            conn.request("GET", path_and_query)
            resp = conn.getresponse()
            response["status"] = resp.status
            response["body"] = resp.read().decode("utf-8")
        except OSError as exc:
            response["error"] = exc
        finally:
            conn.close()

    thread = threading.Thread(target=_send, daemon=True)
    thread.start()
    return thread, response


@pytest.fixture
def browser() -> Callable[..., tuple[threading.Thread, dict[str, object]]]:
    """Return :func:`send_callback` for simulating the browser redirect."""
    return send_callback


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()


def free_port() -> int:
    """Return a TCP port on 127.0.0.1 that was free a moment ago."""
    import socket

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def unused_port() -> int:
    return free_port()
