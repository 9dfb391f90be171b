"""Single-use local HTTP listener for the provider's redirect.

:class:`CallbackListener` binds to the host and port named by the redirect
URI, serves on a background thread, and accepts exactly one callback
request. Once that request has been answered the listener closes and any
further connection is refused.

Lifecycle::

    NEW --bind()--> IDLE --start()--> SERVING --callback--> RECEIVED
                      \\                  \\                     |
                       +------------------+----- close() ----> CLOSED

:meth:`CallbackListener.close` is idempotent and always releases the port
exactly once, whichever path (callback, timeout, error) led to it. Using the
listener as a context manager guarantees the call.

:func:`validate_callback` performs the checks that must pass before the
authorization code may be exchanged: no provider error, a code is present,
and the returned ``state`` equals the one that was issued.
"""

from __future__ import annotations

import enum
import logging
import secrets
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

from pkce_login.exceptions import (
    AuthorizationDenied,
    CallbackTimeout,
    ConfigurationError,
    ListenerBindError,
    MissingAuthorizationCode,
    StateMismatch,
)
from pkce_login.models import CallbackResult, FlowContext, split_redirect_uri

logger = logging.getLogger(__name__)

# Requests browsers make on their own; answered but never treated as the callback.
_IGNORED_PATHS = frozenset({"/favicon.ico", "/robots.txt"})

_SUCCESS_PAGE = """\
<html>
  <body>
    <h1>Login successful!</h1>
    <h2>You can close this window.</h2>
  </body>
</html>
"""


class ListenerState(str, enum.Enum):
    """States of a :class:`CallbackListener`."""

    NEW = "new"
    IDLE = "idle"
    SERVING = "serving"
    RECEIVED = "received"
    CLOSED = "closed"


class _CallbackServer(HTTPServer):
    """HTTPServer that knows which listener it reports to."""

    def __init__(self, address: tuple[str, int], listener: CallbackListener) -> None:
        self.listener = listener
        super().__init__(address, _CallbackHandler)


class _CallbackHandler(BaseHTTPRequestHandler):
    server: _CallbackServer

    # Socket timeout for a connection that was accepted but never sends a request.
    timeout = 5

    def do_GET(self) -> None:
        listener = self.server.listener
        parsed = urlparse(self.path)

        if parsed.path in _IGNORED_PATHS:
            self.send_response(204)
            self.end_headers()
            return

        if parsed.path != listener.path:
            logger.debug("Ignoring request for unexpected path %s", parsed.path)
            self.send_response(404)
            self.end_headers()
            return

        params = parse_qs(parsed.query)
        result = CallbackResult(
            path=parsed.path,
            code=_first(params, "code"),
            state=_first(params, "state"),
            error=_first(params, "error"),
            error_description=_first(params, "error_description"),
        )
        logger.debug("Callback received with params: %s", sorted(params))

        status, content_type, body = listener.render_response(result)
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(body)
        self.wfile.flush()

        listener._record(result)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("callback listener: " + format, *args)


def _first(params: dict[str, list[str]], name: str) -> Optional[str]:
    values = params.get(name)
    return values[0] if values else None


class CallbackListener:
    """A one-shot HTTP endpoint that captures the OAuth redirect.

    Args:
        host: Interface to bind, usually the redirect URI's host.
        port: TCP port to bind. ``0`` picks a free port (see :attr:`port`).
        path: The redirect path; only requests for this path count as the
            callback.
        expected_state: The ``state`` issued in the authorization request.
            Used only to choose the page shown in the browser; the
            authoritative check is :func:`validate_callback`.

    Example::

        with CallbackListener.from_redirect_uri(uri, expected_state=state) as listener:
            listener.start()
            result = listener.wait(timeout=300)
    """

    def __init__(
        self,
        host: str,
        port: int,
        path: str = "/",
        expected_state: Optional[str] = None,
    ) -> None:
        self.host = host
        self.path = path or "/"
        self.expected_state = expected_state
        self._requested_port = port
        self._server: Optional[_CallbackServer] = None
        self._thread: Optional[threading.Thread] = None
        self._state = ListenerState.NEW
        self._result: Optional[CallbackResult] = None
        self._received = threading.Event()
        self._stop = threading.Event()
        self._lock = threading.Lock()

    @classmethod
    def from_redirect_uri(
        cls, redirect_uri: str, expected_state: Optional[str] = None
    ) -> CallbackListener:
        """Create a listener for the host, port, and path of *redirect_uri*.

        Raises:
            ConfigurationError: If the URI cannot be listened on locally.
        """
        try:
            host, port, path = split_redirect_uri(redirect_uri)
        except ValueError as exc:
            raise ConfigurationError(f"Error parsing redirect uri: {exc}") from exc
        return cls(host, port, path, expected_state=expected_state)

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> ListenerState:
        return self._state

    @property
    def port(self) -> int:
        """The bound port, or the requested one before :meth:`bind`."""
        if self._server is not None:
            return self._server.server_address[1]
        return self._requested_port

    @property
    def result(self) -> Optional[CallbackResult]:
        return self._result

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def bind(self) -> None:
        """Bind the listening socket without serving yet.

        Raises:
            ListenerBindError: If the address is unavailable.
        """
        if self._state is not ListenerState.NEW:
            raise RuntimeError(f"cannot bind a listener in state {self._state.value}")
        try:
            self._server = _CallbackServer((self.host, self._requested_port), self)
        except OSError as exc:
            raise ListenerBindError(
                f"Unable to listen on {self.host}:{self._requested_port}: {exc}"
            ) from exc
        # Lets the serve loop notice close() without a wake-up request.
        self._server.timeout = 0.5
        self._state = ListenerState.IDLE
        logger.debug("Callback listener bound to %s:%d", self.host, self.port)

    def start(self) -> None:
        """Start accepting connections on a background thread."""
        if self._state is ListenerState.NEW:
            self.bind()
        if self._state is not ListenerState.IDLE:
            raise RuntimeError(f"cannot start a listener in state {self._state.value}")
        self._state = ListenerState.SERVING
        self._thread = threading.Thread(
            target=self._serve, name="pkce-callback-listener", daemon=True
        )
        self._thread.start()

    def wait(self, timeout: Optional[float] = None) -> CallbackResult:
        """Block until the callback arrives, then close the listener.

        Args:
            timeout: Seconds to wait. ``None`` waits forever.

        Returns:
            The parameters of the callback request.

        Raises:
            CallbackTimeout: If no callback arrived in time. The listener is
                closed before this is raised.
        """
        if self._state in (ListenerState.NEW, ListenerState.IDLE):
            self.start()
        try:
            received = self._received.wait(timeout)
        finally:
            self.close()
        if not received or self._result is None:
            raise CallbackTimeout(
                f"No callback received on {self.host}:{self.port}{self.path} "
                f"within {timeout} seconds"
            )
        return self._result

    def close(self) -> None:
        """Stop serving and release the port. Safe to call more than once."""
        with self._lock:
            if self._state is ListenerState.CLOSED:
                return
            self._stop.set()
            thread, self._thread = self._thread, None
            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout=5)
            if self._server is not None:
                self._server.server_close()
                logger.debug("Callback listener on port %d closed", self.port)
            self._state = ListenerState.CLOSED

    def __enter__(self) -> CallbackListener:
        if self._state is ListenerState.NEW:
            self.bind()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Request handling
    # ------------------------------------------------------------------ #

    def render_response(self, result: CallbackResult) -> tuple[int, str, bytes]:
        """Choose the status, content type, and body shown in the browser."""
        if result.error:
            message = f"Error: authorization failed: {result.error}"
            if result.error_description:
                message += f" - {result.error_description}"
            return 400, "text/plain; charset=utf-8", (message + "\n").encode("utf-8")
        if not result.code:
            return (
                400,
                "text/plain; charset=utf-8",
                b"Error: could not find 'code' URL parameter\n",
            )
        if self.expected_state is not None and result.state != self.expected_state:
            return (
                400,
                "text/plain; charset=utf-8",
                b"Error: state parameter does not match the login request\n",
            )
        return 200, "text/html; charset=utf-8", _SUCCESS_PAGE.encode("utf-8")

    def _record(self, result: CallbackResult) -> None:
        self._result = result
        self._state = ListenerState.RECEIVED
        self._received.set()

    def _serve(self) -> None:
        assert self._server is not None
        logger.debug("Listening for callback on port %d", self.port)
        while not self._received.is_set() and not self._stop.is_set():
            self._server.handle_request()
        logger.debug("Callback listener loop exiting")


def validate_callback(context: FlowContext, result: CallbackResult) -> str:
    """Check a callback against the login that issued it.

    The checks run in order: provider error, missing code, state mismatch.

    Args:
        context: The in-flight login.
        result: Parameters of the received callback.

    Returns:
        The authorization code, safe to exchange.

    Raises:
        AuthorizationDenied: The provider sent ``error=...``.
        MissingAuthorizationCode: No ``code`` parameter was present.
        StateMismatch: The returned ``state`` differs from the issued one.
    """
    if result.error:
        raise AuthorizationDenied(result.error, result.error_description)
    if not result.code:
        raise MissingAuthorizationCode("No authorization code received")
    if result.state is None or not secrets.compare_digest(
        result.state.encode("utf-8"), context.state.encode("utf-8")
    ):
        raise StateMismatch(
            "State returned by the provider does not match the login request"
        )
    return result.code
