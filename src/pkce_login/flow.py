"""Orchestration of the full Authorization Code + PKCE login.

:class:`FlowOrchestrator` sequences the building blocks in
:mod:`pkce_login.oauth`:

1. Generate the PKCE pair, ``state``, and authorization URL
   (:meth:`FlowContext.start <pkce_login.models.FlowContext.start>`).
2. Bind the callback listener. A busy port fails here, before the user is
   sent to the browser.
3. Open the authorization URL through the injected :class:`Display`.
4. Wait (bounded by the configured timeout) for the single callback.
5. Validate the callback: provider error, code present, ``state`` match.
6. Exchange the code for a token and show it.
7. Fetch and show the user's profile.

The listener is closed on every exit path, and the token exchange never
starts before step 5 has passed.

Browser launch and terminal rendering are side effects of the environment,
so they live behind the :class:`Display` protocol. :class:`ConsoleDisplay`
is the real implementation; tests pass a recording fake.
"""

from __future__ import annotations

import contextlib
import logging
import webbrowser
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Protocol

import httpx

from pkce_login.exceptions import ProfileFetchError
from pkce_login.models import FlowConfig, FlowContext, ProfileResult, TokenResult
from pkce_login.oauth.callback import CallbackListener, validate_callback
from pkce_login.oauth.tokens import TokenExchanger
from pkce_login.oauth.userinfo import ProfileFetcher
from pkce_login.output import OutputFormat, get_output

logger = logging.getLogger(__name__)


@dataclass
class FlowOutcome:
    """What a completed run produced."""

    context: FlowContext
    token: TokenResult
    profile: Optional[ProfileResult] = None


class Display(Protocol):
    """User-facing side effects of a login run."""

    def open_browser(self, url: str) -> None: ...

    def show_authorize_url(self, url: str) -> None: ...

    def waiting(self, redirect_uri: str, timeout: float) -> None: ...

    def show_token(self, token: TokenResult) -> None: ...

    def show_profile(self, profile: ProfileResult) -> None: ...

    def finish(self, outcome: FlowOutcome) -> None: ...

    def abort(self, outcome: FlowOutcome) -> None: ...


class ConsoleDisplay:
    """:class:`Display` backed by the system browser and :mod:`pkce_login.output`.

    In Rich and plain modes the token and profile are printed as they
    arrive, each under a heading. In JSON mode they are collected and
    printed as one document by :meth:`finish`. If the run fails after the
    token arrived, :meth:`abort` prints whatever was collected.
    """

    def __init__(self) -> None:
        self._document: dict[str, object] = {}

    @property
    def _json_mode(self) -> bool:
        return get_output().format == OutputFormat.JSON

    def open_browser(self, url: str) -> None:
        logger.info("Opening auth url: %s", url)
        try:
            opened = webbrowser.open(url)
        except webbrowser.Error as exc:
            logger.debug("Browser launch failed: %s", exc)
            opened = False
        if not opened:
            get_output().warning("Unable to open a browser window.")
            self.show_authorize_url(url)

    def show_authorize_url(self, url: str) -> None:
        output = get_output()
        output.info("Open this URL in your browser to log in:")
        output.info(url)

    def waiting(self, redirect_uri: str, timeout: float) -> None:
        get_output().progress(
            f"Waiting for the login callback on {redirect_uri} (timeout {timeout:g}s)..."
        )

    def show_token(self, token: TokenResult) -> None:
        output = get_output()
        if not token.ok:
            output.warning(f"Token endpoint returned HTTP {token.status_code}")
        if self._json_mode:
            if token.ok:
                self._document["access_token"] = token.access_token
            else:
                self._document["token_error"] = {
                    "status_code": token.status_code,
                    "body": token.error_body,
                }
            return
        output.print_labeled("Access Token", token.display)

    def show_profile(self, profile: ProfileResult) -> None:
        output = get_output()
        if not profile.ok:
            output.warning(f"Userinfo endpoint returned HTTP {profile.status_code}")
        if self._json_mode:
            if profile.ok:
                self._document["user_info"] = profile.profile
            else:
                self._document["user_info_error"] = {
                    "status_code": profile.status_code,
                    "body": profile.raw_body,
                }
            return
        output.print_labeled("User info", profile.display, is_json=profile.ok)

    def finish(self, outcome: FlowOutcome) -> None:
        output = get_output()
        if self._json_mode:
            output.print_json_document(self._document)
        if outcome.token.ok:
            output.success("Successfully authenticated.")
        else:
            output.warning("Login did not complete: the provider rejected the code exchange.")

    def abort(self, outcome: FlowOutcome) -> None:
        if self._json_mode and self._document:
            get_output().print_json_document(self._document)


ListenerFactory = Callable[[FlowContext], CallbackListener]


def _default_listener(context: FlowContext) -> CallbackListener:
    return CallbackListener.from_redirect_uri(
        context.redirect_uri, expected_state=context.state
    )


class FlowOrchestrator:
    """Runs one login from PKCE generation to profile retrieval.

    Args:
        config: Validated settings for the run.
        display: Where browser launches and results go.
        http_client: Optional client for the token and userinfo requests.
            When omitted, one is created per run and closed afterwards; a
            client passed in is left open for its owner.
        listener_factory: Builds the callback listener for a context.
            Defaults to one bound to the redirect URI's host and port.
    """

    def __init__(
        self,
        config: FlowConfig,
        display: Display,
        http_client: Optional[httpx.Client] = None,
        listener_factory: Optional[ListenerFactory] = None,
    ) -> None:
        self._config = config
        self._display = display
        self._http_client = http_client
        self._listener_factory = listener_factory or _default_listener

    def preview(self) -> FlowContext:
        """Build the login context without binding a port or opening a browser."""
        return FlowContext.start(self._config)

    def run(self) -> FlowOutcome:
        """Execute the full login.

        Returns:
            The :class:`FlowOutcome` of the run. A provider error on the
            token or userinfo endpoint is carried in the outcome, not
            raised.

        Raises:
            ConfigurationError: The redirect URI cannot be listened on.
            ListenerBindError: The redirect port is unavailable.
            CallbackTimeout: No callback arrived within the timeout.
            CallbackError: The callback carried a provider error, no code,
                or a foreign ``state``.
            TokenExchangeError: The token request failed in transport or
                returned no usable token.
            ProfileFetchError: The userinfo request failed in transport or
                returned unparsable data. The token has already been reported
                through the display.
        """
        context = FlowContext.start(self._config)

        with self._listener_factory(context) as listener:
            if self._config.open_browser:
                self._display.open_browser(context.authorize_url)
            else:
                self._display.show_authorize_url(context.authorize_url)
            self._display.waiting(context.redirect_uri, self._config.timeout)
            result = listener.wait(self._config.timeout)

        code = validate_callback(context, result)
        context = context.with_authorization_code(code)
        logger.debug("Authorization code received: %s...", code[:8])

        with self._client() as client:
            token = TokenExchanger(client).exchange(
                context.issuer,
                context.client_id,
                context.code_verifier,
                code,
                context.redirect_uri,
            )
            self._display.show_token(token)
            outcome = FlowOutcome(context=context, token=token)

            if token.access_token is not None:
                try:
                    outcome.profile = ProfileFetcher(client).fetch(
                        context.issuer, token.access_token
                    )
                except ProfileFetchError:
                    self._display.abort(outcome)
                    raise
                self._display.show_profile(outcome.profile)

        self._display.finish(outcome)
        return outcome

    @contextlib.contextmanager
    def _client(self) -> Iterator[httpx.Client]:
        if self._http_client is not None:
            yield self._http_client
            return
        with httpx.Client(timeout=self._config.http_timeout) as client:
            yield client
