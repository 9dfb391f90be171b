"""Canonical Pydantic models shared across all pkce-login modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Configuration** -- supplied by the caller and immutable for the run:
    :class:`FlowConfig` and the on-disk :class:`GlobalConfig`.

**Flow state and results** -- produced while the login runs:
    :class:`FlowContext`, :class:`CallbackResult`, :class:`TokenResult`,
    and :class:`ProfileResult`.

All models are Pydantic v2. Flow models are frozen: a stage that needs to
record new information (e.g. the authorization code) returns an updated
copy instead of mutating shared state.
"""

from __future__ import annotations

import json
from typing import Any, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


DEFAULT_REDIRECT_URI = "http://localhost:8080/callback"
DEFAULT_SCOPES: tuple[str, ...] = ("openid", "profile", "email")
DEFAULT_CALLBACK_TIMEOUT = 300.0
DEFAULT_HTTP_TIMEOUT = 30.0


def split_redirect_uri(redirect_uri: str) -> tuple[str, int, str]:
    """Split a loopback redirect URI into the ``(host, port, path)`` to listen on.

    The port defaults to 80 when the URI does not name one and the path
    defaults to ``/``.

    Raises:
        ValueError: If the URI is not an absolute ``http`` URL with a host,
            or its port is not a valid number.
    """
    parsed = urlparse(redirect_uri)
    if parsed.scheme != "http":
        raise ValueError(
            f"redirect URI must use the http scheme for a local listener: {redirect_uri!r}"
        )
    if not parsed.hostname:
        raise ValueError(f"redirect URI has no host: {redirect_uri!r}")
    try:
        port = parsed.port
    except ValueError as exc:
        raise ValueError(f"redirect URI has an invalid port: {redirect_uri!r}") from exc
    return parsed.hostname, port if port is not None else 80, parsed.path or "/"


# --- Configuration ---


class GlobalConfig(BaseModel):
    """Optional defaults read from ``config.json`` in the config directory.

    Every field is optional; anything left unset falls through to the
    built-in defaults of :class:`FlowConfig`.
    """

    client_id: Optional[str] = None
    issuer: Optional[str] = None
    redirect_uri: Optional[str] = None
    scopes: Optional[list[str]] = None
    timeout: Optional[float] = None


class FlowConfig(BaseModel):
    """Settings for a single login run.

    Example::

        FlowConfig(client_id="0oa1b2c3", issuer="https://idp.example/oauth2")
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(description="OAuth client (application) id")
    issuer: str = Field(description="Base URL of the provider's OAuth2 endpoints")
    redirect_uri: str = Field(
        default=DEFAULT_REDIRECT_URI,
        description="Loopback redirect URI registered with the provider",
    )
    scopes: list[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))
    timeout: float = Field(
        default=DEFAULT_CALLBACK_TIMEOUT,
        gt=0,
        description="Seconds to wait for the browser callback",
    )
    http_timeout: float = Field(
        default=DEFAULT_HTTP_TIMEOUT,
        gt=0,
        description="Seconds allowed for each token or userinfo request",
    )
    open_browser: bool = True

    @field_validator("client_id")
    @classmethod
    def _client_id_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("client id must not be empty")
        return value

    @field_validator("issuer")
    @classmethod
    def _issuer_is_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("issuer must not be empty")
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"issuer must be an absolute http(s) URL: {value!r}")
        return value

    @field_validator("redirect_uri")
    @classmethod
    def _redirect_uri_is_listenable(cls, value: str) -> str:
        split_redirect_uri(value)
        return value

    @field_validator("scopes")
    @classmethod
    def _scopes_not_empty(cls, value: list[str]) -> list[str]:
        scopes = [s for s in value if s.strip()]
        if not scopes:
            raise ValueError("at least one scope is required")
        return scopes


# --- Flow state ---


class FlowContext(BaseModel):
    """The single in-flight login attempt.

    Built once per run with :meth:`start`, which generates the PKCE pair and
    the anti-CSRF ``state`` together. ``code_challenge`` is always derived
    from ``code_verifier``; constructing a context where the two disagree
    fails validation.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str
    issuer: str
    redirect_uri: str
    scopes: list[str]
    code_verifier: str
    code_challenge: str
    state: str
    authorize_url: str
    authorization_code: Optional[str] = None

    @model_validator(mode="after")
    def _challenge_matches_verifier(self) -> FlowContext:
        from pkce_login.oauth.pkce import derive_code_challenge

        if derive_code_challenge(self.code_verifier) != self.code_challenge:
            raise ValueError("code_challenge is not derived from code_verifier")
        return self

    @classmethod
    def start(cls, config: FlowConfig) -> FlowContext:
        """Generate the verifier, challenge, state, and authorize URL for *config*."""
        from pkce_login.oauth.authorize import build_authorize_url
        from pkce_login.oauth.pkce import generate_pkce_pair

        code_verifier, code_challenge = generate_pkce_pair()
        authorize_url, state = build_authorize_url(
            config.client_id,
            config.issuer,
            config.redirect_uri,
            code_challenge,
            config.scopes,
        )
        return cls(
            client_id=config.client_id,
            issuer=config.issuer,
            redirect_uri=config.redirect_uri,
            scopes=list(config.scopes),
            code_verifier=code_verifier,
            code_challenge=code_challenge,
            state=state,
            authorize_url=authorize_url,
        )

    def with_authorization_code(self, code: str) -> FlowContext:
        """Return a copy of this context carrying the validated authorization code."""
        return self.model_copy(update={"authorization_code": code})


class CallbackResult(BaseModel):
    """Query parameters extracted from the single redirect request."""

    model_config = ConfigDict(frozen=True)

    path: str = "/"
    code: Optional[str] = None
    state: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None


# --- Provider responses ---


class TokenResult(BaseModel):
    """Outcome of the code-for-token exchange.

    Either ``access_token`` is set (the provider accepted the code), or
    ``error_body`` holds the provider's response body exactly as it was
    sent.
    """

    model_config = ConfigDict(frozen=True)

    status_code: int
    access_token: Optional[str] = None
    error_body: Optional[str] = None
    payload: Optional[dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.access_token is not None

    @property
    def display(self) -> str:
        """The token, or the provider's error body."""
        if self.access_token is not None:
            return self.access_token
        return self.error_body or ""


class ProfileResult(BaseModel):
    """Outcome of the userinfo request."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    profile: Optional[dict[str, Any]] = None
    raw_body: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300 and self.profile is not None

    @property
    def display(self) -> str:
        """The profile pretty-printed as JSON, or the provider's raw error body."""
        if self.ok:
            return json.dumps(self.profile, indent=2, ensure_ascii=False)
        return self.raw_body
