"""Configuration management with XDG paths and precedence resolution.

This module handles all configuration for pkce-login:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.pkce-login/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- an optional :class:`~pkce_login.models.GlobalConfig`
  JSON file supplying defaults for the client id, issuer, redirect URI,
  scopes, and callback timeout.
* **Precedence resolution** -- :func:`resolve_flow_config` merges CLI flags,
  ``PKCE_LOGIN_*`` environment variables, the global config file, and
  built-in defaults into a validated :class:`~pkce_login.models.FlowConfig`.
"""

from __future__ import annotations

import json
import os
import platform
import re
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError

from pkce_login.exceptions import ConfigurationError
from pkce_login.models import FlowConfig, GlobalConfig

_APP_NAME = "pkce-login"
_CONFIG_FILENAME = "config.json"

ENV_PREFIX = "PKCE_LOGIN_"
ENV_CLIENT_ID = f"{ENV_PREFIX}CLIENTID"
ENV_ISSUER = f"{ENV_PREFIX}ISSUER"
ENV_REDIRECT_URI = f"{ENV_PREFIX}REDIRECTURI"
ENV_SCOPES = f"{ENV_PREFIX}SCOPES"
ENV_TIMEOUT = f"{ENV_PREFIX}TIMEOUT"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/pkce-login/`` (default ``~/.config/pkce-login/``).
    On macOS/Windows: ``~/.pkce-login/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CONFIG_HOME", (".config",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/pkce-login/`` (default ``~/.local/share/pkce-login/``).
    On macOS/Windows: ``~/.pkce-login/logs/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Global config ---


def global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~pkce_login.models.GlobalConfig`. If the
        file does not exist, a default (all-empty) instance is returned.

    Raises:
        ConfigurationError: If the file exists but contains invalid JSON or
            fails Pydantic validation.
    """
    path = global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid global config at {path}: {exc}") from exc


# --- Precedence resolution ---


def _split_scopes(value: str) -> list[str]:
    """Split an env var value on commas and/or whitespace."""
    return [s for s in re.split(r"[\s,]+", value) if s]


def _env_timeout() -> Optional[float]:
    raw = os.environ.get(ENV_TIMEOUT)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{ENV_TIMEOUT} must be a number of seconds, got {raw!r}"
        ) from exc


def _pick(
    cli_value: Optional[str], env_var: str, file_value: Optional[str]
) -> Optional[str]:
    if cli_value is not None:
        return cli_value
    env_value = os.environ.get(env_var)
    if env_value:
        return env_value
    return file_value


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        field = ".".join(str(loc) for loc in err["loc"]) or "config"
        parts.append(f"{field}: {err['msg']}")
    return "; ".join(parts)


def resolve_flow_config(
    cli_client_id: Optional[str] = None,
    cli_issuer: Optional[str] = None,
    cli_redirect_uri: Optional[str] = None,
    cli_scopes: Optional[Sequence[str]] = None,
    cli_timeout: Optional[float] = None,
    open_browser: bool = True,
) -> FlowConfig:
    """Resolve the settings for a login run with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_*`` arguments)
        2. Environment variables (``PKCE_LOGIN_CLIENTID``, ``PKCE_LOGIN_ISSUER``,
           ``PKCE_LOGIN_REDIRECTURI``, ``PKCE_LOGIN_SCOPES``,
           ``PKCE_LOGIN_TIMEOUT``)
        3. Global config (``~/.config/pkce-login/config.json``)
        4. Defaults

    Returns:
        The validated :class:`~pkce_login.models.FlowConfig`.

    Raises:
        ConfigurationError: If the client id or issuer is missing, or any
            value fails validation.
    """
    global_cfg = load_global_config()

    client_id = _pick(cli_client_id, ENV_CLIENT_ID, global_cfg.client_id)
    issuer = _pick(cli_issuer, ENV_ISSUER, global_cfg.issuer)
    redirect_uri = _pick(cli_redirect_uri, ENV_REDIRECT_URI, global_cfg.redirect_uri)

    if not client_id:
        raise ConfigurationError(
            f"Client id is required: pass --clientid or set {ENV_CLIENT_ID}"
        )
    if not issuer:
        raise ConfigurationError(
            f"Issuer is required: pass --issuer or set {ENV_ISSUER}"
        )

    scopes: Optional[list[str]] = None
    if cli_scopes:
        scopes = list(cli_scopes)
    elif os.environ.get(ENV_SCOPES):
        scopes = _split_scopes(os.environ[ENV_SCOPES])
    elif global_cfg.scopes is not None:
        scopes = list(global_cfg.scopes)

    timeout = cli_timeout
    if timeout is None:
        timeout = _env_timeout()
    if timeout is None:
        timeout = global_cfg.timeout

    values: dict[str, object] = {
        "client_id": client_id,
        "issuer": issuer,
        "open_browser": open_browser,
    }
    if redirect_uri:
        values["redirect_uri"] = redirect_uri
    if scopes is not None:
        values["scopes"] = scopes
    if timeout is not None:
        values["timeout"] = timeout

    try:
        return FlowConfig.model_validate(values)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid configuration: {_format_validation_error(exc)}"
        ) from exc
