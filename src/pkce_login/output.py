"""Terminal output for pkce-login, split between data and diagnostics.

What a caller may want to capture goes to **stdout**: the access token, the
user profile, or the authorization URL in ``--dry-run`` mode. Everything
addressed to the person at the terminal (progress, warnings, errors,
hints) goes to **stderr**, so ``pkce-login ... --json > login.json`` leaves
a clean document behind.

Formatting follows the conventions of `clig.dev <https://clig.dev/>`_:
Rich styling when stdout is an interactive terminal, plain text when it is
piped, and no colour at all under ``NO_COLOR``, ``TERM=dumb`` or
``--no-color``.

:func:`~pkce_login.app.login` builds one :class:`OutputManager` per run and
installs it with :func:`set_output`. Library code reaches it through
:func:`get_output` or the module-level shortcuts at the bottom of this
file.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax


class OutputFormat(str, Enum):
    """How results are written to stdout.

    ``AUTO`` becomes ``RICH`` on an interactive, colour-capable terminal
    and ``PLAIN`` everywhere else. ``--json`` and ``--plain`` pick a
    format explicitly.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes results to stdout and diagnostics to stderr.

    Args:
        format: Requested output format; ``AUTO`` is resolved on
            construction.
        no_color: Turn off colour and Rich markup on both streams.
        quiet: Drop informational diagnostics. Warnings and errors are
            always shown.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet

        if format == OutputFormat.AUTO:
            interactive = _is_tty() and not self._no_color
            format = OutputFormat.RICH if interactive else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def stderr_console(self) -> Console:
        """The diagnostics console, shared with the logging handler."""
        return self._stderr

    # ------------------------------------------------------------------ #
    # Results (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        """Write *text* to stdout unchanged, followed by a newline."""
        print(text, file=sys.stdout, flush=True)

    def print_labeled(self, label: str, value: str, is_json: bool = False) -> None:
        """Print a heading followed by a value to stdout.

        In Rich mode the heading is cyan and the value yellow, or syntax
        highlighted when *is_json* is set. Other modes print ``label:`` on
        one line and the value verbatim below it. JSON mode callers use
        :meth:`print_json_document` instead.

        Args:
            label: Heading text, e.g. ``"Access Token"``.
            value: The value to print.
            is_json: Whether *value* is a JSON document.
        """
        if self._format != OutputFormat.RICH:
            self.print_data(f"{label}:")
            self.print_data(value)
            return

        self._stdout.print(f"[cyan]{escape(label)}:[/cyan]", highlight=False)
        if is_json:
            self._stdout.print(Syntax(value, "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(
                f"[yellow]{escape(value)}[/yellow]", soft_wrap=True, highlight=False
            )

    def print_json_document(self, data: Any) -> None:
        """Print *data* as a single pretty-printed JSON document on stdout."""
        self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def _diagnostic(self, message: str, style: str = "", prefix: str = "") -> None:
        if self._no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
            return
        text = escape(message)
        if prefix:
            text = f"[{style}]{escape(prefix.rstrip())}[/{style}] {text}"
        elif style:
            text = f"[{style}]{text}[/{style}]"
        self._stderr.print(text)

    def info(self, message: str) -> None:
        """Informational message. Hidden by ``--quiet``."""
        if not self._quiet:
            self._diagnostic(message)

    def progress(self, message: str) -> None:
        """Dimmed status line, e.g. while waiting for the callback. Hidden by ``--quiet``."""
        if not self._quiet:
            self._diagnostic(message, style="dim")

    def success(self, message: str) -> None:
        """Green completion message. Hidden by ``--quiet``."""
        if not self._quiet:
            self._diagnostic(message, style="green")

    def suggest(self, message: str) -> None:
        """Dimmed hint about what to try next. Hidden by ``--quiet``."""
        if not self._quiet:
            self._diagnostic(f"→ {message}", style="dim")

    def warning(self, message: str) -> None:
        """Yellow warning. Always shown."""
        self._diagnostic(message, style="yellow", prefix="Warning: ")

    def error(self, message: str) -> None:
        """Bold red error. Always shown."""
        self._diagnostic(message, style="bold red", prefix="Error: ")


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (to anything) or ``TERM`` is ``dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Process-wide instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one if needed."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the process-wide manager."""
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager. Test suites call this between tests."""
    global _output
    _output = None


def print_data(text: str) -> None:
    get_output().print_data(text)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)
