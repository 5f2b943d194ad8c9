"""Diagnostics output for idxauth, written to stderr.

idxauth is a library, so nothing here ever touches stdout: every message is
a diagnostic routed to a Rich :class:`~rich.console.Console` bound to
stderr. Colour follows `clig.dev <https://clig.dev/>`_ conventions
(``NO_COLOR`` and ``TERM=dumb`` disable it).

The module exposes two layers:

1. :class:`OutputManager` -- holds the stderr console and the quiet/verbose
   flags.
2. A process-wide instance managed through :func:`get_output`,
   :func:`set_output` and :func:`reset_output`, so the orchestrator and HTTP
   client can emit diagnostics without threading a manager through every
   call. The instance holds display preferences only, never flow state.

Payloads are passed through :func:`redact_payload` before being logged so
passwords and codes never reach the console.
"""

from __future__ import annotations

import os
import sys
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape

REDACTED = "[REDACTED]"

_SECRET_KEYS = frozenset(
    {
        "passcode",
        "password",
        "newPassword",
        "verificationCode",
        "code_verifier",
        "codeVerifier",
        "client_secret",
        "interaction_code",
        "interactionCode",
        "access_token",
        "refresh_token",
        "id_token",
    }
)


class OutputManager:
    """Central manager for diagnostic output on stderr.

    Args:
        no_color: Disable all colour and Rich markup.
        quiet: Suppress informational messages (warnings are
            always shown).
        verbose: Enable debug-level messages, such as every collaborator
            call the orchestrator makes.
    """

    def __init__(
        self,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._stderr = Console(
            file=sys.stderr,
            no_color=self._no_color,
            stderr=True,
        )

    @property
    def is_quiet(self) -> bool:
        """Whether quiet mode is enabled."""
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        """Whether verbose mode is enabled."""
        return self._verbose

    def info(self, message: str) -> None:
        """Print an informational message. Suppressed when quiet."""
        if not self._quiet:
            self._emit(message, "")

    def success(self, message: str) -> None:
        """Print a green success message. Suppressed when quiet."""
        if not self._quiet:
            self._emit(message, "green")

    def warning(self, message: str) -> None:
        """Print a yellow warning. Never suppressed."""
        self._emit(message, "yellow", prefix="Warning:")

    def debug(self, message: str) -> None:
        """Print a debug message. Only shown when verbose."""
        if self._verbose:
            self._emit(message, "dim", prefix="[debug]")

    def _emit(self, message: str, style: str, prefix: str = "") -> None:
        text = f"{prefix} {message}" if prefix else message
        if self._no_color:
            print(text, file=sys.stderr, flush=True)
        elif style:
            self._stderr.print(f"[{style}]{escape(text)}[/{style}]")
        else:
            self._stderr.print(escape(text))


def redact_payload(payload: Any) -> Any:
    """Return a copy of *payload* with secret values replaced by ``[REDACTED]``.

    Walks nested dicts and lists; keys are matched case-sensitively against
    the known secret field names (``passcode``, ``password``, ...).

    Example::

        >>> redact_payload({"credentials": {"passcode": "hunter2"}})
        {'credentials': {'passcode': '[REDACTED]'}}
    """
    if isinstance(payload, dict):
        return {
            key: REDACTED if key in _SECRET_KEYS and value is not None else redact_payload(value)
            for key, value in payload.items()
        }
    if isinstance(payload, list):
        return [redact_payload(item) for item in payload]
    return payload


def _should_disable_color() -> bool:
    """Return True when NO_COLOR is set (any value) or TERM=dumb."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False


# ------------------------------------------------------------------ #
# Global output instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a quiet default lazily.

    The lazily created default is quiet and non-verbose so that an
    application embedding idxauth sees only warnings unless it
    installs its own manager with :func:`set_output`.
    """
    global _output
    if _output is None:
        _output = OutputManager(quiet=True)
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager` instance."""
    global _output
    _output = output


def reset_output() -> None:
    """Reset the global :class:`OutputManager` to ``None``.

    Primarily useful in test suites to ensure a clean state between tests.
    """
    global _output
    _output = None
