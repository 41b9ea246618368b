"""Diagnostic output for smartdb.

The SDK never writes to stdout: its diagnostics (debug traces and warnings)
go to **stderr** through a Rich :class:`~rich.console.Console`. Colour
handling respects ``NO_COLOR`` and ``TERM=dumb``.

A single global :class:`OutputManager` holds the stderr console and the
verbose flag. Library code fetches it with :func:`get_output`;
:class:`~smartdb.client.SmartDBClient` installs a verbose manager via
:func:`set_output` when ``ClientConfig.verbose`` is set.
"""

from __future__ import annotations

import os
import sys
from typing import Optional

from rich.console import Console


class OutputManager:
    """Central manager for SDK diagnostics.

    Args:
        no_color: Disable all colour and Rich markup.
        verbose: Enable debug-level messages.
    """

    def __init__(
        self,
        no_color: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._verbose = verbose
        self._stderr = Console(
            file=sys.stderr,
            no_color=self._no_color,
            stderr=True,
        )

    @property
    def is_verbose(self) -> bool:
        """Whether verbose mode is enabled."""
        return self._verbose

    def warning(self, message: str) -> None:
        """Print a yellow warning to stderr. Always shown."""
        if self._no_color:
            print(f"Warning: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[yellow]Warning:[/yellow] {message}")

    def debug(self, message: str) -> None:
        """Print a debug message to stderr. Only shown when ``verbose`` is active.

        Args:
            message: The debug text (prefixed with ``[debug]`` on output).
        """
        if self._verbose:
            if self._no_color:
                print(f"[debug] {message}", file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim][debug] {message}[/dim]")


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
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
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
