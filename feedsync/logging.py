# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Logging interface for feedsync.

This module provides a configurable logging interface that library modules
can use for output without depending on the CLI. The logger can be configured
globally or passed as a parameter for better isolation.

The logger supports these output levels:

- Step: Always printed (per-entry progress indicators)
- Info: Always printed (stage outcomes)
- Warning: Always printed, tagged [WARNING]
- Error: Always printed, tagged [ERROR]
- Verbose: Only printed when verbose mode is enabled
- Debug: Only printed when debug mode is enabled (implies verbose)

Warnings and errors are only *printed* here. Counting them is the job of
`feedsync.results.SyncCounters`, which the pipeline passes around
explicitly.

Example:
    Configure global logger:
        ```python
        from feedsync.logging import get_logger, set_global_logger

        logger = get_logger(verbose=True, debug=False)
        set_global_logger(logger)
        ```

    Use in library code:
        ```python
        from feedsync.logging import get_global_logger

        logger = get_global_logger()
        logger.step(1, 12, "Resolving 7zip...")
        logger.verbose("DISCOVERY", "Latest manifest version: 23.01")
        logger.warning("ASSET", "Folder listing failed, assuming no artifact")
        ```

Note:
    The default logger is silent, so library functions won't print anything
    unless explicitly configured. The CLI configures the global logger when
    commands are executed.
"""

from __future__ import annotations

import sys
from typing import Protocol

_COLORS = {
    "step": "\033[36m",
    "info": "\033[32m",
    "warning": "\033[33m",
    "error": "\033[31m",
}
_RESET = "\033[0m"


class Logger(Protocol):
    """Protocol for logger implementations."""

    def step(self, step: int, total: int, message: str) -> None:
        """Print a step indicator.

        Args:
            step: Current step number (1-based).
            total: Total number of steps.
            message: Step description.
        """
        ...

    def info(self, prefix: str, message: str) -> None:
        """Print an informational message."""
        ...

    def warning(self, prefix: str, message: str) -> None:
        """Print a warning message."""
        ...

    def error(self, prefix: str, message: str) -> None:
        """Print an error message."""
        ...

    def verbose(self, prefix: str, message: str) -> None:
        """Print a verbose log message.

        Args:
            prefix: Message prefix (e.g., "ASSET", "PIPELINE").
            message: Log message.
        """
        ...

    def debug(self, prefix: str, message: str) -> None:
        """Print a debug log message.

        Args:
            prefix: Message prefix (e.g., "HTTP", "VERSION").
            message: Log message.
        """
        ...


class DefaultLogger:
    """Default logger implementation that prints to stdout.

    This logger respects verbose and debug flags and color-codes severity
    when color is enabled and stdout is a terminal.
    """

    def __init__(
        self, verbose: bool = False, debug: bool = False, color: bool = True
    ) -> None:
        """Initialize logger with verbosity settings.

        Args:
            verbose: If True, print verbose messages.
            debug: If True, print debug messages (implies verbose).
            color: If True, color severity tags when stdout is a TTY.
        """
        self._verbose = verbose or debug
        self._debug = debug
        self._color = color and sys.stdout.isatty()

    def _paint(self, level: str, text: str) -> str:
        if not self._color:
            return text
        return f"{_COLORS[level]}{text}{_RESET}"

    def step(self, step: int, total: int, message: str) -> None:
        """Print a step indicator."""
        print(self._paint("step", f"[{step}/{total}] {message}"))

    def info(self, prefix: str, message: str) -> None:
        """Print an informational message."""
        print(self._paint("info", f"[{prefix}] {message}"))

    def warning(self, prefix: str, message: str) -> None:
        """Print a warning message."""
        print(self._paint("warning", f"[WARNING] [{prefix}] {message}"))

    def error(self, prefix: str, message: str) -> None:
        """Print an error message."""
        print(self._paint("error", f"[ERROR] [{prefix}] {message}"))

    def verbose(self, prefix: str, message: str) -> None:
        """Print a verbose log message (only when verbose mode is active)."""
        if self._verbose:
            print(f"[{prefix}] {message}")

    def debug(self, prefix: str, message: str) -> None:
        """Print a debug log message (only when debug mode is active)."""
        if self._debug:
            print(f"[{prefix}] {message}")


class SilentLogger:
    """Logger that suppresses all output.

    Useful for programmatic usage when output is not desired.
    """

    def step(self, step: int, total: int, message: str) -> None:
        pass

    def info(self, prefix: str, message: str) -> None:
        pass

    def warning(self, prefix: str, message: str) -> None:
        pass

    def error(self, prefix: str, message: str) -> None:
        pass

    def verbose(self, prefix: str, message: str) -> None:
        pass

    def debug(self, prefix: str, message: str) -> None:
        pass


# Global logger instance (defaults to silent)
_global_logger: Logger = SilentLogger()


def get_logger(verbose: bool = False, debug: bool = False, color: bool = True) -> Logger:
    """Get a logger instance with specified verbosity.

    Args:
        verbose: If True, logger will print verbose messages.
        debug: If True, logger will print debug messages (implies verbose).
        color: If True, color severity tags on terminals.

    Returns:
        A logger instance configured with the specified verbosity.
    """
    return DefaultLogger(verbose=verbose, debug=debug, color=color)


def get_global_logger() -> Logger:
    """Get the global logger instance.

    Returns:
        The current global logger instance.

    Note:
        The default global logger is silent. Use set_global_logger() to
        configure it, or pass a logger instance directly to functions.
    """
    return _global_logger


def set_global_logger(logger: Logger) -> None:
    """Set the global logger instance.

    Args:
        logger: Logger instance to use as the global logger.

    Note:
        This affects all library functions that use get_global_logger()
        without passing a logger instance.
    """
    global _global_logger
    _global_logger = logger
