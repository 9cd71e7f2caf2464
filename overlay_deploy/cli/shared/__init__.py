"""Shared CLI helpers."""

from .console import CLIConsole, configure_logging, console, with_error_handling

__all__ = ["CLIConsole", "configure_logging", "console", "with_error_handling"]
