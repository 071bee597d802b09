"""Console colors for pool-resource diagnostics.

Resource commands only colour stderr, and only when stderr is a TTY;
CI log collectors receive plain text.
"""

import os
import sys


class ConsoleColors:
    """ANSI color codes for stderr diagnostics."""

    RED = '\033[91m'
    RESET = '\033[0m'

    _enabled = sys.stderr.isatty() and not os.environ.get('NO_COLOR')

    @classmethod
    def configure(cls, no_color: bool = False) -> None:
        """Apply the global color policy (``--no-color`` or NO_COLOR)."""
        cls._enabled = sys.stderr.isatty() and not no_color and not os.environ.get('NO_COLOR')

    @classmethod
    def error(cls, text: str) -> str:
        """Format text as error (red)"""
        if cls._enabled:
            return f"{cls.RED}{text}{cls.RESET}"
        return text


def _format_error_msg(operation: str, error: Exception | None = None) -> str:
    """
    Format error messages consistently across the resource commands.

    Args:
        operation: Description of the operation that failed (e.g., "running out")
        error: Optional exception to include in the message

    Returns:
        Formatted error message string
    """
    msg = f"Error {operation}"
    if error:
        msg += f": {error!s}"
    return msg
