"""CLI utility functions for opencv-builder.

This module provides common utilities used across CLI commands including:
- Logging setup
- Error handling and formatting

Status output goes to stderr so stdout carries only the published value.
"""

import logging
import sys

from opencv_builder.errors import BuilderError, DownloadFailed, ExtractionFailed, ProcessFailed

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False) -> None:
    """Send library logs to stderr, DEBUG when verbose."""
    logger = logging.getLogger("opencv_builder")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)


class ErrorFormatter:
    """Formats and displays status messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Build failed")
            message: Error message details
        """
        print(file=sys.stderr)
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}", file=sys.stderr)
        print(file=sys.stderr)
        print(message, file=sys.stderr)
        print(file=sys.stderr)

    @staticmethod
    def print_success(message: str) -> None:
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}", file=sys.stderr)

    @staticmethod
    def print_warning(message: str) -> None:
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}", file=sys.stderr)

    @staticmethod
    def describe(error: BuilderError) -> str:
        """Name the phase a builder error came from."""
        if isinstance(error, DownloadFailed):
            return f"Download of {error.archive} failed"
        if isinstance(error, ExtractionFailed):
            return f"Extraction of {error.archive} failed"
        if isinstance(error, ProcessFailed):
            return f"{error.tool} failed"
        return "Build failed"

    @staticmethod
    def handle_builder_error(error: BuilderError) -> None:
        """Report a builder error and exit with status 1."""
        ErrorFormatter.print_error(ErrorFormatter.describe(error), str(error))
        sys.exit(1)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Build interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:", file=sys.stderr)
            print(traceback.format_exc(), file=sys.stderr)

        sys.exit(1)
