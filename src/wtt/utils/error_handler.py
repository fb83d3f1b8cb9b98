"""Centralized error handling for the command line."""

import logging

from rich.console import Console
from rich.markup import escape

from .exceptions import (
    ErrorSeverity,
    ExecutionError,
    GitError,
    PlatformError,
    ValidationError,
    WorktreeToolError,
)


class ErrorHandler:
    """
    Turns exceptions into a user-facing message and a process exit code.

    Known errors print their message and hint; unexpected ones are logged
    with a traceback at debug level.
    """

    def __init__(
        self, console: Console | None = None, logger: logging.Logger | None = None
    ):
        self.console = console or Console(stderr=True)
        self.logger = logger or logging.getLogger(__name__)

    def handle_error(self, error: Exception) -> int:
        """
        Report an error to the user.

        Args:
            error: The exception to handle

        Returns:
            int: Exit code for the process; the failure count for
            execution errors, otherwise 1
        """
        if not isinstance(error, WorktreeToolError):
            self.logger.debug("Unexpected error", exc_info=error)
            error = self._convert_to_app_error(error)

        self._log_error(error)
        self._print_error(error)

        if isinstance(error, ExecutionError) and error.failure_count > 0:
            return error.failure_count
        return 1

    def handle_interrupt(self) -> int:
        self.console.print("[yellow]Interrupted[/yellow]")
        return 130

    def _convert_to_app_error(self, error: Exception) -> WorktreeToolError:
        """Convert a generic exception to a WorktreeToolError."""
        error_message = str(error) or error.__class__.__name__

        if isinstance(error, OSError):
            return PlatformError(
                error_message,
                hint="Check that the path exists and you have the necessary permissions",
            )
        elif isinstance(error, ValueError):
            return ValidationError(error_message)
        elif "git" in error_message.lower():
            return GitError(error_message)
        else:
            return WorktreeToolError(
                error_message,
                severity=ErrorSeverity.CRITICAL,
                user_message=f"Unexpected error: {error_message}",
                hint="Run again with --verbose for details",
            )

    def _log_error(self, error: WorktreeToolError):
        """Log the error for the log files; the console gets the rich output."""
        self.logger.debug(
            f"Error in {error.category.value}: {error.message}",
            extra={"error_details": error.to_dict()},
        )

    def _build_error_details(self, error: WorktreeToolError) -> list[str]:
        """Build the list of error details shown in verbose mode."""
        details = []
        for key, value in error.details.items():
            if value is not None and value != []:
                details.append(f"{key.replace('_', ' ').title()}: {value}")
        return details

    def _print_error(self, error: WorktreeToolError):
        self.console.print(f"[bold red]✗ {escape(error.user_message)}[/bold red]")
        if error.hint:
            self.console.print(f"  [dim]Hint:[/dim] {escape(error.hint)}")

        if self.logger.isEnabledFor(logging.DEBUG):
            for line in self._build_error_details(error):
                self.console.print(f"  [dim]{escape(line)}[/dim]")
