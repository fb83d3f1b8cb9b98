"""Custom exceptions for the application."""

from typing import Any
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity levels."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for better classification."""

    GIT_OPERATION = "git_operation"
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    COMMAND_EXECUTION = "command_execution"
    TMUX = "tmux"
    PLATFORM = "platform"
    RESOURCE = "resource"


class WorktreeToolError(Exception):
    """Base exception for wtt."""

    def __init__(
        self,
        message: str,
        hint: str | None = None,
        category: ErrorCategory = ErrorCategory.COMMAND_EXECUTION,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
        error_code: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.category = category
        self.severity = severity
        self.details = details or {}
        self.user_message = user_message or message
        self.error_code = error_code

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "message": self.message,
            "hint": self.hint,
            "category": self.category.value,
            "severity": self.severity.value,
            "details": self.details,
            "user_message": self.user_message,
            "error_code": self.error_code,
            "type": self.__class__.__name__,
        }


class ConfigurationError(WorktreeToolError):
    """Exception for configuration-related errors.

    Raised for malformed or missing command names, modes and port ranges.
    Always surfaced before any subprocess is started.
    """

    def __init__(
        self,
        message: str,
        hint: str | None = None,
        config_file: str | None = None,
        field: str | None = None,
        **kwargs,
    ):
        super().__init__(
            message, hint=hint, category=ErrorCategory.CONFIGURATION, **kwargs
        )
        self.config_file = config_file
        self.field = field
        if config_file:
            self.details.update({"config_file": config_file})
        if field:
            self.details.update({"field": field})


class ValidationError(WorktreeToolError):
    """Exception for invalid user input."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any | None = None,
        **kwargs,
    ):
        super().__init__(
            message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.WARNING,
            **kwargs,
        )
        self.field = field
        self.value = value
        if field:
            self.details.update(
                {"field": field, "value": str(value) if value is not None else None}
            )


class GitError(WorktreeToolError):
    """Exception for Git-related errors."""

    def __init__(
        self,
        message: str,
        command: str | None = None,
        exit_code: int | None = None,
        stderr: str | None = None,
        **kwargs,
    ):
        super().__init__(message, category=ErrorCategory.GIT_OPERATION, **kwargs)
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        if command:
            self.details.update(
                {"command": command, "exit_code": exit_code, "stderr": stderr}
            )


class TmuxError(WorktreeToolError):
    """Exception for tmux invocations that failed."""

    def __init__(self, message: str, tmux_args: list[str] | None = None, **kwargs):
        super().__init__(message, category=ErrorCategory.TMUX, **kwargs)
        self.tmux_args = tmux_args
        if tmux_args:
            self.details.update({"args": " ".join(tmux_args)})


class PlatformError(WorktreeToolError):
    """Exception for platform operations (terminal windows, shells)."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, category=ErrorCategory.PLATFORM, **kwargs)


class PortAllocationError(WorktreeToolError):
    """Exception raised when a port range cannot satisfy a request."""

    def __init__(
        self,
        message: str,
        count: int | None = None,
        start: int | None = None,
        end: int | None = None,
        **kwargs,
    ):
        super().__init__(message, category=ErrorCategory.RESOURCE, **kwargs)
        self.count = count
        self.start = start
        self.end = end
        if count is not None:
            self.details.update({"count": count, "start": start, "end": end})


class ExecutionError(WorktreeToolError):
    """Aggregate failure of one or more execution contexts."""

    def __init__(
        self,
        message: str,
        failure_count: int,
        failed_worktrees: list[str] | None = None,
        **kwargs,
    ):
        super().__init__(message, category=ErrorCategory.COMMAND_EXECUTION, **kwargs)
        self.failure_count = failure_count
        self.failed_worktrees = failed_worktrees or []
        self.details.update(
            {"failure_count": failure_count, "failed": self.failed_worktrees}
        )
