"""Tests for error handling system."""

import io
import logging

import pytest
from rich.console import Console

from wtt.utils.error_handler import ErrorHandler
from wtt.utils.exceptions import (
    ConfigurationError,
    ErrorCategory,
    ErrorSeverity,
    ExecutionError,
    GitError,
    PlatformError,
    PortAllocationError,
    ValidationError,
    WorktreeToolError,
)


class TestWorktreeToolError:
    """Test the base error class."""

    def test_basic_error_creation(self):
        error = WorktreeToolError("Test error")

        assert error.message == "Test error"
        assert error.category == ErrorCategory.COMMAND_EXECUTION
        assert error.severity == ErrorSeverity.ERROR
        assert error.user_message == "Test error"
        assert error.hint is None

    def test_error_to_dict(self):
        error = WorktreeToolError("Test error", hint="Try again", error_code="E001")

        error_dict = error.to_dict()

        assert error_dict["message"] == "Test error"
        assert error_dict["hint"] == "Try again"
        assert error_dict["error_code"] == "E001"
        assert error_dict["type"] == "WorktreeToolError"


class TestSpecificErrors:
    """Test specific error types."""

    def test_configuration_error(self):
        error = ConfigurationError("bad", field="availablePorts", config_file="/x.json")

        assert error.category == ErrorCategory.CONFIGURATION
        assert error.field == "availablePorts"
        assert error.config_file == "/x.json"

    def test_git_error_details(self):
        error = GitError("Failed", command="git worktree add", exit_code=128)

        assert error.category == ErrorCategory.GIT_OPERATION
        assert error.details["command"] == "git worktree add"

    def test_execution_error_counts(self):
        error = ExecutionError("2 command(s) failed", failure_count=2, failed_worktrees=["a", "b"])

        assert error.details["failure_count"] == 2
        assert error.details["failed"] == ["a", "b"]

    def test_port_allocation_error(self):
        error = PortAllocationError("none", count=3)

        assert error.category == ErrorCategory.RESOURCE
        assert error.count == 3


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def handler(output):
    console = Console(file=output, force_terminal=False, width=200)
    return ErrorHandler(console=console, logger=logging.getLogger("wtt.tests.errors"))


class TestErrorHandler:
    """Test the ErrorHandler class."""

    def test_prints_message_and_hint(self, handler, output):
        code = handler.handle_error(
            ConfigurationError("No command specified", hint="Usage: wtt exec <command>")
        )

        assert code == 1
        text = output.getvalue()
        assert "✗ No command specified" in text
        assert "Hint: Usage: wtt exec <command>" in text

    def test_execution_error_exit_code_is_failure_count(self, handler):
        assert handler.handle_error(ExecutionError("3 command(s) failed", failure_count=3)) == 3

    def test_markup_in_message_is_escaped(self, handler, output):
        handler.handle_error(ValidationError("bad value [red]x[/red]"))

        assert "[red]x[/red]" in output.getvalue()

    def test_os_error_converted_to_platform_error(self, handler, output):
        handler.handle_error(FileNotFoundError("no such file"))

        assert "no such file" in output.getvalue()
        assert "permissions" in output.getvalue()

    def test_convert_value_error(self, handler):
        converted = handler._convert_to_app_error(ValueError("bad"))

        assert isinstance(converted, ValidationError)

    def test_convert_git_message(self, handler):
        converted = handler._convert_to_app_error(RuntimeError("git exploded"))

        assert isinstance(converted, GitError)

    def test_convert_unknown(self, handler, output):
        code = handler.handle_error(RuntimeError("boom"))

        assert code == 1
        assert "Unexpected error: boom" in output.getvalue()
        assert "--verbose" in output.getvalue()

    def test_platform_error_passes_through(self, handler):
        converted = handler._convert_to_app_error(PlatformError("x"))

        assert isinstance(converted, WorktreeToolError)

    def test_details_shown_at_debug(self, output):
        logger = logging.getLogger("wtt.tests.errors.debug")
        logger.setLevel(logging.DEBUG)
        console = Console(file=output, force_terminal=False, width=200)
        handler = ErrorHandler(console=console, logger=logger)

        handler.handle_error(GitError("Failed", command="git worktree add", exit_code=128))

        assert "Command: git worktree add" in output.getvalue()

    def test_interrupt(self, handler, output):
        assert handler.handle_interrupt() == 130
        assert "Interrupted" in output.getvalue()
