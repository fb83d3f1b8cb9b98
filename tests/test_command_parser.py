"""Tests for CommandParser."""

import logging

import pytest

from wtt.models.config import CommandConfig, WorktreeConfig
from wtt.models.execution import CommandType, ExecutionModeKind
from wtt.services.command_parser import CommandParser
from wtt.utils.exceptions import ConfigurationError


@pytest.fixture
def config():
    return WorktreeConfig(
        project_name="myapp",
        commands={
            "build": CommandConfig("npm run build", is_simple=True),
            "test": CommandConfig("npm test", mode=ExecutionModeKind.EXIT),
        },
    )


@pytest.fixture
def parser():
    return CommandParser(logging.getLogger("test"), non_interactive=False)


class TestInlineCommands:
    def test_inline_command(self, parser, config):
        parsed = parser.parse(["--", "echo", "hi"], config)

        assert parsed.type is CommandType.INLINE
        assert parsed.command == "echo"
        assert parsed.args == ("hi",)
        assert parsed.command_name is None

    def test_inline_ignores_empty_commands_map(self, parser):
        parsed = parser.parse(["--", "echo", "hi"], WorktreeConfig(project_name="x"))

        assert parsed.command == "echo"
        assert parsed.args == ("hi",)

    def test_inline_without_config(self, parser):
        assert parser.parse(["--", "ls"], None).command == "ls"

    def test_tokens_before_separator_are_ignored(self, parser, config):
        parsed = parser.parse(["lint", "--", "echo"], config)

        assert parsed.type is CommandType.INLINE
        assert parsed.command == "echo"

    def test_nothing_after_separator(self, parser, config):
        with pytest.raises(ConfigurationError) as exc_info:
            parser.parse(["--"], config)
        assert exc_info.value.message == "No command specified after --"

    def test_inline_mode_from_cli(self, parser, config):
        parsed = parser.parse(["--", "echo"], config, mode="background")
        assert parsed.mode is ExecutionModeKind.BACKGROUND


class TestPredefinedCommands:
    def test_predefined_command(self, parser, config):
        parsed = parser.parse(["build", "--watch"], config)

        assert parsed.type is CommandType.PREDEFINED
        assert parsed.command == "npm run build"
        assert parsed.args == ("--watch",)
        assert parsed.command_name == "build"

    def test_no_command(self, parser, config):
        with pytest.raises(ConfigurationError) as exc_info:
            parser.parse([], config)
        assert exc_info.value.message == "No command specified"
        assert "wtt exec --" in exc_info.value.hint

    def test_unknown_command_lists_available(self, parser, config):
        with pytest.raises(ConfigurationError) as exc_info:
            parser.parse(["lint"], config)

        assert "lint" in exc_info.value.message
        assert "build" in exc_info.value.hint
        assert "test" in exc_info.value.hint

    def test_no_commands_configured(self, parser):
        with pytest.raises(ConfigurationError) as exc_info:
            parser.parse(["build"], WorktreeConfig(project_name="x"))
        assert exc_info.value.message == "No commands configured"

    def test_no_config(self, parser):
        with pytest.raises(ConfigurationError):
            parser.parse(["build"], None)


class TestModePrecedence:
    def test_cli_overrides_command_mode(self, parser, config):
        assert parser.parse(["test"], config, mode="inline").mode is ExecutionModeKind.INLINE

    def test_command_mode_used_without_cli(self, parser, config):
        assert parser.parse(["test"], config).mode is ExecutionModeKind.EXIT

    def test_default_outside_ci(self, parser, config):
        assert parser.parse(["build"], config).mode is ExecutionModeKind.WINDOW

    def test_default_inside_ci(self, config):
        ci_parser = CommandParser(logging.getLogger("test"), non_interactive=True)

        assert ci_parser.parse(["build"], config).mode is ExecutionModeKind.EXIT
        assert ci_parser.parse(["--", "echo"], config).mode is ExecutionModeKind.EXIT

    def test_invalid_cli_mode(self, parser, config):
        with pytest.raises(ConfigurationError):
            parser.parse(["build"], config, mode="tab")
