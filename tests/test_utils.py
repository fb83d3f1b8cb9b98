"""Tests for environment, sanitizing and logging helpers."""

import logging

from wtt.utils.environment import (
    is_ci,
    is_inside_tmux,
    is_tmux_disabled,
    port_environment,
    port_variable,
)
from wtt.utils.logging_config import ColoredFormatter, level_from_flags
from wtt.utils.sanitize import (
    sanitize_project_name,
    sanitize_session_name,
    sanitize_window_name,
    sanitize_worktree_name,
)


class TestEnvironment:
    """Test cases for environment helpers."""

    def test_is_ci(self):
        assert is_ci({"CI": "true"})
        assert is_ci({"GITHUB_ACTIONS": "true"})
        assert is_ci({"JENKINS_URL": "http://jenkins"})
        assert not is_ci({})
        assert not is_ci({"CI": ""})

    def test_is_tmux_disabled(self):
        assert is_tmux_disabled({"WTT_DISABLE_TMUX": "true"})
        assert not is_tmux_disabled({"WTT_DISABLE_TMUX": "1"})
        assert not is_tmux_disabled({})

    def test_is_inside_tmux(self):
        assert is_inside_tmux({"TMUX": "/tmp/tmux-1000/default,1,0"})
        assert not is_inside_tmux({})

    def test_port_environment_numbered_from_one(self):
        assert port_variable(1) == "WTT_PORT1"
        assert port_environment([9000, 9003]) == {
            "WTT_PORT1": "9000",
            "WTT_PORT2": "9003",
        }
        assert port_environment([]) == {}


class TestSanitize:
    """Test cases for name sanitizing."""

    def test_session_name(self):
        assert sanitize_session_name("My App") == "my-app"
        assert sanitize_session_name("123project") == "project"
        assert sanitize_session_name("app.v2:x") == "appv2x"

    def test_window_name_keeps_colons_and_case(self):
        assert sanitize_window_name("Feature-1::dev") == "Feature-1::dev"
        assert sanitize_window_name("it's \"quoted\"") == "its quoted"

    def test_worktree_name(self):
        assert sanitize_worktree_name("Feature/Login Page!") == "featurelogin-page"
        assert len(sanitize_worktree_name("a" * 150)) == 100

    def test_project_name(self):
        assert sanitize_project_name("  My.Project  ") == "My.Project"
        assert sanitize_project_name("***") == ""


class TestLoggingConfig:
    """Test cases for logging helpers."""

    def test_level_from_flags(self):
        assert level_from_flags() == "INFO"
        assert level_from_flags(verbose=True) == "DEBUG"
        assert level_from_flags(quiet=True) == "WARNING"
        assert level_from_flags(verbose=True, quiet=True) == "WARNING"

    def test_colored_formatter_symbols(self):
        formatter = ColoredFormatter(fmt="%(message)s", use_color=False)
        record = logging.LogRecord("wtt", logging.WARNING, __file__, 1, "careful", None, None)

        assert formatter.format(record) == "⚠ careful"

    def test_colored_formatter_colors(self):
        formatter = ColoredFormatter(fmt="%(message)s", use_color=True)
        record = logging.LogRecord("wtt", logging.ERROR, __file__, 1, "broken", None, None)

        line = formatter.format(record)
        assert line.startswith("\033[31m")
        assert line.endswith("\033[0m")
