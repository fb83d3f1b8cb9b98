"""Service layer for Git, tmux and command execution."""

from .autorun_manager import AutoRunManager
from .command_parser import CommandParser
from .config_manager import ConfigManager
from .execution_modes import (
    BackgroundMode,
    ExecutionMode,
    ExitMode,
    InlineMode,
    WindowMode,
)
from .git_service import GitService
from .mode_factory import create_execution_mode
from .refresh_manager import RefreshManager
from .terminal_service import TerminalLauncher
from .tmux_service import TmuxService, TmuxWindow

__all__ = [
    "AutoRunManager",
    "BackgroundMode",
    "CommandParser",
    "ConfigManager",
    "ExecutionMode",
    "ExitMode",
    "GitService",
    "InlineMode",
    "RefreshManager",
    "TerminalLauncher",
    "TmuxService",
    "TmuxWindow",
    "WindowMode",
    "create_execution_mode",
]
