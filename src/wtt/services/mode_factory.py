"""Factory mapping an execution mode kind to its implementation."""

import logging
from collections.abc import Mapping
from pathlib import Path

from ..models.config import WorktreeConfig
from ..models.execution import VALID_MODES_HINT, ExecutionModeKind
from ..utils.exceptions import ConfigurationError
from .execution_modes import (
    BackgroundMode,
    ExecutionMode,
    ExitMode,
    InlineMode,
    WindowMode,
)
from .terminal_service import TerminalLauncher
from .tmux_service import TmuxService


def create_execution_mode(
    mode: ExecutionModeKind,
    config: WorktreeConfig,
    logger: logging.Logger,
    *,
    tmux: TmuxService | None = None,
    terminal: TerminalLauncher | None = None,
    environ: Mapping[str, str] | None = None,
    log_dir: Path | None = None,
) -> ExecutionMode:
    """
    Create the execution mode for ``mode``.

    Args:
        mode: Mode to create; already validated by the parser or config loader
        config: Project configuration
        logger: Logger handed to the mode
        tmux: tmux service for window and background modes
        terminal: Terminal launcher for window mode without tmux
        environ: Base environment for spawned commands
        log_dir: Directory for background process logs

    Returns:
        ExecutionMode: A fresh mode instance

    Raises:
        ConfigurationError: If ``mode`` is not an execution mode; this means
            an unvalidated value reached the factory
    """
    if mode is ExecutionModeKind.WINDOW:
        return WindowMode(config, logger, environ, tmux=tmux, terminal=terminal)
    if mode is ExecutionModeKind.INLINE:
        return InlineMode(config, logger, environ)
    if mode is ExecutionModeKind.BACKGROUND:
        return BackgroundMode(config, logger, environ, tmux=tmux, log_dir=log_dir)
    if mode is ExecutionModeKind.EXIT:
        return ExitMode(config, logger, environ)

    raise ConfigurationError(
        f"Unknown execution mode: {mode!r} (this is a bug in the caller)",
        hint=VALID_MODES_HINT,
        field="mode",
    )
