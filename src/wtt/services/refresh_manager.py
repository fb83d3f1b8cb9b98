"""Reconciling running ``autoRun`` commands with the tmux session."""

import logging

from ..models.config import WorktreeConfig
from ..models.execution import window_name
from ..models.worktree import WorktreeInfo
from ..utils.exceptions import ExecutionError, TmuxError
from ..utils.sanitize import sanitize_session_name
from .autorun_manager import AutoRunManager
from .tmux_service import TmuxService


class RefreshManager:
    """
    Restarts missing ``autoRun`` commands and keeps windows sorted.

    Presence is checked by looking for the ``<worktree>::<command>`` window
    in the project's tmux session, so refresh does nothing without tmux.
    Commands whose mode waits for completion leave no window behind and are
    not restarted.
    """

    def __init__(
        self,
        config: WorktreeConfig,
        logger: logging.Logger,
        tmux: TmuxService | None,
        autorun: AutoRunManager,
    ):
        self.config = config
        self.logger = logger
        self.tmux = tmux
        self.autorun = autorun

    @property
    def session_name(self) -> str:
        return sanitize_session_name(self.config.project_name)

    async def refresh_worktrees(self, worktrees: list[WorktreeInfo]) -> int:
        """
        Start every ``autoRun`` command that is not currently running.

        Args:
            worktrees: Worktrees to reconcile (main worktree excluded)

        Returns:
            int: Number of commands started

        Raises:
            ExecutionError: If one or more commands failed to start
        """
        commands = self.config.auto_run_commands()
        if not self.config.tmux or self.tmux is None:
            self.logger.debug("Refresh skipped: tmux integration disabled")
            return 0
        if not await self.tmux.is_available():
            self.logger.debug("Refresh skipped: tmux is not available")
            return 0
        if not commands:
            self.logger.debug("No autoRun commands to check")

        started = 0
        failed: list[str] = []

        for worktree in worktrees:
            for name, command in commands.items():
                if self.autorun.resolve_mode(command).waits_for_completion:
                    self.logger.debug(
                        f"Skipping {name} for {worktree.name}: runs to completion"
                    )
                    continue

                window = window_name(worktree.name, name)
                if await self.tmux.is_command_running(self.session_name, window):
                    self.logger.debug(f"{window} is already running")
                    continue

                self.logger.info(
                    f"Starting missing autoRun command: {name} for {worktree.name}"
                )
                try:
                    result = await self.autorun.run_command(name, command, worktree)
                except ExecutionError as e:
                    self.logger.warning(f"Failed to start {window}: {e.message}")
                    failed.append(window)
                    continue

                if result.failure_count:
                    failed.append(window)
                else:
                    started += 1

        if self.config.auto_sort:
            try:
                await self.tmux.sort_windows_alphabetically(self.session_name)
            except TmuxError as e:
                self.logger.warning(f"Failed to sort tmux windows: {e.message}")

        if failed:
            raise ExecutionError(
                f"{len(failed)} command(s) failed",
                failure_count=len(failed),
                failed_worktrees=failed,
            )
        return started
