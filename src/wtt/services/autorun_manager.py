"""Starting ``autoRun`` commands for worktrees."""

import logging
from collections.abc import Callable

from ..models.config import CommandConfig, WorktreeConfig
from ..models.execution import (
    CompletionResult,
    ExecutionModeKind,
    LaunchResult,
)
from ..models.worktree import WorktreeInfo
from ..utils.exceptions import ExecutionError
from ..utils.port_allocator import PortAllocator
from .context_builder import ContextBuilder
from .execution_modes import ExecutionMode
from .mode_factory import create_execution_mode

ModeFactory = Callable[[ExecutionModeKind], ExecutionMode]


class AutoRunManager:
    """
    Runs the commands flagged ``autoRun`` for a worktree.

    This is the bootstrap hook invoked right after a worktree is created.
    Bare-string commands and commands without ``autoRun`` are skipped.
    """

    def __init__(
        self,
        config: WorktreeConfig,
        logger: logging.Logger,
        non_interactive: bool = False,
        port_allocator: PortAllocator | None = None,
        mode_factory: ModeFactory | None = None,
    ):
        """
        Initialize the manager.

        Args:
            config: Project configuration
            logger: Logger for progress and warnings
            non_interactive: Whether we run without a terminal (CI); selects
                the default mode for commands without one
            port_allocator: Allocator used for commands with ``numPorts``
            mode_factory: Creates an execution mode for a mode kind
        """
        self.config = config
        self.logger = logger
        self.non_interactive = non_interactive
        self.contexts = ContextBuilder(config, logger, port_allocator)
        self.mode_factory = mode_factory or (
            lambda kind: create_execution_mode(kind, config, logger)
        )

    def resolve_mode(self, command: CommandConfig) -> ExecutionModeKind:
        return command.mode or ExecutionModeKind.default(self.non_interactive)

    async def run_command(
        self, name: str, command: CommandConfig, worktree: WorktreeInfo
    ) -> LaunchResult | CompletionResult:
        """
        Run one configured command in one worktree.

        Port allocation failures are logged and the command runs without
        port variables.

        Returns:
            The result reported by the execution mode

        Raises:
            ExecutionError: If the mode reports the command as failed
        """
        ports = self.contexts.allocate_ports(name, command.num_ports)
        context = self.contexts.build(
            worktree, command.command, command_name=name, ports=ports
        )
        mode = self.mode_factory(self.resolve_mode(command))
        return await mode.execute([context])

    async def run_auto_commands(self, worktree: WorktreeInfo) -> None:
        """
        Run every ``autoRun`` command for a newly created worktree.

        All commands are attempted even when some fail.

        Raises:
            ExecutionError: If one or more commands failed
        """
        commands = self.config.auto_run_commands()
        if not commands:
            self.logger.debug(f"No autoRun commands for {worktree.name}")
            return

        failed: list[str] = []
        for name, command in commands.items():
            self.logger.info(f"Running autoRun command: {name}")
            try:
                result = await self.run_command(name, command, worktree)
            except ExecutionError as e:
                self.logger.warning(f'autoRun command "{name}" failed: {e.message}')
                failed.append(name)
                continue

            if result.failure_count:
                self.logger.warning(f'autoRun command "{name}" failed')
                failed.append(name)

        if failed:
            raise ExecutionError(
                f"{len(failed)} command(s) failed",
                failure_count=len(failed),
                failed_worktrees=[worktree.name],
                details={"commands": failed},
            )
