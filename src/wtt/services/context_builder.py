"""Building execution contexts for worktrees, including port allocation."""

import logging
from collections.abc import Iterable
from pathlib import Path

from ..models.config import WorktreeConfig
from ..models.execution import ExecutionContext
from ..models.worktree import WorktreeInfo
from ..utils.environment import port_environment
from ..utils.exceptions import ConfigurationError, PortAllocationError
from ..utils.port_allocator import PortAllocator


class ContextBuilder:
    """Turns a worktree and a command into an :class:`ExecutionContext`."""

    def __init__(
        self,
        config: WorktreeConfig,
        logger: logging.Logger,
        port_allocator: PortAllocator | None = None,
    ):
        self.config = config
        self.logger = logger
        self.port_allocator = port_allocator or PortAllocator()

    def allocate_ports(
        self, command_name: str, count: int, exclude: Iterable[int] = ()
    ) -> list[int] | None:
        """
        Allocate ports for a command, degrading to no ports on failure.

        Args:
            command_name: Command the ports are for (used in log lines)
            count: Number of ports requested
            exclude: Ports already handed out in this batch

        Returns:
            The allocated ports, or None if none were requested, no range is
            configured or allocation failed
        """
        if count <= 0:
            return None
        if not self.config.available_ports:
            self.logger.warning(
                f'Command "{command_name}" requests {count} port(s) but '
                f"availablePorts is not configured"
            )
            return None

        try:
            return self.port_allocator.allocate(
                self.config.available_ports, count, exclude=exclude
            )
        except (PortAllocationError, ConfigurationError) as e:
            self.logger.warning(
                f'Could not allocate ports for "{command_name}": {e.message}'
            )
            return None

    def build(
        self,
        worktree: WorktreeInfo,
        command: str,
        args: Iterable[str] = (),
        command_name: str | None = None,
        ports: list[int] | None = None,
    ) -> ExecutionContext:
        """
        Build the context for running ``command`` in ``worktree``.

        Allocated ports are recorded on the context and exported as
        WTT_PORT1..WTT_PORTn through its environment.
        """
        return ExecutionContext(
            worktree_name=worktree.name,
            worktree_path=str(Path(worktree.path).absolute()),
            command=command,
            args=list(args),
            env=port_environment(ports) if ports else {},
            ports=ports,
            command_name=command_name,
            is_main=worktree.is_main,
        )
