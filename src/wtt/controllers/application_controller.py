"""Application controller that coordinates services for the CLI commands."""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

from ..models.config import DEFAULT_BASE_DIR, WorktreeConfig
from ..models.execution import CompletionResult, ExecutionModeKind
from ..models.worktree import WorktreeInfo, WorktreeStatus
from ..services.autorun_manager import AutoRunManager
from ..services.command_parser import CommandParser
from ..services.config_manager import ConfigManager
from ..services.context_builder import ContextBuilder
from ..services.execution_modes import ExecutionMode
from ..services.git_service import GitService
from ..services.mode_factory import create_execution_mode
from ..services.refresh_manager import RefreshManager
from ..services.terminal_service import TerminalLauncher
from ..services.tmux_service import TmuxService
from ..utils.environment import is_ci, is_confirmation_disabled
from ..utils.exceptions import (
    ConfigurationError,
    GitError,
    TmuxError,
    ValidationError,
)
from ..utils.port_allocator import PortAllocator
from ..utils.sanitize import (
    sanitize_project_name,
    sanitize_session_name,
    sanitize_worktree_name,
)

# Components that run commands log under wtt.services so their output also
# lands in command_execution.log
EXECUTION_LOGGER = "wtt.services.execution"


class ApplicationController:
    """
    Coordinates configuration, Git, tmux and execution for each CLI command.

    Every collaborator can be injected; the defaults talk to the real
    ``git`` and ``tmux`` binaries.
    """

    def __init__(
        self,
        cwd: Path | None = None,
        environ: Mapping[str, str] | None = None,
        console: Console | None = None,
        git_service: GitService | None = None,
        tmux_service: TmuxService | None = None,
        terminal: TerminalLauncher | None = None,
        port_allocator: PortAllocator | None = None,
    ):
        """Initialize the application controller."""
        self.logger = logging.getLogger(__name__)
        self.execution_logger = logging.getLogger(EXECUTION_LOGGER)

        self.cwd = cwd or Path.cwd()
        self.environ = os.environ if environ is None else environ
        self.non_interactive = is_ci(self.environ)
        self.console = console or Console()

        # Services
        self.config_manager = ConfigManager(self.cwd)
        self.git_service = git_service or GitService()
        self.tmux_service = tmux_service or TmuxService(self.environ)
        self.terminal = terminal or TerminalLauncher(environ=self.environ)
        self.port_allocator = port_allocator or PortAllocator()

    @property
    def config(self) -> WorktreeConfig:
        return self.config_manager.config

    @property
    def git(self) -> GitService:
        """Git service, checked for a usable git binary on first use."""
        if not self.git_service.is_initialized():
            self.git_service.initialize()
        return self.git_service

    def create_mode(self, kind: ExecutionModeKind) -> ExecutionMode:
        return create_execution_mode(
            kind,
            self.config,
            self.execution_logger,
            tmux=self.tmux_service,
            terminal=self.terminal,
            environ=self.environ,
        )

    def autorun_manager(self) -> AutoRunManager:
        return AutoRunManager(
            self.config,
            self.execution_logger,
            non_interactive=self.non_interactive,
            port_allocator=self.port_allocator,
            mode_factory=self.create_mode,
        )

    def list_all_worktrees(self) -> list[WorktreeInfo]:
        return self.git.list_worktrees(str(self.config_manager.project_root))

    def select_worktrees(self, names: list[str] | None = None) -> list[WorktreeInfo]:
        """
        Get the non-main worktrees, optionally restricted to ``names``.

        Args:
            names: Directory or branch names to select; None selects all

        Raises:
            ValidationError: If a name matches no worktree
        """
        worktrees = [wt for wt in self.list_all_worktrees() if not wt.is_main]
        if not names:
            return worktrees

        selected = []
        for name in names:
            matches = [wt for wt in worktrees if wt.matches(name)]
            if not matches:
                available = ", ".join(wt.name for wt in worktrees) or "none"
                raise ValidationError(
                    f'Worktree "{name}" not found',
                    field="worktrees",
                    value=name,
                    hint=f"Available worktrees: {available}",
                )
            selected.extend(wt for wt in matches if wt not in selected)
        return selected

    async def init(
        self,
        project_name: str | None = None,
        base_dir: str = DEFAULT_BASE_DIR,
        main_branch: str | None = None,
        tmux: bool | None = None,
    ) -> int:
        """Write a configuration for the repository containing the current directory."""
        repo_root = Path(self.git.get_repo_root(str(self.cwd)))

        name = sanitize_project_name(project_name or repo_root.name)
        if not name:
            raise ValidationError(
                f"Invalid project name: {project_name or repo_root.name}",
                field="projectName",
                hint="Use --project-name to choose one",
            )

        if tmux is None:
            tmux = await self.tmux_service.is_available()

        config = ConfigManager.default_config(
            project_name=name,
            main_branch=main_branch or self.git.get_main_branch(str(repo_root)),
            base_dir=base_dir,
            tmux=tmux,
        )
        config_file = self.config_manager.initialize(repo_root, config)
        if ConfigManager.update_gitignore(repo_root, base_dir):
            self.logger.info(f"Added {base_dir}/ to .gitignore")

        self.logger.info(f"Initialized {name} ({config_file})")
        return 0

    async def create(self, name: str) -> int:
        """
        Create a worktree and branch, open its tmux window and run autoRun commands.

        Inside tmux the client is switched to the new window.

        Raises:
            ValidationError: If the name sanitizes to nothing
            GitError: If the repository has no commits or git fails
            ExecutionError: If autoRun commands failed
        """
        config = self.config
        worktree_name = sanitize_worktree_name(name)
        if not worktree_name:
            raise ValidationError(f"Invalid worktree name: {name}", field="name", value=name)

        root = self.config_manager.project_root
        worktree_path = root / config.base_dir / worktree_name

        if not self.git.has_commits(str(root)):
            raise GitError(
                "Cannot create worktree: No commits found",
                hint="Make at least one commit before creating worktrees",
            )

        self.logger.info(f"Creating worktree {worktree_name}")
        self.git.create_worktree(str(root), str(worktree_path), worktree_name)
        self.logger.info(f"Created worktree at {worktree_path}")

        worktree = WorktreeInfo(path=str(worktree_path), branch=worktree_name)

        if config.tmux and await self.tmux_service.is_available():
            session = sanitize_session_name(config.project_name)
            try:
                await self.tmux_service.ensure_window(
                    session, worktree_name, str(worktree_path)
                )
                if self.tmux_service.is_inside_tmux():
                    await self.tmux_service.switch_to_window(session, worktree_name)
            except TmuxError as e:
                self.logger.warning(f"Could not open tmux window: {e.message}")

        await self.autorun_manager().run_auto_commands(worktree)
        return 0

    async def remove(self, name: str, force: bool = False) -> int:
        """
        Remove the worktree selected by ``name`` and close its tmux windows.

        Windows are only closed once git has removed the worktree; failing
        to close them is reported as a warning.
        """
        worktree = self.select_worktrees([name])[0]
        self.git.remove_worktree(worktree.path, force=force)
        self.logger.info(f"Removed worktree {worktree.name}")

        await self.close_worktree_windows(worktree)
        return 0

    async def close_worktree_windows(self, worktree: WorktreeInfo) -> None:
        config = self.config
        if not config.tmux or not await self.tmux_service.is_available():
            return

        try:
            closed = await self.tmux_service.close_worktree_windows(
                sanitize_session_name(config.project_name), worktree.name
            )
        except TmuxError as e:
            self.logger.warning(f"Could not close tmux windows: {e.message}")
            return

        if closed:
            self.logger.info(f"Closed {closed} tmux window(s) for {worktree.name}")

    def current_worktree(self) -> WorktreeInfo:
        """
        Find the non-main worktree containing the current directory.

        Raises:
            ValidationError: If the current directory is not inside one
        """
        cwd = Path(self.cwd).resolve()
        for worktree in self.select_worktrees():
            path = Path(worktree.path).resolve()
            if cwd == path or path in cwd.parents:
                return worktree

        raise ValidationError(
            "Not in a worktree",
            field="worktree",
            hint="Run from within a worktree or name the worktree to merge",
        )

    def confirm(self, question: str) -> bool:
        """Ask a yes/no question; always yes in CI or with WTT_NO_CONFIRM=true."""
        if self.non_interactive or is_confirmation_disabled(self.environ):
            return True
        return Confirm.ask(question, console=self.console, default=False)

    async def merge(
        self,
        name: str | None = None,
        update: bool = False,
        fetch: bool = True,
        force: bool = False,
    ) -> int:
        """
        Merge a worktree's branch into the main branch, or the main branch into it.

        After merging into the main branch the worktree is removed when
        ``autoRemove`` is set.

        Args:
            name: Worktree to merge; defaults to the one containing the current directory
            update: Merge the main branch into the worktree instead
            fetch: Run ``git fetch`` before merging
            force: Merge even when the worktree has uncommitted changes

        Returns:
            int: Exit code

        Raises:
            ValidationError: If no worktree is selected
            GitError: If the worktree is dirty or the merge fails
        """
        config = self.config
        worktree = self.select_worktrees([name])[0] if name else self.current_worktree()
        branch = worktree.branch or worktree.name
        main_branch = config.main_branch
        root = str(self.config_manager.project_root)

        if not force and self.git.has_uncommitted_changes(worktree.path):
            raise GitError(
                f"Worktree {worktree.name} has uncommitted changes",
                hint="Commit or stash them, or use --force",
            )

        if fetch:
            self.logger.info("Fetching latest changes")
            result = self.git.fetch(root)
            if not result.success:
                self.logger.warning(f"Fetch failed, merging local state: {result.error}")

        source, target = (main_branch, branch) if update else (branch, main_branch)
        if not self.confirm(f"Merge {source} into {target}?"):
            self.logger.info("Merge cancelled")
            return 0

        self.logger.info(f"Merging {source} into {target}")
        if update:
            self.git.merge_branch(
                worktree.path, main_branch, f"Merge branch '{main_branch}' into {branch}"
            )
        else:
            self._merge_into_main(root, branch, main_branch)
        self.logger.info(f"Merged {source} into {target}")

        if config.auto_remove and not update:
            await self.remove(worktree.name)
        return 0

    def _merge_into_main(self, root: str, branch: str, main_branch: str) -> None:
        current = self.git.get_current_branch(root)
        if current != main_branch:
            self.git.checkout(root, main_branch)
        try:
            self.git.merge_branch(root, branch, f"Merge branch '{branch}'")
        finally:
            if current != main_branch:
                try:
                    self.git.checkout(root, current)
                except GitError as e:
                    self.logger.warning(f"Could not return to {current}: {e.message}")

    def list_worktrees(self) -> int:
        """Print a table of all worktrees."""
        worktrees = self.list_all_worktrees()

        table = Table(title=f"Worktrees for {self.config.project_name}")
        table.add_column("Name", style="cyan")
        table.add_column("Branch", style="green")
        table.add_column("Commit")
        table.add_column("Path", style="dim")
        table.add_column("Status")

        for wt in worktrees:
            status = []
            if wt.is_main:
                status.append("main")
            if wt.is_locked:
                status.append("locked")
            table.add_row(
                wt.name,
                wt.branch or "(detached)",
                wt.get_commit_short_hash(),
                wt.path,
                ", ".join(status),
            )

        self.console.print(table)
        return 0

    def status(self, worktrees: list[str] | None = None) -> int:
        """Print uncommitted changes and divergence from the main branch per worktree."""
        main_branch = self.config.main_branch
        targets = self.select_worktrees(worktrees)
        if not targets:
            self.logger.info("No worktrees")
            return 0

        table = Table(title=f"Status against {main_branch}")
        table.add_column("Name", style="cyan")
        table.add_column("Branch", style="green")
        table.add_column("Changes")
        table.add_column("Ahead", justify="right")
        table.add_column("Behind", justify="right")

        for wt in targets:
            ahead, behind = self.git.get_ahead_behind(wt.path, main_branch)
            status = WorktreeStatus.from_porcelain(
                wt, self.git.get_status_lines(wt.path), ahead=ahead, behind=behind
            )
            changes = status.summary()
            if status.conflicted:
                changes = f"[red]{escape(changes)}[/red]"
            elif not status.is_clean:
                changes = f"[yellow]{escape(changes)}[/yellow]"
            table.add_row(
                escape(status.name),
                escape(status.branch or "(detached)"),
                changes,
                str(status.ahead),
                str(status.behind),
            )

        self.console.print(table)
        return 0

    async def exec(
        self,
        tokens: list[str],
        mode: str | None = None,
        worktrees: list[str] | None = None,
    ) -> int:
        """
        Run a predefined or inline command across worktrees.

        Args:
            tokens: Command tokens, with ``--`` introducing an inline command
            mode: Execution mode given on the command line
            worktrees: Restrict execution to these worktrees

        Returns:
            int: Exit code (the failure count in exit mode)

        Raises:
            ConfigurationError: If the command cannot be resolved
            ExecutionError: If a mode other than exit reports failures
        """
        config = self.config
        parser = CommandParser(self.logger, non_interactive=self.non_interactive)
        parsed = parser.parse(tokens, config, mode)

        targets = self.select_worktrees(worktrees)
        if not targets:
            self.logger.warning("No worktrees to run in")
            return 0

        num_ports = 0
        if parsed.is_predefined:
            num_ports = config.commands[parsed.command_name].num_ports

        builder = ContextBuilder(config, self.execution_logger, self.port_allocator)
        contexts = []
        used_ports: list[int] = []
        for worktree in targets:
            ports = builder.allocate_ports(
                parsed.command_name or parsed.command, num_ports, exclude=used_ports
            )
            if ports:
                used_ports.extend(ports)
            contexts.append(
                builder.build(
                    worktree,
                    parsed.command,
                    parsed.args,
                    command_name=parsed.command_name,
                    ports=ports,
                )
            )

        self.logger.info(
            f"Running {parsed.command_name or parsed.command} in "
            f"{len(contexts)} worktree(s) ({parsed.mode.value} mode)"
        )
        result = await self.create_mode(parsed.mode).execute(contexts)

        if isinstance(result, CompletionResult):
            return result.exit_code
        return 0

    async def refresh(self) -> int:
        """Restart missing autoRun commands and sort windows."""
        config = self.config
        if not config.tmux:
            self.logger.info("tmux integration is disabled; refresh has nothing to do")
            return 0

        manager = RefreshManager(
            config, self.execution_logger, self.tmux_service, self.autorun_manager()
        )
        started = await manager.refresh_worktrees(self.select_worktrees())
        self.logger.info(f"Refresh complete ({started} command(s) started)")
        return 0

    def ports(self, count: int) -> int:
        """
        Print ``count`` available ports from the configured range.

        Raises:
            ValidationError: If count is not positive
            ConfigurationError: If no port range is configured
            PortAllocationError: If the range cannot satisfy the request
        """
        if count < 1:
            raise ValidationError("Port count must be at least 1", field="count", value=count)

        port_range = self.config.available_ports
        if not port_range:
            raise ConfigurationError(
                "availablePorts is not configured",
                hint='Add "availablePorts": "<start>-<end>" to .worktree-config.json',
                field="availablePorts",
            )

        for port in self.port_allocator.allocate(port_range, count):
            self.console.print(port)
        return 0

    def __str__(self) -> str:
        return f"ApplicationController(cwd={self.cwd})"
