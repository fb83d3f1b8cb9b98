"""Execution modes: how a command is run across a set of worktrees."""

import asyncio
import logging
import os
import shlex
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path

from ..models.config import WorktreeConfig
from ..models.execution import (
    CompletionResult,
    ExecutionContext,
    ExecutionModeKind,
    LaunchResult,
)
from ..utils.environment import IS_MAIN, WORKTREE_NAME, WORKTREE_PATH
from ..utils.exceptions import ExecutionError, PlatformError, TmuxError
from ..utils.path_manager import PathManager
from ..utils.sanitize import sanitize_session_name
from .terminal_service import TerminalLaunch, TerminalLauncher
from .tmux_service import TmuxService

# Bytes read from a pipe at a time when streaming output
STREAM_CHUNK_SIZE = 64 * 1024


def command_line(context: ExecutionContext) -> str:
    """
    Join a context's command and arguments into one shell line.

    The command itself is shell text from the configuration and is used
    as-is; each extra argument is quoted.
    """
    return " ".join([context.command, *(shlex.quote(arg) for arg in context.args)])


def _decode_line(line: bytes) -> str:
    return line.decode(errors="replace").rstrip("\r")


class ExecutionMode(ABC):
    """
    Base class for the four execution modes.

    Every mode runs one process per context and never lets one context's
    failure stop the others.
    """

    kind: ExecutionModeKind

    def __init__(
        self,
        config: WorktreeConfig,
        logger: logging.Logger,
        environ: Mapping[str, str] | None = None,
    ):
        """
        Initialize the mode.

        Args:
            config: Project configuration
            logger: Logger receiving per-context output and status lines
            environ: Base environment for spawned commands (defaults to os.environ)
        """
        self.config = config
        self.logger = logger
        self._environ = os.environ if environ is None else environ

    def context_variables(self, context: ExecutionContext) -> dict[str, str]:
        """The context's own variables plus the three fixed worktree variables."""
        variables = dict(context.env)
        variables[WORKTREE_NAME] = context.worktree_name
        variables[WORKTREE_PATH] = context.worktree_path
        variables[IS_MAIN] = "true" if context.is_main else "false"
        return variables

    def build_environment(self, context: ExecutionContext) -> dict[str, str]:
        """
        Build the full environment for a context's process.

        The base environment is overlaid with ``context.env`` and then with
        the worktree name, path and main-worktree flag.
        """
        env = dict(self._environ)
        env.update(self.context_variables(context))
        return env

    def export_lines(self, context: ExecutionContext) -> list[str]:
        """Shell ``export`` statements for the context's worktree and port variables."""
        return [
            f"export {name}={shlex.quote(value)}"
            for name, value in self.context_variables(context).items()
        ]

    @abstractmethod
    async def execute(
        self, contexts: list[ExecutionContext]
    ) -> LaunchResult | CompletionResult:
        """
        Run the command of every context.

        Args:
            contexts: One context per target worktree

        Returns:
            The launch or completion outcome of the batch

        Raises:
            ExecutionError: If one or more contexts failed
        """


class _MultiplexedMode(ExecutionMode):
    """Shared tmux handling for the launch-and-detach modes."""

    def __init__(
        self,
        config: WorktreeConfig,
        logger: logging.Logger,
        environ: Mapping[str, str] | None = None,
        tmux: TmuxService | None = None,
    ):
        super().__init__(config, logger, environ)
        self.tmux = tmux

    @property
    def session_name(self) -> str:
        return sanitize_session_name(self.config.project_name)

    async def use_tmux(self) -> bool:
        return bool(
            self.config.tmux and self.tmux is not None and await self.tmux.is_available()
        )

    def _raise_for_launch(self, result: LaunchResult) -> LaunchResult:
        if result.failed:
            raise ExecutionError(
                f"{result.failure_count} command(s) failed to start",
                failure_count=result.failure_count,
                failed_worktrees=result.failed,
            )
        return result


class WindowMode(_MultiplexedMode):
    """
    Opens one window per context and leaves it open after the command exits.

    With tmux active the window is a tmux window in the project session;
    otherwise a terminal emulator window is opened. Only launch failures
    are reported.
    """

    kind = ExecutionModeKind.WINDOW

    def __init__(
        self,
        config: WorktreeConfig,
        logger: logging.Logger,
        environ: Mapping[str, str] | None = None,
        tmux: TmuxService | None = None,
        terminal: TerminalLauncher | None = None,
    ):
        super().__init__(config, logger, environ, tmux)
        self.terminal = terminal

    def build_script(self, context: ExecutionContext) -> str:
        """Shell script run in the window; ends by re-entering an interactive shell."""
        line = command_line(context)
        steps = [
            *self.export_lines(context),
            "clear",
            f"echo {shlex.quote(f'Running: {line}')}",
            "echo",
            line,
            'exec "${SHELL:-/bin/sh}"',
        ]
        return "; ".join(steps)

    async def execute(self, contexts: list[ExecutionContext]) -> LaunchResult:
        result = LaunchResult()
        if not contexts:
            return result

        use_tmux = await self.use_tmux()

        for context in contexts:
            try:
                if use_tmux:
                    await self.tmux.open_command_window(
                        self.session_name,
                        context.window_name,
                        context.worktree_path,
                        self.build_script(context),
                    )
                else:
                    if self.terminal is None:
                        raise PlatformError("No terminal launcher configured")
                    self.terminal.launch(
                        TerminalLaunch(
                            directory=context.worktree_path,
                            title=context.window_name,
                            script=self.build_script(context),
                            command=command_line(context),
                            env=self.build_environment(context),
                        )
                    )
            except (TmuxError, PlatformError) as e:
                self.logger.error(f"[{context.worktree_name}] Failed to open window: {e}")
                result.failed.append(context.worktree_name)
                continue

            self.logger.info(f"Started {context.command} in {context.window_name}")
            result.launched.append(context.worktree_name)

        return self._raise_for_launch(result)


class BackgroundMode(_MultiplexedMode):
    """
    Starts each context detached and returns without waiting.

    With tmux active the command runs in its own tmux window with no shell
    left behind; otherwise it is spawned in a new session with output sent
    to a per-worktree log file (or discarded).
    """

    kind = ExecutionModeKind.BACKGROUND

    def __init__(
        self,
        config: WorktreeConfig,
        logger: logging.Logger,
        environ: Mapping[str, str] | None = None,
        tmux: TmuxService | None = None,
        log_dir: Path | None = None,
        capture_output: bool = True,
    ):
        super().__init__(config, logger, environ, tmux)
        self.log_dir = log_dir
        self.capture_output = capture_output

    def build_script(self, context: ExecutionContext) -> str:
        return "; ".join([*self.export_lines(context), command_line(context)])

    def _spawn(self, context: ExecutionContext) -> Path | None:
        """
        Spawn the context's command detached from this process.

        Returns:
            The log file receiving output, if any
        """
        log_file = None
        if self.capture_output:
            log_file = PathManager.get_background_log_file(
                context.worktree_name, self.log_dir
            )

        output = open(log_file, "ab") if log_file else subprocess.DEVNULL
        try:
            subprocess.Popen(
                command_line(context),
                shell=True,
                cwd=context.worktree_path,
                env=self.build_environment(context),
                stdin=subprocess.DEVNULL,
                stdout=output,
                stderr=subprocess.STDOUT if log_file else subprocess.DEVNULL,
                start_new_session=True,
            )
        finally:
            if log_file:
                output.close()
        return log_file

    async def execute(self, contexts: list[ExecutionContext]) -> LaunchResult:
        result = LaunchResult()
        if not contexts:
            return result

        use_tmux = await self.use_tmux()

        for context in contexts:
            try:
                if use_tmux:
                    await self.tmux.open_command_window(
                        self.session_name,
                        context.window_name,
                        context.worktree_path,
                        self.build_script(context),
                    )
                    where = f"tmux window {context.window_name}"
                else:
                    log_file = self._spawn(context)
                    where = f"background (log: {log_file})" if log_file else "background"
            except (OSError, TmuxError, PlatformError) as e:
                self.logger.error(
                    f"[{context.worktree_name}] Failed to start in background: {e}"
                )
                result.failed.append(context.worktree_name)
                continue

            self.logger.info(
                f"Started {context.command} for {context.worktree_name} in {where}"
            )
            result.launched.append(context.worktree_name)

        return self._raise_for_launch(result)


class _WaitingMode(ExecutionMode):
    """Shared process handling for the modes that wait for completion."""

    async def _spawn(self, context: ExecutionContext) -> asyncio.subprocess.Process:
        return await asyncio.create_subprocess_shell(
            command_line(context),
            cwd=context.worktree_path,
            env=self.build_environment(context),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

    @abstractmethod
    async def _run_one(self, context: ExecutionContext) -> int | None:
        """Run one context to completion; None means it could not be spawned."""

    async def _run_isolated(self, context: ExecutionContext) -> int | None:
        """Run one context, turning any error into a failed result for that context."""
        try:
            return await self._run_one(context)
        except Exception as e:
            self.logger.error(f"[{context.worktree_name}] Command aborted: {e}")
            return None

    async def _run_all(self, contexts: list[ExecutionContext]) -> CompletionResult:
        result = CompletionResult()
        if not contexts:
            return result

        exit_codes = await asyncio.gather(*(self._run_isolated(c) for c in contexts))

        for context, exit_code in zip(contexts, exit_codes):
            result.exit_codes[context.worktree_name] = exit_code
            if exit_code == 0:
                self.logger.info(f"{context.worktree_name} completed successfully")
                result.succeeded.append(context.worktree_name)
            else:
                reason = "did not complete" if exit_code is None else f"exit code {exit_code}"
                self.logger.error(f"{context.worktree_name} failed ({reason})")
                result.failed.append(context.worktree_name)

        return result


class InlineMode(_WaitingMode):
    """
    Runs all contexts concurrently in this process and waits for them.

    Output is not streamed: each context's stdout and stderr are collected
    and logged as one block under its worktree name once the process ends.
    """

    kind = ExecutionModeKind.INLINE

    async def _run_one(self, context: ExecutionContext) -> int | None:
        name = context.worktree_name
        try:
            process = await self._spawn(context)
            stdout, stderr = await process.communicate()
        except OSError as e:
            self.logger.error(f"[{name}] Failed to start: {e}")
            return None

        out = stdout.decode(errors="replace").rstrip()
        err = stderr.decode(errors="replace").rstrip()
        if out:
            self.logger.info(f"[{name}] Output:\n{out}")
        if err:
            self.logger.warning(f"[{name}] Errors:\n{err}")
        return process.returncode

    async def execute(self, contexts: list[ExecutionContext]) -> CompletionResult:
        result = await self._run_all(contexts)
        if result.failed:
            raise ExecutionError(
                f"{result.failure_count} command(s) failed",
                failure_count=result.failure_count,
                failed_worktrees=result.failed,
            )
        return result


class ExitMode(_WaitingMode):
    """
    Runs all contexts to completion, streaming their output line by line.

    Failures are not raised: the result's ``exit_code`` is the number of
    failed contexts, for use as the process exit status.
    """

    kind = ExecutionModeKind.EXIT

    async def _stream(self, stream: asyncio.StreamReader, name: str, error: bool):
        """
        Log a pipe line by line until it closes.

        The pipe is read in fixed-size chunks, so a line longer than
        ``STREAM_CHUNK_SIZE`` is logged in pieces instead of overrunning the
        reader's line limit.
        """
        log = self.logger.warning if error else self.logger.info
        pending = b""
        while True:
            chunk = await stream.read(STREAM_CHUNK_SIZE)
            if not chunk:
                break
            *lines, pending = (pending + chunk).split(b"\n")
            for line in lines:
                log(f"[{name}] {_decode_line(line)}")
            if len(pending) >= STREAM_CHUNK_SIZE:
                log(f"[{name}] {_decode_line(pending)}")
                pending = b""
        if pending:
            log(f"[{name}] {_decode_line(pending)}")

    async def _run_one(self, context: ExecutionContext) -> int | None:
        name = context.worktree_name
        try:
            process = await self._spawn(context)
        except OSError as e:
            self.logger.error(f"[{name}] Failed to start: {e}")
            return None

        try:
            await asyncio.gather(
                self._stream(process.stdout, name, error=False),
                self._stream(process.stderr, name, error=True),
            )
        except Exception:
            # Nobody reads the pipes any more; do not leave the child blocked on them
            if process.returncode is None:
                process.kill()
            await process.wait()
            raise
        return await process.wait()

    async def execute(self, contexts: list[ExecutionContext]) -> CompletionResult:
        result = await self._run_all(contexts)
        if result.failed:
            self.logger.error(
                f"{result.failure_count} command(s) failed: {', '.join(result.failed)}"
            )
        elif contexts:
            self.logger.info(f"All {len(contexts)} command(s) succeeded")
        return result
