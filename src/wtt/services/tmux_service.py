"""Asynchronous tmux operations for wtt."""

import asyncio
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from ..utils.environment import is_inside_tmux, is_tmux_disabled
from ..utils.exceptions import TmuxError
from ..utils.sanitize import sanitize_session_name, sanitize_window_name

logger = logging.getLogger(__name__)

# Temporary window indices used while reordering
SORT_TEMP_START_INDEX = 1000


@dataclass(frozen=True)
class TmuxWindow:
    """A window in a tmux session."""

    index: int
    name: str
    active: bool = False


class TmuxService:
    """
    Thin async wrapper over the ``tmux`` binary.

    Session names are sanitized from the project name; window names keep
    colons so ``<worktree>::<command>`` labels survive.
    """

    def __init__(
        self, environ: Mapping[str, str] | None = None, executable: str = "tmux"
    ):
        """
        Initialize the tmux service.

        Args:
            environ: Environment consulted for WTT_DISABLE_TMUX and TMUX
            executable: tmux binary to invoke
        """
        self._environ = os.environ if environ is None else environ
        self._executable = executable

    async def _run(self, args: list[str], error_message: str) -> str:
        """
        Run tmux and return its stdout.

        Raises:
            TmuxError: If tmux cannot be started or exits non-zero
        """
        logger.debug(f"Executing tmux command: {' '.join(args)}")
        try:
            process = await asyncio.create_subprocess_exec(
                self._executable,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await process.communicate()
        except OSError as e:
            raise TmuxError(f"{error_message}: {e}", tmux_args=args) from e

        if process.returncode != 0:
            detail = stderr.decode(errors="replace").strip()
            raise TmuxError(f"{error_message}: {detail}", tmux_args=args)

        return stdout.decode(errors="replace")

    async def _run_silent(self, args: list[str]) -> bool:
        try:
            await self._run(args, "tmux command failed")
        except TmuxError:
            return False
        return True

    @staticmethod
    def session_name(project_name: str) -> str:
        return sanitize_session_name(project_name)

    def is_inside_tmux(self) -> bool:
        return is_inside_tmux(self._environ)

    async def is_available(self) -> bool:
        """
        Check if tmux is available on the system.

        Returns:
            bool: False when WTT_DISABLE_TMUX=true or ``tmux -V`` fails
        """
        if is_tmux_disabled(self._environ):
            return False
        return await self._run_silent(["-V"])

    async def session_exists(self, session: str) -> bool:
        return await self._run_silent(["has-session", "-t", session])

    async def create_session(self, session: str, directory: str | None = None) -> None:
        args = ["new-session", "-d", "-s", sanitize_session_name(session)]
        if directory:
            args += ["-c", directory]
        await self._run(args, "Failed to create tmux session")

    async def create_window(self, session: str, window: str, directory: str) -> None:
        await self._run(
            [
                "new-window",
                "-d",
                "-t",
                sanitize_session_name(session),
                "-n",
                sanitize_window_name(window),
                "-c",
                directory,
            ],
            "Failed to create tmux window",
        )

    async def rename_window(self, session: str, index: int, name: str) -> None:
        await self._run(
            [
                "rename-window",
                "-t",
                f"{sanitize_session_name(session)}:{index}",
                sanitize_window_name(name),
            ],
            "Failed to rename tmux window",
        )

    async def create_session_with_window(
        self, session: str, window: str, directory: str, command: str
    ) -> None:
        """Create a detached session whose first window runs ``command``."""
        await self._run(
            [
                "new-session",
                "-d",
                "-s",
                sanitize_session_name(session),
                "-n",
                sanitize_window_name(window),
                "-c",
                directory,
                command,
            ],
            "Failed to create tmux session with window",
        )

    async def create_window_with_command(
        self, session: str, window: str, directory: str, command: str
    ) -> None:
        """Add a window running ``command`` to an existing session."""
        await self._run(
            [
                "new-window",
                "-d",
                "-t",
                sanitize_session_name(session),
                "-n",
                sanitize_window_name(window),
                "-c",
                directory,
                command,
            ],
            "Failed to create tmux window with command",
        )

    async def open_command_window(
        self, session: str, window: str, directory: str, command: str
    ) -> None:
        """
        Run ``command`` in a new window, creating the session if needed.

        Raises:
            TmuxError: If the session or window cannot be created
        """
        if await self.session_exists(sanitize_session_name(session)):
            await self.create_window_with_command(session, window, directory, command)
        else:
            await self.create_session_with_window(session, window, directory, command)

    async def ensure_window(self, session: str, window: str, directory: str) -> None:
        """
        Give a worktree a plain shell window, creating the session if needed.

        Raises:
            TmuxError: If the session or window cannot be created
        """
        if await self.session_exists(sanitize_session_name(session)):
            await self.create_window(session, window, directory)
        else:
            await self.create_session(session, directory)
            await self.rename_window(session, await self._first_index(session), window)

    async def _first_index(self, session: str) -> int:
        windows = await self.list_windows(session)
        return windows[0].index if windows else 0

    async def list_windows(self, session: str) -> list[TmuxWindow]:
        """
        List the windows of a session.

        Returns:
            List[TmuxWindow]: Windows in index order; empty if the session
            does not exist or tmux fails
        """
        try:
            output = await self._run(
                [
                    "list-windows",
                    "-t",
                    sanitize_session_name(session),
                    "-F",
                    "#{window_index}\t#{window_name}\t#{window_active}",
                ],
                "Failed to list tmux windows",
            )
        except TmuxError as e:
            logger.debug(f"Could not list windows for {session}: {e}")
            return []

        windows = []
        for line in output.strip().splitlines():
            index_str, _, rest = line.partition("\t")
            name, _, active = rest.rpartition("\t")
            try:
                index = int(index_str)
            except ValueError:
                index = 0
            windows.append(TmuxWindow(index=index, name=name, active=active == "1"))
        return windows

    async def move_window(self, session: str, source: int, target: int) -> None:
        name = sanitize_session_name(session)
        await self._run(
            ["move-window", "-s", f"{name}:{source}", "-t", f"{name}:{target}"],
            f"Failed to move window {source} to {target}",
        )

    async def is_command_running(self, session: str, window: str) -> bool:
        """
        Check whether a window with the given label exists in the session.

        Live windows are listed on every call; nothing is cached.
        """
        target = sanitize_window_name(window)
        windows = await self.list_windows(session)
        return any(w.name == target for w in windows)

    async def sort_windows_alphabetically(self, session: str) -> None:
        """
        Reorder the session's windows by name.

        Windows are first parked at temporary indices so no move collides
        with an occupied index, then placed at their sorted positions.

        Raises:
            TmuxError: If a move fails
        """
        windows = await self.list_windows(session)
        ordered = sorted(windows, key=lambda w: w.name.casefold())

        if [w.name for w in windows] == [w.name for w in ordered]:
            return

        base = min(w.index for w in windows)
        temp_index = {}
        for position, window in enumerate(windows):
            temp_index[window.index] = SORT_TEMP_START_INDEX + position
            await self.move_window(session, window.index, temp_index[window.index])

        for position, window in enumerate(ordered):
            await self.move_window(session, temp_index[window.index], base + position)

    async def kill_window(self, session: str, index: int) -> None:
        await self._run(
            ["kill-window", "-t", f"{sanitize_session_name(session)}:{index}"],
            f"Failed to close window {index}",
        )

    async def close_worktree_windows(self, session: str, worktree: str) -> int:
        """
        Close a worktree's shell window and its ``<worktree>::<command>`` windows.

        Returns:
            int: Number of windows closed

        Raises:
            TmuxError: If a window cannot be closed
        """
        name = sanitize_window_name(worktree)
        windows = [
            w
            for w in await self.list_windows(session)
            if w.name == name or w.name.startswith(f"{name}::")
        ]
        # Highest index first so renumbered sessions keep the remaining targets valid
        for window in sorted(windows, key=lambda w: w.index, reverse=True):
            await self.kill_window(session, window.index)
        return len(windows)

    async def switch_to_window(self, session: str, window: str) -> None:
        """Select ``window``, switching clients when inside another session."""
        target = f"{sanitize_session_name(session)}:{sanitize_window_name(window)}"
        if self.is_inside_tmux():
            await self._run(["switch-client", "-t", target], "Failed to switch window")
        else:
            await self._run(["select-window", "-t", target], "Failed to select window")
