"""Launching commands in new terminal emulator windows."""

import logging
import os
import platform
import shlex
import shutil
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field

from ..utils.exceptions import PlatformError

logger = logging.getLogger(__name__)


@dataclass
class TerminalLaunch:
    """
    A request to open one terminal window.

    Attributes:
        directory: Working directory for the new window
        title: Window title
        script: POSIX shell script to run (exports, command, shell re-entry)
        command: The bare command line, for shells that cannot run ``script``
        env: Full environment for the launched process
    """

    directory: str
    title: str
    script: str
    command: str
    env: dict[str, str] = field(default_factory=dict)


def _applescript_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class TerminalStrategy(ABC):
    """One way of opening a terminal window on some platform."""

    name = ""

    @abstractmethod
    def can_handle(self, system: str, environ: Mapping[str, str]) -> bool:
        """Whether this strategy applies on ``system``."""

    @abstractmethod
    def build_args(self, request: TerminalLaunch) -> list[str]:
        """Build the argv that opens the window."""


class ITermStrategy(TerminalStrategy):
    name = "iTerm2"

    def can_handle(self, system: str, environ: Mapping[str, str]) -> bool:
        return system == "Darwin" and environ.get("TERM_PROGRAM") == "iTerm.app"

    def build_args(self, request: TerminalLaunch) -> list[str]:
        line = f"cd {shlex.quote(request.directory)} && {request.script}"
        script = "\n".join(
            [
                'tell application "iTerm"',
                "  activate",
                "  set newWindow to (create window with default profile)",
                "  tell current session of newWindow",
                f"    set name to {_applescript_string(request.title)}",
                f"    write text {_applescript_string(line)}",
                "  end tell",
                "end tell",
            ]
        )
        return ["osascript", "-e", script]


class TerminalAppStrategy(TerminalStrategy):
    name = "Terminal.app"

    def can_handle(self, system: str, environ: Mapping[str, str]) -> bool:
        return system == "Darwin"

    def build_args(self, request: TerminalLaunch) -> list[str]:
        line = f"cd {shlex.quote(request.directory)} && {request.script}"
        script = "\n".join(
            [
                'tell application "Terminal"',
                "  activate",
                f"  do script {_applescript_string(line)}",
                "end tell",
            ]
        )
        return ["osascript", "-e", script]


class GnomeTerminalStrategy(TerminalStrategy):
    name = "gnome-terminal"

    def can_handle(self, system: str, environ: Mapping[str, str]) -> bool:
        return system == "Linux" and shutil.which("gnome-terminal") is not None

    def build_args(self, request: TerminalLaunch) -> list[str]:
        return [
            "gnome-terminal",
            "--title",
            request.title,
            "--working-directory",
            request.directory,
            "--",
            "bash",
            "-c",
            request.script,
        ]


class KonsoleStrategy(TerminalStrategy):
    name = "konsole"

    def can_handle(self, system: str, environ: Mapping[str, str]) -> bool:
        return system == "Linux" and shutil.which("konsole") is not None

    def build_args(self, request: TerminalLaunch) -> list[str]:
        return [
            "konsole",
            "--workdir",
            request.directory,
            "-p",
            f"tabtitle={request.title}",
            "-e",
            "bash",
            "-c",
            request.script,
        ]


class XtermStrategy(TerminalStrategy):
    name = "xterm"

    def can_handle(self, system: str, environ: Mapping[str, str]) -> bool:
        return system == "Linux" and shutil.which("xterm") is not None

    def build_args(self, request: TerminalLaunch) -> list[str]:
        line = f"cd {shlex.quote(request.directory)} && {request.script}"
        return ["xterm", "-T", request.title, "-e", "bash", "-c", line]


class WindowsTerminalStrategy(TerminalStrategy):
    name = "Windows Terminal"

    def can_handle(self, system: str, environ: Mapping[str, str]) -> bool:
        return system == "Windows" and shutil.which("wt") is not None

    def build_args(self, request: TerminalLaunch) -> list[str]:
        # cmd.exe cannot run the POSIX script; the environment travels via Popen
        return [
            "wt",
            "-d",
            request.directory,
            "--title",
            request.title,
            "cmd",
            "/k",
            request.command,
        ]


DEFAULT_STRATEGIES: tuple[type[TerminalStrategy], ...] = (
    ITermStrategy,
    TerminalAppStrategy,
    GnomeTerminalStrategy,
    KonsoleStrategy,
    XtermStrategy,
    WindowsTerminalStrategy,
)


class TerminalLauncher:
    """
    Opens terminal windows using the first strategy that works here.

    Launches are detached: the window process is never waited on.
    """

    def __init__(
        self,
        strategies: list[TerminalStrategy] | None = None,
        system: str | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self.strategies = (
            strategies
            if strategies is not None
            else [strategy() for strategy in DEFAULT_STRATEGIES]
        )
        self.system = system or platform.system()
        self._environ = os.environ if environ is None else environ

    def available_strategies(self) -> list[TerminalStrategy]:
        return [s for s in self.strategies if s.can_handle(self.system, self._environ)]

    def launch(self, request: TerminalLaunch) -> str:
        """
        Open a terminal window for ``request``.

        Args:
            request: What to run and where

        Returns:
            str: Name of the strategy that opened the window

        Raises:
            PlatformError: If no strategy could open a window
        """
        errors = []
        for strategy in self.available_strategies():
            args = strategy.build_args(request)
            try:
                subprocess.Popen(
                    args,
                    cwd=request.directory,
                    env=request.env or None,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                    start_new_session=True,
                )
            except OSError as e:
                logger.debug(f"{strategy.name} failed to launch: {e}")
                errors.append(f"{strategy.name}: {e}")
                continue

            logger.debug(f"Opened {request.title} with {strategy.name}")
            return strategy.name

        detail = "; ".join(errors) if errors else f"no supported terminal on {self.system}"
        raise PlatformError(
            f"Could not open a terminal window ({detail})",
            hint='Enable tmux in the configuration or use "--mode inline"',
        )
