"""Execution data models: modes, parsed commands, contexts and results."""

from dataclasses import dataclass, field
from enum import Enum

from ..utils.exceptions import ConfigurationError

VALID_MODES_HINT = "Valid modes are: window, inline, background, exit"


class ExecutionModeKind(Enum):
    """How a command is launched and whether its lifecycle is waited on."""

    WINDOW = "window"
    INLINE = "inline"
    BACKGROUND = "background"
    EXIT = "exit"

    @classmethod
    def parse(cls, value: "str | ExecutionModeKind") -> "ExecutionModeKind":
        """
        Convert a configuration or CLI value to a mode.

        Args:
            value: Mode name or an existing mode

        Returns:
            ExecutionModeKind: The matching mode

        Raises:
            ConfigurationError: If the value is not one of the four modes
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ConfigurationError(
                f"Invalid execution mode: {value}", hint=VALID_MODES_HINT, field="mode"
            ) from None

    @classmethod
    def default(cls, non_interactive: bool) -> "ExecutionModeKind":
        """Mode used when neither the CLI nor the command config names one."""
        return cls.EXIT if non_interactive else cls.WINDOW

    @property
    def waits_for_completion(self) -> bool:
        """Inline and exit modes run to completion; the others launch and detach."""
        return self in (ExecutionModeKind.INLINE, ExecutionModeKind.EXIT)


class CommandType(Enum):
    """Origin of a parsed command."""

    PREDEFINED = "predefined"
    INLINE = "inline"


@dataclass(frozen=True)
class ParsedCommand:
    """
    A command resolved from the invocation arguments.

    ``command_name`` is set exactly when the command is predefined.
    """

    type: CommandType
    command: str
    args: tuple[str, ...]
    mode: ExecutionModeKind
    command_name: str | None = None

    def __post_init__(self):
        if (self.type is CommandType.PREDEFINED) != (self.command_name is not None):
            raise ValueError("command_name must be set exactly for predefined commands")

    @property
    def is_predefined(self) -> bool:
        return self.type is CommandType.PREDEFINED


@dataclass
class ExecutionContext:
    """
    Everything needed to run one command in one worktree.

    Attributes:
        worktree_name: Directory name of the target worktree
        worktree_path: Absolute path of the target worktree
        command: Shell command to run
        args: Extra arguments appended to the command
        env: Variables layered over the inherited environment
        ports: Ports allocated for this context, if any
        command_name: Name of the predefined command, used to name windows
        is_main: Whether the target is the main worktree
    """

    worktree_name: str
    worktree_path: str
    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    ports: list[int] | None = None
    command_name: str | None = None
    is_main: bool = False

    @property
    def window_name(self) -> str:
        return window_name(self.worktree_name, self.command_name)


def window_name(worktree_name: str, command_name: str | None = None) -> str:
    """Window label ``<worktree>::<command name>``; inline commands use ``exec``."""
    return f"{worktree_name}::{command_name or 'exec'}"


@dataclass
class LaunchResult:
    """Outcome of a launch-and-detach mode: only launch success is known."""

    launched: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def failure_count(self) -> int:
        return len(self.failed)


@dataclass
class CompletionResult:
    """Outcome of a wait-for-completion mode."""

    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    exit_codes: dict[str, int | None] = field(default_factory=dict)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def exit_code(self) -> int:
        """Process exit code for the batch: the number of failed contexts."""
        return self.failure_count
