"""Configuration data models for wtt."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..utils.exceptions import ConfigurationError
from ..utils.path_manager import CONFIG_FILENAME
from ..utils.port_allocator import PortAllocator
from .execution import VALID_MODES_HINT, ExecutionModeKind

logger = logging.getLogger(__name__)

CONFIG_VERSION = "1.0.0"
DEFAULT_BASE_DIR = ".worktrees"


@dataclass(frozen=True)
class CommandConfig:
    """
    A named command from the ``commands`` map.

    In the file a command is either a bare string (just the shell command)
    or an object with ``command``, ``mode``, ``autoRun`` and ``numPorts``.

    Attributes:
        command: Shell command to run
        mode: Execution mode for this command (None defers to CLI/default)
        auto_run: Start this command automatically for new worktrees
        num_ports: Number of ports to allocate before running
        is_simple: Whether the command was given as a bare string
    """

    command: str
    mode: ExecutionModeKind | None = None
    auto_run: bool = False
    num_ports: int = 0
    is_simple: bool = False

    def to_value(self) -> str | dict[str, Any]:
        """
        Serialize back to the shape used in the configuration file.

        Returns:
            The bare command string for simple commands, otherwise a dict
        """
        if self.is_simple:
            return self.command

        data: dict[str, Any] = {"command": self.command}
        if self.mode is not None:
            data["mode"] = self.mode.value
        if self.auto_run:
            data["autoRun"] = True
        if self.num_ports:
            data["numPorts"] = self.num_ports
        return data

    @classmethod
    def from_value(cls, name: str, value: Any) -> "CommandConfig":
        """
        Deserialize a command entry.

        Args:
            name: Key of the entry in the commands map
            value: Raw JSON value (string or object)

        Returns:
            CommandConfig: Parsed command

        Raises:
            ConfigurationError: If the entry is malformed
        """
        field_name = f"commands.{name}"

        if isinstance(value, str):
            if not value.strip():
                raise ConfigurationError(
                    f'Command "{name}" is empty', field=field_name
                )
            return cls(command=value, is_simple=True)

        if not isinstance(value, dict):
            raise ConfigurationError(
                f'Command "{name}" must be a string or an object',
                field=field_name,
            )

        command = value.get("command")
        if not isinstance(command, str) or not command.strip():
            raise ConfigurationError(
                f'Command "{name}" is missing a "command" string',
                field=f"{field_name}.command",
            )

        mode = value.get("mode")
        if mode is not None:
            try:
                mode = ExecutionModeKind(mode)
            except ValueError:
                raise ConfigurationError(
                    f'Command "{name}" has invalid mode: {mode}',
                    hint=VALID_MODES_HINT,
                    field=f"{field_name}.mode",
                ) from None

        auto_run = value.get("autoRun", False)
        if not isinstance(auto_run, bool):
            raise ConfigurationError(
                f'Command "{name}" has a non-boolean "autoRun"',
                field=f"{field_name}.autoRun",
            )

        num_ports = value.get("numPorts", 0)
        if isinstance(num_ports, bool) or not isinstance(num_ports, int) or num_ports < 0:
            raise ConfigurationError(
                f'Command "{name}" must have a non-negative integer "numPorts"',
                field=f"{field_name}.numPorts",
            )

        return cls(command=command, mode=mode, auto_run=auto_run, num_ports=num_ports)


@dataclass
class WorktreeConfig:
    """
    Project configuration stored in ``.worktree-config.json``.

    Attributes:
        project_name: Name of the project, also the tmux session name
        main_branch: Main branch name (main, master, trunk, ...)
        base_dir: Directory that holds the worktrees, relative to the root
        tmux: Whether tmux integration is enabled
        commands: Named commands runnable with ``wtt exec``
        available_ports: Port range ("<start>-<end>") for commands needing ports
        auto_sort: Keep tmux windows sorted by name on refresh
        auto_remove: Remove a worktree after it has been merged
        version: Configuration version
    """

    project_name: str
    main_branch: str = "main"
    base_dir: str = DEFAULT_BASE_DIR
    tmux: bool = True
    commands: dict[str, CommandConfig] = field(default_factory=dict)
    available_ports: str | None = None
    auto_sort: bool = False
    auto_remove: bool = False
    version: str = CONFIG_VERSION

    def get_command(self, name: str) -> CommandConfig | None:
        return self.commands.get(name)

    def auto_run_commands(self) -> dict[str, CommandConfig]:
        """Commands flagged ``autoRun``, in configuration order."""
        return {
            name: cmd
            for name, cmd in self.commands.items()
            if not cmd.is_simple and cmd.auto_run
        }

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize configuration to dictionary.

        Returns:
            Dict[str, Any]: Serialized configuration data (camelCase keys)
        """
        data: dict[str, Any] = {
            "version": self.version,
            "projectName": self.project_name,
            "mainBranch": self.main_branch,
            "baseDir": self.base_dir,
            "tmux": self.tmux,
        }
        if self.commands:
            data["commands"] = {
                name: cmd.to_value() for name, cmd in self.commands.items()
            }
        if self.available_ports is not None:
            data["availablePorts"] = self.available_ports
        if self.auto_sort:
            data["autoSort"] = True
        if self.auto_remove:
            data["autoRemove"] = True
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "WorktreeConfig":
        """
        Deserialize and validate configuration from a dictionary.

        Args:
            data: Parsed JSON document

        Returns:
            WorktreeConfig: Validated configuration

        Raises:
            ConfigurationError: If a field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Invalid configuration format")

        for key in ("version", "projectName", "mainBranch", "baseDir"):
            value = data.get(key)
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError(
                    f'Configuration field "{key}" must be a non-empty string',
                    field=key,
                )

        if not isinstance(data.get("tmux"), bool):
            raise ConfigurationError(
                'Configuration field "tmux" must be a boolean', field="tmux"
            )

        raw_commands = data.get("commands") or {}
        if not isinstance(raw_commands, dict):
            raise ConfigurationError(
                'Configuration field "commands" must be an object', field="commands"
            )
        commands = {
            name: CommandConfig.from_value(name, value)
            for name, value in raw_commands.items()
        }

        available_ports = data.get("availablePorts")
        if available_ports is not None:
            if not isinstance(available_ports, str):
                raise ConfigurationError(
                    'Configuration field "availablePorts" must be a string',
                    field="availablePorts",
                )
            PortAllocator.parse_range(available_ports)

        return cls(
            version=data["version"],
            project_name=data["projectName"],
            main_branch=data["mainBranch"],
            base_dir=data["baseDir"],
            tmux=data["tmux"],
            commands=commands,
            available_ports=available_ports,
            auto_sort=bool(data.get("autoSort", False)),
            auto_remove=bool(data.get("autoRemove", False)),
        )

    def save(self, project_root: Path) -> Path:
        """
        Save configuration to the project root.

        Args:
            project_root: Directory to write the config file into

        Returns:
            Path: The written file

        Raises:
            ConfigurationError: If the file cannot be written
        """
        config_file = project_root / CONFIG_FILENAME
        try:
            with open(config_file, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
                f.write("\n")
        except OSError as e:
            raise ConfigurationError(
                f"Failed to save configuration: {e}", config_file=str(config_file)
            ) from e

        logger.debug(f"Configuration saved to: {config_file}")
        return config_file

    @classmethod
    def load(cls, project_root: Path) -> "WorktreeConfig | None":
        """
        Load configuration from the project root.

        Args:
            project_root: Directory containing the config file

        Returns:
            WorktreeConfig if the file exists, otherwise None

        Raises:
            ConfigurationError: If the file is unreadable or invalid
        """
        config_file = project_root / CONFIG_FILENAME
        if not config_file.exists():
            return None

        try:
            with open(config_file, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in configuration file: {e}",
                config_file=str(config_file),
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read configuration: {e}", config_file=str(config_file)
            ) from e

        try:
            config = cls.from_dict(data)
        except ConfigurationError as e:
            e.config_file = str(config_file)
            e.details["config_file"] = str(config_file)
            raise

        logger.debug(f"Configuration loaded from: {config_file}")
        return config

    def __str__(self) -> str:
        return f"WorktreeConfig(project={self.project_name}, commands={len(self.commands)})"
