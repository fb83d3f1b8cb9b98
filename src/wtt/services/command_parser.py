"""Resolution of ``wtt exec`` arguments into a parsed command."""

import logging

from ..models.config import WorktreeConfig
from ..models.execution import CommandType, ExecutionModeKind, ParsedCommand
from ..utils.exceptions import ConfigurationError

SEPARATOR = "--"


class CommandParser:
    """
    Distinguishes predefined commands from inline ones and resolves the mode.

    Everything after a literal ``--`` is an inline command; otherwise the
    first token names a command from the configuration. The mode is the CLI
    value if given, then the command's configured mode, then the default for
    the environment (``exit`` when non-interactive, ``window`` otherwise).
    """

    def __init__(self, logger: logging.Logger, non_interactive: bool = False):
        """
        Initialize the parser.

        Args:
            logger: Logger for debug output
            non_interactive: Whether we run without a terminal (CI)
        """
        self.logger = logger
        self.non_interactive = non_interactive

    def parse(
        self,
        args: list[str],
        config: WorktreeConfig | None,
        mode: "str | ExecutionModeKind | None" = None,
    ) -> ParsedCommand:
        """
        Parse command tokens.

        Args:
            args: Tokens following ``exec``, including any ``--``
            config: Project configuration (may be None for inline commands)
            mode: Mode given on the command line, if any

        Returns:
            ParsedCommand: The resolved command

        Raises:
            ConfigurationError: If no command is given, the named command does
                not exist or the mode is invalid
        """
        cli_mode = ExecutionModeKind.parse(mode) if mode is not None else None

        if SEPARATOR in args:
            tokens = args[args.index(SEPARATOR) + 1 :]
            if not tokens:
                raise ConfigurationError(
                    "No command specified after --",
                    hint="Usage: wtt exec -- <command> [args...]",
                )
            parsed = ParsedCommand(
                type=CommandType.INLINE,
                command=tokens[0],
                args=tuple(tokens[1:]),
                mode=cli_mode or ExecutionModeKind.default(self.non_interactive),
            )
            self.logger.debug(f"Parsed inline command: {parsed}")
            return parsed

        if not args:
            raise ConfigurationError(
                "No command specified",
                hint="Usage: wtt exec <command> or wtt exec -- <command>",
            )

        commands = config.commands if config is not None else {}
        if not commands:
            raise ConfigurationError(
                "No commands configured",
                hint='Add commands to .worktree-config.json or use "wtt exec -- <command>"',
            )

        name = args[0]
        command_config = commands.get(name)
        if command_config is None:
            raise ConfigurationError(
                f'Command "{name}" not found in config',
                hint=f"Available commands: {', '.join(commands)}",
                field="commands",
            )

        resolved_mode = (
            cli_mode
            or command_config.mode
            or ExecutionModeKind.default(self.non_interactive)
        )
        parsed = ParsedCommand(
            type=CommandType.PREDEFINED,
            command=command_config.command,
            args=tuple(args[1:]),
            mode=resolved_mode,
            command_name=name,
        )
        self.logger.debug(f"Parsed predefined command: {parsed}")
        return parsed
