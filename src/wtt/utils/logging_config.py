"""Logging configuration for the application."""

import logging
import logging.handlers
import sys

from .path_manager import PathManager


class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[90m",  # Gray
        "INFO": "\033[34m",  # Blue
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",  # Reset
    }

    SYMBOLS = {
        "DEBUG": "•",
        "INFO": "ℹ",
        "WARNING": "⚠",
        "ERROR": "✗",
        "CRITICAL": "✗",
    }

    def __init__(self, *args, use_color: bool = True, **kwargs):
        super().__init__(*args, **kwargs)
        self.use_color = use_color

    def format(self, record):
        message = super().format(record)
        symbol = self.SYMBOLS.get(record.levelname, "")
        line = f"{symbol} {message}" if symbol else message

        if self.use_color and record.levelname in self.COLORS:
            return f"{self.COLORS[record.levelname]}{line}{self.COLORS['RESET']}"
        return line


def level_from_flags(verbose: bool = False, quiet: bool = False) -> str:
    """
    Map the CLI verbosity flags to a logging level name.

    Args:
        verbose: Whether --verbose was given
        quiet: Whether --quiet was given

    Returns:
        Logging level name; quiet wins over verbose
    """
    if quiet:
        return "WARNING"
    if verbose:
        return "DEBUG"
    return "INFO"


def setup_logging(
    level: str = "INFO",
    log_to_file: bool = True,
    log_to_console: bool = True,
    max_file_size: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
) -> None:
    """
    Set up logging configuration for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to log to files
        log_to_console: Whether to log to console
        max_file_size: Maximum size of log files before rotation
        backup_count: Number of backup log files to keep
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if log_to_file else numeric_level)
    root_logger.handlers.clear()

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(
            ColoredFormatter(fmt="%(message)s", use_color=sys.stderr.isatty())
        )
        root_logger.addHandler(console_handler)

    if log_to_file:
        try:
            log_dir = PathManager.get_log_dir()
            log_dir.mkdir(parents=True, exist_ok=True)

            file_formatter = logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )

            app_handler = logging.handlers.RotatingFileHandler(
                log_dir / "app.log",
                maxBytes=max_file_size,
                backupCount=backup_count,
                encoding="utf-8",
            )
            app_handler.setLevel(logging.DEBUG)
            app_handler.setFormatter(file_formatter)
            root_logger.addHandler(app_handler)

            # Error log (only ERROR and CRITICAL)
            error_handler = logging.handlers.RotatingFileHandler(
                log_dir / "errors.log",
                maxBytes=max_file_size,
                backupCount=backup_count,
                encoding="utf-8",
            )
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(file_formatter)
            root_logger.addHandler(error_handler)

            # Command execution log
            command_logger = logging.getLogger("wtt.services")
            command_handler = logging.handlers.RotatingFileHandler(
                log_dir / "command_execution.log",
                maxBytes=max_file_size,
                backupCount=backup_count,
                encoding="utf-8",
            )
            command_handler.setLevel(logging.DEBUG)
            command_handler.setFormatter(file_formatter)
            command_logger.addHandler(command_handler)
            command_logger.propagate = True

        except OSError as e:
            # If file logging fails, at least log to console
            logging.getLogger(__name__).warning(f"Failed to set up file logging: {e}")

    logging.getLogger(__name__).debug(
        f"Logging configured - Level: {level}, File: {log_to_file}, Console: {log_to_console}"
    )

