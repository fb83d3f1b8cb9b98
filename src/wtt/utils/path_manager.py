"""OS-specific path management utilities."""

import sys
from datetime import datetime
from pathlib import Path

from ..utils.exceptions import PlatformError

CONFIG_FILENAME = ".worktree-config.json"
BOUNDARY_FILENAME = ".wtt-search-boundary"


class PathManager:
    """Manages OS-specific paths for logs and project root discovery."""

    APP_NAME = "wtt"

    @staticmethod
    def get_log_dir() -> Path:
        """
        Get OS-appropriate log directory.

        Returns:
            Path to log directory
        """
        if sys.platform == "darwin":  # macOS
            base_dir = Path.home() / "Library" / "Logs"
        elif sys.platform == "win32":  # Windows
            base_dir = Path.home() / "AppData" / "Local" / PathManager.APP_NAME / "Logs"
        else:  # Linux and other Unix-like systems
            base_dir = Path.home() / ".local" / "state"

        return base_dir / PathManager.APP_NAME if sys.platform != "win32" else base_dir

    @staticmethod
    def get_log_file(filename: str) -> Path:
        """
        Get path to a log file.

        Args:
            filename: Name of the log file

        Returns:
            Path to the log file
        """
        return PathManager.get_log_dir() / filename

    @staticmethod
    def get_background_log_file(worktree_name: str, log_dir: Path | None = None) -> Path:
        """
        Get a fresh log file path for a detached background process.

        Args:
            worktree_name: Name of the worktree the process runs in
            log_dir: Directory to place the file in (defaults to <log dir>/background)

        Returns:
            Path to the log file; its parent directory is created

        Raises:
            PlatformError: If the directory cannot be created
        """
        directory = log_dir or PathManager.get_log_dir() / "background"
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PlatformError(f"Failed to create log directory {directory}: {e}") from e

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = PathManager.get_safe_filename(f"{worktree_name}-{timestamp}.log")
        return directory / filename

    @staticmethod
    def find_project_root(start_dir: Path | None = None) -> Path | None:
        """
        Find the project root by walking up to the directory holding the config file.

        A ``.wtt-search-boundary`` marker stops the search.

        Args:
            start_dir: Directory to start from (defaults to the current directory)

        Returns:
            Resolved project root, or None if no config file was found
        """
        current = (start_dir or Path.cwd()).resolve()

        for directory in (current, *current.parents):
            if (directory / CONFIG_FILENAME).is_file():
                return directory
            if (directory / BOUNDARY_FILENAME).exists():
                return None

        return None

    @staticmethod
    def get_safe_filename(filename: str) -> str:
        """
        Convert a string to a safe filename by removing/replacing invalid characters.

        Args:
            filename: Original filename

        Returns:
            Safe filename string
        """
        if not filename:
            return "unnamed"

        # Characters that are invalid in filenames on various OS
        invalid_chars = '<>:"/\\|?*'

        safe_name = filename
        for char in invalid_chars:
            safe_name = safe_name.replace(char, "_")

        # Remove control characters
        safe_name = "".join(char for char in safe_name if ord(char) >= 32)

        # Trim whitespace and dots (problematic on Windows)
        safe_name = safe_name.strip(". ")

        if not safe_name:
            return "unnamed"

        if len(safe_name) > 255:
            safe_name = safe_name[:255]

        return safe_name
