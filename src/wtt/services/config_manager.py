"""Configuration management service for wtt."""

import logging
from pathlib import Path

from ..models.config import DEFAULT_BASE_DIR, WorktreeConfig
from ..utils.exceptions import ConfigurationError
from ..utils.path_manager import CONFIG_FILENAME, PathManager

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Manages project configuration loading, saving, and related files.

    The configuration lives in ``.worktree-config.json`` at the project root;
    the root is found by walking up from the starting directory.
    """

    def __init__(self, start_dir: Path | None = None):
        """
        Initialize the configuration manager.

        Args:
            start_dir: Directory to start the project root search from
        """
        self._start_dir = start_dir or Path.cwd()
        self._project_root: Path | None = None
        self._config: WorktreeConfig | None = None

    @property
    def project_root(self) -> Path:
        """
        Get the project root, locating it if necessary.

        Raises:
            ConfigurationError: If no configuration file can be found
        """
        if self._project_root is None:
            root = PathManager.find_project_root(self._start_dir)
            if root is None:
                raise ConfigurationError(
                    "No configuration found",
                    hint='Run "wtt init" to initialize a configuration',
                )
            self._project_root = root
        return self._project_root

    @property
    def config(self) -> WorktreeConfig:
        """
        Get the current configuration, loading it if necessary.

        Returns:
            WorktreeConfig: Current project configuration
        """
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def load_config(self) -> WorktreeConfig:
        """
        Load configuration from the project root.

        Returns:
            WorktreeConfig: Loaded configuration

        Raises:
            ConfigurationError: If the file is missing or invalid
        """
        config = WorktreeConfig.load(self.project_root)
        if config is None:
            raise ConfigurationError(
                "No configuration found",
                hint='Run "wtt init" to initialize a configuration',
                config_file=str(self.project_root / CONFIG_FILENAME),
            )

        self._config = config
        logger.debug(f"Configuration loaded: {config}")
        return config

    def reload_config(self) -> WorktreeConfig:
        """Reload configuration from file, discarding the cached copy."""
        self._config = None
        return self.config

    def config_exists(self, directory: Path) -> bool:
        return (directory / CONFIG_FILENAME).is_file()

    def initialize(self, directory: Path, config: WorktreeConfig) -> Path:
        """
        Write a new configuration into ``directory``.

        Args:
            directory: Repository root to initialize
            config: Configuration to write

        Returns:
            Path: The written config file

        Raises:
            ConfigurationError: If the directory is already initialized
        """
        if self.config_exists(directory):
            raise ConfigurationError(
                "This repository is already initialized for wtt",
                config_file=str(directory / CONFIG_FILENAME),
            )

        config_file = config.save(directory)
        self._project_root = directory
        self._config = config
        logger.info(f"Configuration written to {config_file}")
        return config_file

    @staticmethod
    def default_config(
        project_name: str,
        main_branch: str = "main",
        base_dir: str = DEFAULT_BASE_DIR,
        tmux: bool = True,
    ) -> WorktreeConfig:
        """Build the configuration written by ``wtt init``."""
        return WorktreeConfig(
            project_name=project_name,
            main_branch=main_branch,
            base_dir=base_dir,
            tmux=tmux,
        )

    @staticmethod
    def update_gitignore(directory: Path, base_dir: str) -> bool:
        """
        Make sure the worktree base directory is ignored by Git.

        Args:
            directory: Repository root holding the .gitignore
            base_dir: Worktree base directory to ignore

        Returns:
            bool: True if the file was modified

        Raises:
            ConfigurationError: If the file cannot be read or written
        """
        gitignore = directory / ".gitignore"
        pattern = f"{base_dir.rstrip('/')}/"

        try:
            content = gitignore.read_text(encoding="utf-8") if gitignore.exists() else ""

            lines = [line.strip() for line in content.splitlines()]
            if pattern in lines or pattern.rstrip("/") in lines:
                return False

            if content and not content.endswith("\n"):
                content += "\n"
            if "wtt" not in content:
                content += "\n# wtt worktrees\n"
            content += f"{pattern}\n"

            gitignore.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Failed to update .gitignore: {e}") from e

        logger.debug(f"Added {pattern} to {gitignore}")
        return True
