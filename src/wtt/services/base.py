"""Base interfaces and abstract classes for services."""

from abc import ABC, abstractmethod

from ..models.worktree import WorktreeInfo


class CommandResult:
    """Result of a command execution."""

    def __init__(
        self, success: bool, output: str = "", error: str = "", exit_code: int = 0
    ):
        self.success = success
        self.output = output
        self.error = error
        self.exit_code = exit_code


class BaseService(ABC):
    """Base class for services that need a one-time availability check."""

    def __init__(self):
        self._initialized = False

    def initialize(self) -> None:
        """Initialize the service."""
        if not self._initialized:
            self._do_initialize()
            self._initialized = True

    @abstractmethod
    def _do_initialize(self) -> None:
        """Perform service-specific initialization."""
        pass

    def is_initialized(self) -> bool:
        """Check if the service is initialized."""
        return self._initialized


class GitServiceInterface(BaseService):
    """Interface for Git operations."""

    @abstractmethod
    def list_worktrees(self, repo_path: str) -> list[WorktreeInfo]:
        """Get list of worktrees."""
        pass

    @abstractmethod
    def create_worktree(
        self, repo_path: str, worktree_path: str, branch: str
    ) -> CommandResult:
        """Create a worktree."""
        pass

    @abstractmethod
    def remove_worktree(self, worktree_path: str, force: bool = False) -> CommandResult:
        """Remove a worktree."""
        pass
