"""Git operations service for wtt."""

import logging
import subprocess
from pathlib import Path

from ..models.worktree import WorktreeInfo
from ..utils.exceptions import GitError, ValidationError
from .base import CommandResult, GitServiceInterface

logger = logging.getLogger(__name__)

COMMON_MAIN_BRANCHES = ("main", "master", "trunk", "development")


class GitService(GitServiceInterface):
    """
    Service for executing Git operations and managing worktrees.

    This service provides a high-level interface for Git operations including
    worktree listing, creation and removal, and repository inspection.
    """

    def __init__(self, timeout: int = 30):
        """
        Initialize the Git service.

        Args:
            timeout: Default timeout for Git operations in seconds
        """
        super().__init__()
        self.timeout = timeout
        self._git_executable = "git"

    def _do_initialize(self) -> None:
        """Initialize the Git service by checking Git availability."""
        result = self._run_git_command(["--version"], cwd=".")
        if not result.success:
            raise GitError("Git is not available or not properly installed")
        logger.debug(f"Git service initialized: {result.output.strip()}")

    def _run_git_command(
        self,
        args: list[str],
        cwd: str,
        timeout: int | None = None,
    ) -> CommandResult:
        """
        Execute a Git command with proper error handling.

        Args:
            args: Git command arguments (without 'git')
            cwd: Working directory for the command
            timeout: Command timeout in seconds

        Returns:
            CommandResult: Result of the command execution

        Raises:
            GitError: If the command cannot be executed at all
        """
        if timeout is None:
            timeout = self.timeout

        command = [self._git_executable] + args

        try:
            logger.debug(f"Executing Git command: {' '.join(command)} in {cwd}")

            result = subprocess.run(
                command,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            error_msg = (
                f"Git command timed out after {timeout} seconds: {' '.join(command)}"
            )
            logger.error(error_msg)
            raise GitError(error_msg, command=" ".join(command))
        except (OSError, subprocess.SubprocessError) as e:
            error_msg = f"Failed to execute Git command: {e}"
            logger.error(error_msg)
            raise GitError(error_msg, command=" ".join(command)) from e

        success = result.returncode == 0
        output = result.stdout.strip() if result.stdout else ""
        error = result.stderr.strip() if result.stderr else ""

        if not success:
            logger.debug(
                f"Git command failed: {' '.join(command)}, "
                f"exit code: {result.returncode}, error: {error}"
            )

        return CommandResult(
            success=success, output=output, error=error, exit_code=result.returncode
        )

    def list_worktrees(self, repo_path: str) -> list[WorktreeInfo]:
        """
        Get the worktrees of a repository.

        Args:
            repo_path: Path to the Git repository

        Returns:
            List[WorktreeInfo]: Worktrees in the order Git reports them

        Raises:
            GitError: If the operation fails
        """
        # Use git worktree list --porcelain for machine-readable output
        result = self._run_git_command(["worktree", "list", "--porcelain"], cwd=repo_path)

        if not result.success:
            raise GitError(
                f"Failed to list worktrees: {result.error}",
                command="git worktree list --porcelain",
                exit_code=result.exit_code,
                stderr=result.error,
            )

        return self._parse_worktree_list(result.output)

    def _parse_worktree_list(self, output: str) -> list[WorktreeInfo]:
        """
        Parse the output of 'git worktree list --porcelain'.

        Args:
            output: Raw output from git worktree list --porcelain

        Returns:
            List[WorktreeInfo]: Parsed worktrees; the first (or bare) entry is main
        """
        entries: list[dict] = []
        current: dict = {}

        for line in output.split("\n"):
            line = line.strip()
            if not line:
                if current:
                    entries.append(current)
                    current = {}
                continue

            if line.startswith("worktree "):
                if current:
                    entries.append(current)
                current = {"path": line[len("worktree ") :]}
            else:
                current = self._parse_worktree_line(line, current)

        # Add the last worktree if exists
        if current:
            entries.append(current)

        entries = [entry for entry in entries if entry.get("path")]
        if entries and not any(entry.get("is_main") for entry in entries):
            entries[0]["is_main"] = True

        return [
            WorktreeInfo(
                path=entry["path"],
                branch=entry.get("branch", ""),
                commit=entry.get("commit", ""),
                is_main=entry.get("is_main", False),
                is_locked=entry.get("is_locked", False),
            )
            for entry in entries
        ]

    def _parse_worktree_line(self, line: str, worktree: dict) -> dict:
        """Parse a single attribute line from git worktree list output."""
        if line.startswith("HEAD "):
            worktree["commit"] = line[5:]  # Remove 'HEAD ' prefix
        elif line.startswith("branch "):
            branch_ref = line[7:]  # Remove 'branch ' prefix
            if branch_ref.startswith("refs/heads/"):
                branch_ref = branch_ref[11:]
            worktree["branch"] = branch_ref
        elif line == "bare":
            worktree["is_main"] = True
        elif line == "locked" or line.startswith("locked "):
            worktree["is_locked"] = True

        return worktree

    def create_worktree(
        self, repo_path: str, worktree_path: str, branch: str
    ) -> CommandResult:
        """
        Create a new worktree, creating ``branch`` if it does not exist yet.

        Args:
            repo_path: Path to the Git repository
            worktree_path: Path where the new worktree should be created
            branch: Branch name for the worktree

        Returns:
            CommandResult: Result of the worktree creation

        Raises:
            ValidationError: If an argument is missing
            GitError: If the operation fails
        """
        if not repo_path or not worktree_path or not branch:
            raise ValidationError(
                "Repository path, worktree path, and branch are required"
            )

        if Path(worktree_path).exists():
            raise GitError(f"Worktree path already exists: {worktree_path}")

        if self.branch_exists(repo_path, branch):
            command = ["worktree", "add", worktree_path, branch]
        else:
            command = ["worktree", "add", "-b", branch, worktree_path]

        result = self._run_git_command(command, cwd=repo_path)

        if not result.success:
            error = result.error.lower()
            if "not a valid object name" in error and "head" in error:
                raise GitError(
                    "Cannot create worktree: No commits found",
                    hint="Make at least one commit before creating worktrees",
                    stderr=result.error,
                )
            elif "already exists" in error:
                raise GitError(f"Worktree or branch already exists: {branch}")
            else:
                raise GitError(
                    f"Failed to create worktree: {result.error}", stderr=result.error
                )

        logger.debug(f"Created worktree at {worktree_path} for branch {branch}")
        return result

    def remove_worktree(self, worktree_path: str, force: bool = False) -> CommandResult:
        """
        Remove a worktree.

        Args:
            worktree_path: Path to the worktree to remove
            force: Whether to force removal even with uncommitted changes

        Returns:
            CommandResult: Result of the worktree removal

        Raises:
            GitError: If the operation fails
        """
        if not worktree_path:
            raise ValidationError("Worktree path is required")

        command = ["worktree", "remove"]
        if force:
            command.append("--force")
        command.append(worktree_path)

        result = self._run_git_command(command, cwd=worktree_path)

        if not result.success:
            error = result.error.lower()
            if "not a working tree" in error:
                raise GitError(f"Path is not a Git worktree: {worktree_path}")
            elif "modified or untracked files" in error or "uncommitted" in error:
                raise GitError(
                    f"Worktree has uncommitted changes: {worktree_path}",
                    hint="Use --force to remove it anyway",
                )
            else:
                raise GitError(f"Failed to remove worktree: {result.error}")

        logger.debug(f"Removed worktree at {worktree_path}")
        return result

    def get_repo_root(self, path: str) -> str:
        """
        Find the top-level directory of the repository containing ``path``.

        Raises:
            GitError: If ``path`` is not inside a Git repository
        """
        result = self._run_git_command(["rev-parse", "--show-toplevel"], cwd=path)
        if not result.success:
            raise GitError(
                f"Not in a git repository: {path}",
                hint='Run "git init" first',
            )
        return result.output.strip()

    def is_git_repository(self, path: str) -> bool:
        """
        Check if a path is a Git repository.

        Args:
            path: Path to check

        Returns:
            bool: True if the path is a Git repository
        """
        try:
            result = self._run_git_command(["rev-parse", "--git-dir"], cwd=path)
            return result.success
        except GitError:
            return False

    def has_commits(self, repo_path: str) -> bool:
        """Check whether HEAD points at a commit."""
        result = self._run_git_command(["rev-parse", "--verify", "HEAD"], cwd=repo_path)
        return result.success

    def branch_exists(self, repo_path: str, branch: str) -> bool:
        """Check whether a local branch exists."""
        result = self._run_git_command(
            ["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"], cwd=repo_path
        )
        return result.success

    def get_local_branches(self, repo_path: str) -> list[str]:
        """Get list of local branches."""
        result = self._run_git_command(
            ["branch", "--format=%(refname:short)"], cwd=repo_path
        )

        if result.success and result.output:
            return [
                branch.strip() for branch in result.output.split("\n") if branch.strip()
            ]
        return []

    def get_main_branch(self, repo_path: str) -> str:
        """
        Detect the main branch name.

        Checks common names first, then ``HEAD`` in repositories without
        commits, then ``init.defaultBranch``; falls back to ``main``.

        Args:
            repo_path: Path to the Git repository

        Returns:
            str: Main branch name
        """
        branches = self.get_local_branches(repo_path)

        if not branches:
            head = self._run_git_command(["symbolic-ref", "HEAD"], cwd=repo_path)
            if head.success and head.output.startswith("refs/heads/"):
                return head.output[len("refs/heads/") :].strip()

        for name in COMMON_MAIN_BRANCHES:
            if name in branches:
                return name

        default = self._run_git_command(
            ["config", "--get", "init.defaultBranch"], cwd=repo_path
        )
        if default.success and default.output.strip():
            return default.output.strip()

        return "main"

    def get_current_branch(self, path: str) -> str:
        """
        Get the branch checked out at ``path``.

        Returns:
            str: Branch name, or ``HEAD`` when detached

        Raises:
            GitError: If the branch cannot be determined
        """
        result = self._run_git_command(["rev-parse", "--abbrev-ref", "HEAD"], cwd=path)
        if not result.success:
            raise GitError(
                f"Failed to get current branch: {result.error}", stderr=result.error
            )
        return result.output.strip()

    def get_status_lines(self, worktree_path: str) -> list[str]:
        """
        Get ``git status --porcelain`` entries for a worktree.

        The branch header is requested and dropped so the first entry keeps
        its leading status column.

        Raises:
            GitError: If the status cannot be read
        """
        result = self._run_git_command(
            ["status", "--porcelain", "--branch"], cwd=worktree_path
        )
        if not result.success:
            raise GitError(
                f"Failed to get status of {worktree_path}: {result.error}",
                stderr=result.error,
            )
        return [
            line
            for line in result.output.split("\n")
            if line.strip() and not line.startswith("##")
        ]

    def has_uncommitted_changes(self, worktree_path: str) -> bool:
        """Check for staged, unstaged or untracked changes."""
        return bool(self.get_status_lines(worktree_path))

    def get_ahead_behind(self, worktree_path: str, base_branch: str) -> tuple[int, int]:
        """
        Count commits on HEAD but not ``base_branch`` and the reverse.

        Returns:
            Tuple[int, int]: (ahead, behind); (0, 0) if either ref is missing
        """
        result = self._run_git_command(
            ["rev-list", "--left-right", "--count", f"HEAD...{base_branch}"],
            cwd=worktree_path,
        )
        if not result.success:
            logger.debug(f"Cannot compare {worktree_path} with {base_branch}: {result.error}")
            return 0, 0

        try:
            ahead, behind = (int(n) for n in result.output.split())
        except ValueError:
            return 0, 0
        return ahead, behind

    def get_conflicted_files(self, worktree_path: str) -> list[str]:
        result = self._run_git_command(
            ["diff", "--name-only", "--diff-filter=U"], cwd=worktree_path
        )
        if not result.success:
            return []
        return [name for name in result.output.split("\n") if name.strip()]

    def fetch(self, repo_path: str) -> CommandResult:
        """Fetch from the default remote; failures are returned, not raised."""
        return self._run_git_command(["fetch"], cwd=repo_path, timeout=max(self.timeout, 120))

    def checkout(self, repo_path: str, branch: str) -> CommandResult:
        """
        Check out ``branch`` in the worktree at ``repo_path``.

        Raises:
            GitError: If the checkout fails
        """
        result = self._run_git_command(["checkout", branch], cwd=repo_path)
        if not result.success:
            raise GitError(
                f"Failed to check out {branch}: {result.error}", stderr=result.error
            )
        return result

    def merge_branch(self, repo_path: str, branch: str, message: str) -> CommandResult:
        """
        Merge ``branch`` into the branch checked out at ``repo_path``.

        A conflicted merge is left in place for manual resolution.

        Args:
            repo_path: Worktree receiving the merge
            branch: Branch to merge
            message: Merge commit message

        Returns:
            CommandResult: Result of the merge

        Raises:
            GitError: If the merge conflicts or fails
        """
        result = self._run_git_command(["merge", "-m", message, branch], cwd=repo_path)

        if not result.success:
            conflicted = self.get_conflicted_files(repo_path)
            if conflicted:
                raise GitError(
                    f"Merge conflicts in {len(conflicted)} file(s)",
                    hint="Resolve them manually: " + ", ".join(conflicted),
                    stderr=result.error,
                )
            raise GitError(
                f"Failed to merge {branch}: {result.error or result.output}",
                stderr=result.error,
            )

        logger.debug(f"Merged {branch} in {repo_path}")
        return result
