"""Worktree data model for wtt."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class WorktreeInfo:
    """
    Snapshot of a Git worktree as reported by ``git worktree list``.

    Identity is the path. Instances are re-read on every invocation and
    never cached.

    Attributes:
        path: Filesystem path to the worktree
        branch: Branch checked out in the worktree (empty when detached)
        commit: Current commit hash
        is_main: Whether this is the repository's main worktree
        is_locked: Whether the worktree is locked
    """

    path: str
    branch: str = ""
    commit: str = ""
    is_main: bool = False
    is_locked: bool = False

    @property
    def name(self) -> str:
        """Directory name of the worktree, used as its display name."""
        return Path(self.path).name

    def matches(self, selector: str) -> bool:
        """
        Check whether a user-supplied name selects this worktree.

        Args:
            selector: Directory name or branch name

        Returns:
            bool: True if selector equals the directory name or the branch
        """
        return selector in (self.name, self.branch)

    def get_commit_short_hash(self) -> str:
        """
        Get the short version of the commit hash.

        Returns:
            str: Short commit hash (first 8 characters)
        """
        return self.commit[:8] if self.commit else ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "branch": self.branch,
            "commit": self.commit,
            "is_main": self.is_main,
            "is_locked": self.is_locked,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WorktreeInfo":
        return cls(
            path=data["path"],
            branch=data.get("branch", ""),
            commit=data.get("commit", ""),
            is_main=data.get("is_main", False),
            is_locked=data.get("is_locked", False),
        )

    def __eq__(self, other) -> bool:
        """Check equality based on worktree path."""
        if not isinstance(other, WorktreeInfo):
            return False
        return self.path == other.path

    def __hash__(self) -> int:
        """Hash based on worktree path."""
        return hash(self.path)

    def __str__(self) -> str:
        return f"WorktreeInfo(name='{self.name}', branch='{self.branch}')"


# Porcelain codes for unmerged paths
CONFLICT_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})


@dataclass
class WorktreeStatus:
    """
    Uncommitted changes in a worktree and its divergence from the main branch.

    Attributes:
        name: Worktree display name
        branch: Branch checked out in the worktree
        staged: Paths with changes in the index
        modified: Paths with unstaged changes
        untracked: Untracked paths
        conflicted: Unmerged paths
        ahead: Commits on the branch but not on the main branch
        behind: Commits on the main branch but not on the branch
    """

    name: str
    branch: str = ""
    staged: int = 0
    modified: int = 0
    untracked: int = 0
    conflicted: int = 0
    ahead: int = 0
    behind: int = 0

    @classmethod
    def from_porcelain(
        cls, worktree: WorktreeInfo, lines: list[str], ahead: int = 0, behind: int = 0
    ) -> "WorktreeStatus":
        """Count ``git status --porcelain`` entries for a worktree."""
        status = cls(name=worktree.name, branch=worktree.branch, ahead=ahead, behind=behind)
        for line in lines:
            code = line[:2]
            if code == "??":
                status.untracked += 1
            elif code in CONFLICT_CODES:
                status.conflicted += 1
            else:
                if code[0] != " ":
                    status.staged += 1
                if code[1] != " ":
                    status.modified += 1
        return status

    @property
    def is_clean(self) -> bool:
        return not (self.staged or self.modified or self.untracked or self.conflicted)

    def summary(self) -> str:
        if self.is_clean:
            return "clean"
        counts = [
            (self.conflicted, "conflicted"),
            (self.staged, "staged"),
            (self.modified, "modified"),
            (self.untracked, "untracked"),
        ]
        return ", ".join(f"{count} {label}" for count, label in counts if count)
