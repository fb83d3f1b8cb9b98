"""Data models for wtt."""

from .config import CommandConfig, WorktreeConfig
from .execution import (
    CommandType,
    CompletionResult,
    ExecutionContext,
    ExecutionModeKind,
    LaunchResult,
    ParsedCommand,
)
from .worktree import WorktreeInfo, WorktreeStatus

__all__ = [
    "CommandConfig",
    "CommandType",
    "CompletionResult",
    "ExecutionContext",
    "ExecutionModeKind",
    "LaunchResult",
    "ParsedCommand",
    "WorktreeConfig",
    "WorktreeInfo",
    "WorktreeStatus",
]
