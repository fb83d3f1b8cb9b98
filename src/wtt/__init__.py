"""wtt: git worktree tool with tmux-aware command execution."""

__version__ = "0.1.0"
