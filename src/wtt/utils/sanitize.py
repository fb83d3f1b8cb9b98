"""Name sanitizing for tmux sessions, windows, worktrees and projects."""

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class SanitizeRules:
    """Character rules applied by :func:`sanitize`."""

    allow_spaces: bool = False
    allow_uppercase: bool = False
    allow_dots: bool = False
    allow_special_chars: str = ""
    max_length: int | None = None
    remove_leading_numbers: bool = False


TMUX_SESSION = SanitizeRules(allow_special_chars="-_", remove_leading_numbers=True)
TMUX_WINDOW = SanitizeRules(
    allow_spaces=True, allow_uppercase=True, allow_dots=True, allow_special_chars="-_:"
)
WORKTREE_NAME = SanitizeRules(allow_special_chars="-_", max_length=100)
PROJECT_NAME = SanitizeRules(
    allow_uppercase=True, allow_dots=True, allow_special_chars="-_"
)


def sanitize(value: str, rules: SanitizeRules, default: str = "") -> str:
    """
    Reduce a string to the characters allowed by ``rules``.

    Args:
        value: Raw input
        rules: Rules to apply
        default: Returned when nothing survives sanitizing

    Returns:
        str: Sanitized value
    """
    result = value.strip()

    if not rules.allow_uppercase:
        result = result.lower()

    if not rules.allow_spaces:
        result = re.sub(r"\s+", "-", result)

    allowed = "a-zA-Z0-9"
    if rules.allow_dots:
        allowed += "."
    if rules.allow_spaces:
        allowed += " "
    allowed += re.escape(rules.allow_special_chars)
    result = re.sub(f"[^{allowed}]", "", result)

    if rules.remove_leading_numbers:
        result = re.sub(r"^[0-9]+", "", result)

    result = re.sub(r"^[.-]+|[.-]+$", "", result)

    if rules.max_length and len(result) > rules.max_length:
        result = result[: rules.max_length]

    return result or default


def sanitize_session_name(name: str) -> str:
    return sanitize(name, TMUX_SESSION)


def sanitize_window_name(name: str) -> str:
    # Quotes break tmux target parsing
    return sanitize(re.sub(r"['\"]", "", name), TMUX_WINDOW)


def sanitize_worktree_name(name: str) -> str:
    return sanitize(name, WORKTREE_NAME)


def sanitize_project_name(name: str) -> str:
    return sanitize(name, PROJECT_NAME)
