"""Environment variable names and non-interactive environment detection."""

import os
from collections.abc import Mapping

WORKTREE_NAME = "WTT_WORKTREE_NAME"
WORKTREE_PATH = "WTT_WORKTREE_PATH"
IS_MAIN = "WTT_IS_MAIN"
DISABLE_TMUX = "WTT_DISABLE_TMUX"
NO_CONFIRM = "WTT_NO_CONFIRM"
PORT_PREFIX = "WTT_PORT"

CI_VARIABLES = (
    "CI",
    "CONTINUOUS_INTEGRATION",
    "GITHUB_ACTIONS",
    "GITLAB_CI",
    "CIRCLECI",
    "TRAVIS",
    "JENKINS_URL",
    "TEAMCITY_VERSION",
)


def is_ci(environ: Mapping[str, str] | None = None) -> bool:
    """
    Check whether we are running inside a continuous-integration environment.

    Args:
        environ: Environment to inspect (defaults to os.environ)

    Returns:
        bool: True if any known CI variable is set
    """
    env = os.environ if environ is None else environ
    return any(env.get(name) for name in CI_VARIABLES)


def is_tmux_disabled(environ: Mapping[str, str] | None = None) -> bool:
    """Check the WTT_DISABLE_TMUX override."""
    env = os.environ if environ is None else environ
    return env.get(DISABLE_TMUX) == "true"


def is_confirmation_disabled(environ: Mapping[str, str] | None = None) -> bool:
    """Check the WTT_NO_CONFIRM override for interactive prompts."""
    env = os.environ if environ is None else environ
    return env.get(NO_CONFIRM) == "true"


def is_inside_tmux(environ: Mapping[str, str] | None = None) -> bool:
    """Check whether the current process runs inside a tmux client."""
    env = os.environ if environ is None else environ
    return "TMUX" in env


def port_variable(position: int) -> str:
    """Name of the variable carrying the port at 1-based ``position``."""
    return f"{PORT_PREFIX}{position}"


def port_environment(ports: list[int]) -> dict[str, str]:
    """
    Build the port variables for a list of allocated ports.

    Args:
        ports: Allocated ports, in allocation order

    Returns:
        Dict mapping WTT_PORT1..WTT_PORTn to the port numbers
    """
    return {port_variable(i + 1): str(port) for i, port in enumerate(ports)}
