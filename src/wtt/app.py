"""Command-line entry point for wtt."""

import argparse
import asyncio
import logging
import sys

from . import __version__
from .controllers.application_controller import ApplicationController
from .models.config import DEFAULT_BASE_DIR
from .models.execution import ExecutionModeKind
from .utils.error_handler import ErrorHandler
from .utils.logging_config import level_from_flags, setup_logging

SEPARATOR = "--"


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all subcommands."""
    parser = argparse.ArgumentParser(
        prog="wtt",
        description="Manage git worktrees and run commands across them",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show debug output"
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Only show warnings and errors"
    )

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    subparsers.required = True

    init_parser = subparsers.add_parser(
        "init", help="Initialize wtt for the current repository"
    )
    init_parser.add_argument("--project-name", help="Project name (tmux session name)")
    init_parser.add_argument(
        "--base-dir",
        default=DEFAULT_BASE_DIR,
        help=f"Directory for worktrees (default: {DEFAULT_BASE_DIR})",
    )
    init_parser.add_argument("--main-branch", help="Main branch name (detected if omitted)")
    tmux_group = init_parser.add_mutually_exclusive_group()
    tmux_group.add_argument(
        "--enable-tmux", dest="tmux", action="store_const", const=True
    )
    tmux_group.add_argument(
        "--disable-tmux", dest="tmux", action="store_const", const=False
    )

    create_parser = subparsers.add_parser(
        "create", help="Create a worktree and start its autoRun commands"
    )
    create_parser.add_argument("name", help="Worktree and branch name")

    remove_parser = subparsers.add_parser("remove", help="Remove a worktree")
    remove_parser.add_argument("name", help="Worktree directory or branch name")
    remove_parser.add_argument(
        "-f", "--force", action="store_true", help="Remove even with local changes"
    )

    subparsers.add_parser("list", help="List worktrees")

    merge_parser = subparsers.add_parser(
        "merge", help="Merge a worktree into the main branch"
    )
    merge_parser.add_argument(
        "worktree", nargs="?", help="Worktree to merge (default: current worktree)"
    )
    merge_parser.add_argument(
        "-u",
        "--update",
        action="store_true",
        help="Merge the main branch into the worktree instead",
    )
    merge_parser.add_argument(
        "--no-fetch", dest="fetch", action="store_false", help="Skip git fetch"
    )
    merge_parser.add_argument(
        "-f", "--force", action="store_true", help="Merge even with uncommitted changes"
    )

    status_parser = subparsers.add_parser(
        "status", help="Show changes and divergence from the main branch"
    )
    status_parser.add_argument(
        "-w",
        "--worktrees",
        help="Comma-separated worktree names to show",
    )

    exec_parser = subparsers.add_parser(
        "exec",
        help="Run a command in worktrees",
        description=(
            "Run a configured command by name, or an inline command after --, "
            "in every worktree except the main one"
        ),
    )
    exec_parser.add_argument(
        "--mode",
        choices=[kind.value for kind in ExecutionModeKind],
        help="Execution mode (overrides the command's configured mode)",
    )
    exec_parser.add_argument(
        "-w",
        "--worktrees",
        help="Comma-separated worktree names to run in",
    )
    exec_parser.add_argument("args", nargs=argparse.REMAINDER, help="Command and arguments")

    subparsers.add_parser("refresh", help="Restart missing autoRun commands")

    ports_parser = subparsers.add_parser(
        "ports", help="Print available ports from the configured range"
    )
    ports_parser.add_argument("count", type=int, help="Number of ports")

    return parser


def parse_args(argv: list[str]) -> argparse.Namespace:
    """
    Parse arguments, keeping everything after ``--`` for ``exec``.

    argparse would swallow the separator, so it is split off first and
    handed back to ``exec`` with the separator intact.
    """
    parser = build_parser()

    if SEPARATOR not in argv:
        return parser.parse_args(argv)

    index = argv.index(SEPARATOR)
    head, tail = argv[:index], argv[index:]
    args = parser.parse_args(head)
    if args.command != "exec":
        parser.error(f"unexpected arguments: {' '.join(tail)}")
    args.args = list(args.args) + tail
    return args


def split_names(value: str | None) -> list[str] | None:
    """Split a comma-separated worktree list, ignoring blanks."""
    if not value:
        return None
    return [name.strip() for name in value.split(",") if name.strip()]


def run_command(controller: ApplicationController, args: argparse.Namespace) -> int:
    """Dispatch parsed arguments to the controller."""
    if args.command == "init":
        return asyncio.run(
            controller.init(
                project_name=args.project_name,
                base_dir=args.base_dir,
                main_branch=args.main_branch,
                tmux=args.tmux,
            )
        )
    if args.command == "create":
        return asyncio.run(controller.create(args.name))
    if args.command == "remove":
        return asyncio.run(controller.remove(args.name, force=args.force))
    if args.command == "list":
        return controller.list_worktrees()
    if args.command == "merge":
        return asyncio.run(
            controller.merge(
                args.worktree, update=args.update, fetch=args.fetch, force=args.force
            )
        )
    if args.command == "status":
        return controller.status(split_names(args.worktrees))
    if args.command == "exec":
        return asyncio.run(
            controller.exec(args.args, mode=args.mode, worktrees=split_names(args.worktrees))
        )
    if args.command == "refresh":
        return asyncio.run(controller.refresh())
    if args.command == "ports":
        return controller.ports(args.count)

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the application."""
    args = parse_args(sys.argv[1:] if argv is None else argv)

    setup_logging(level_from_flags(args.verbose, args.quiet))
    logger = logging.getLogger(__name__)
    logger.debug(f"wtt {__version__}: {args.command}")

    error_handler = ErrorHandler()
    try:
        return run_command(ApplicationController(), args)
    except KeyboardInterrupt:
        return error_handler.handle_interrupt()
    except Exception as e:
        return error_handler.handle_error(e)


if __name__ == "__main__":
    sys.exit(main())
