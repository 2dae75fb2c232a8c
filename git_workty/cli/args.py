"""Command-line argument parsing for git-workty."""

import argparse

from git_workty.__version__ import __version__
from git_workty.constants import SUPPORTED_SHELLS

EXAMPLES = """\
EXAMPLES:
  git workty add ../feature-login --branch feature/login
      Create a worktree for a new or existing branch and register it as "feature-login"
  git workty add --name hotfix --branch v1.2.3
      Check out a tag detached in the default worktree root
  git workty list
      Show registered, orphaned and untracked worktrees
  git workty switch feature-login
      Print the worktree path (use `wcd feature-login` after `eval "$(git workty init zsh)"`)
  git workty remove feature-login --force
      Remove a worktree even with uncommitted changes
  git workty clean --dry-run
      Show worktrees whose branch is already merged
"""


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="git-workty",
        description="Manage named Git worktrees and switch between them",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument("--debug", action="store_true", help="Show debug information for troubleshooting")
    parser.add_argument("--version", action="version", version=f"git-workty {__version__}")
    parser.add_argument("--no-color", action="store_true", help="Disable coloured output")
    parser.add_argument(
        "-C",
        dest="repo_dir",
        metavar="PATH",
        help="Run as if started in PATH instead of the current directory",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    add_parser = subparsers.add_parser("add", help="Create or adopt a worktree")
    add_parser.add_argument("path", nargs="?", help="Worktree directory (default: <root>/<name>)")
    add_parser.add_argument("--name", help="Registry name (default: directory name)")
    add_parser.add_argument("--branch", help="Branch or commit to check out (default: name)")
    add_parser.add_argument("--base", help="Start point for a new branch (default: configured base)")
    add_parser.add_argument(
        "--print-path", action="store_true", help="Print only the worktree path on stdout"
    )

    list_parser = subparsers.add_parser("list", aliases=["ls"], help="List worktrees")
    list_parser.add_argument("--json", action="store_true", help="Output JSON")

    switch_parser = subparsers.add_parser("switch", aliases=["go"], help="Emit the path of a worktree")
    switch_parser.add_argument("target", help="Worktree name or path")
    switch_parser.add_argument(
        "--command",
        dest="emit_command",
        action="store_true",
        help="Emit a `cd` command instead of a bare path",
    )

    remove_parser = subparsers.add_parser("remove", aliases=["rm"], help="Remove a worktree")
    remove_parser.add_argument("target", help="Worktree name or path")
    remove_parser.add_argument(
        "--force", action="store_true", help="Remove even with uncommitted changes"
    )

    rename_parser = subparsers.add_parser("rename", help="Rename a registered worktree")
    rename_parser.add_argument("target", help="Worktree name or path")
    rename_parser.add_argument("new_name", help="New name")

    subparsers.add_parser("prune", help="Prune stale git metadata and orphaned records")
    clean_parser = subparsers.add_parser("clean", help="Remove worktrees whose branch is merged into the base branch")
    clean_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be removed without removing anything"
    )
    subparsers.add_parser("doctor", help="Check the environment and registry")

    init_parser = subparsers.add_parser("init", help="Print shell integration functions")
    init_parser.add_argument("shell", choices=SUPPORTED_SHELLS, help="Target shell")

    completions_parser = subparsers.add_parser("completions", help="Print tab completion for a shell")
    completions_parser.add_argument("shell", choices=SUPPORTED_SHELLS, help="Target shell")

    help_parser = subparsers.add_parser("help", help="Show help for a command")
    help_parser.add_argument("topic", nargs="?", help="Command to describe")

    parser.subcommand_parsers = subparsers.choices
    return parser


def parse_args(argv=None):
    """Parse command-line arguments."""
    return create_parser().parse_args(argv)
