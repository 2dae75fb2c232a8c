"""Command-line interface for git-workty"""

import os
import sys
import warnings

from rich.console import Console
from rich.markup import escape

from git_workty.config import Config
from git_workty.core import WorktreeManager
from git_workty.exceptions import PersistenceWarning, WorktyError
from git_workty.logging_config import get_logger, setup_logging
from git_workty.services.display_service import DisplayService
from git_workty.services.git.repository import GitRepo
from git_workty.services.switch_service import SwitchEmitter
from git_workty.shell import completion_script, init_script

from .args import create_parser

logger = get_logger(__name__)

# Data (tables, JSON, paths, scripts) goes to stdout, everything else to stderr
console = Console()
err_console = Console(stderr=True)


def _report_warnings(caught) -> None:
    """Show persistence warnings to the user, re-issue anything else."""
    for warning in caught:
        if issubclass(warning.category, PersistenceWarning):
            err_console.print(f"[yellow]Warning: {escape(str(warning.message))}[/yellow]")
        else:
            warnings.warn_explicit(warning.message, warning.category, warning.filename, warning.lineno)


def _build_manager(args, emitter=None) -> WorktreeManager:
    repo = GitRepo.discover(args.repo_dir)
    config = Config.load(repo)
    if args.debug:
        for key, value in config.to_dict().items():
            logger.debug(f"config {key}: {value}")
    if emitter is None:
        emitter = SwitchEmitter.from_environment(mode=config.emit_mode)
    return WorktreeManager(repo, config, emitter=emitter)


def _cmd_add(args) -> int:
    path = args.path
    if path and args.repo_dir:
        # Relative paths are taken from the -C directory, as git does
        path = os.path.join(args.repo_dir, path)
    manager = _build_manager(args)
    record = manager.add(name=args.name, path=path, branch_spec=args.branch, base=args.base)
    if args.print_path:
        sys.stdout.write(record.path + "\n")
        sys.stdout.flush()
    err_console.print(
        f"[green]Created worktree '{escape(record.name)}'[/green] at {escape(record.path)}"
        f" ({escape(record.branch or 'detached')})"
    )
    return 0


def _cmd_list(args) -> int:
    manager = _build_manager(args)
    records = manager.list()
    if args.json:
        sys.stdout.write(DisplayService.to_json(records, str(manager.repo.root)) + "\n")
        return 0
    DisplayService(console, color=not args.no_color).display_worktree_table(records)
    return 0


def _cmd_switch(args) -> int:
    emitter = SwitchEmitter.from_environment(mode="command") if args.emit_command else None
    manager = _build_manager(args, emitter=emitter)
    record = manager.switch_to(args.target)
    if manager.emitter.cd_file is None and sys.stdout.isatty():
        err_console.print(
            "[dim]Tip: run `eval \"$(git-workty init bash)\"` and use `wcd "
            f"{escape(record.name)}` to change directory automatically[/dim]"
        )
    return 0


def _cmd_remove(args) -> int:
    manager = _build_manager(args)
    record = manager.remove(args.target, force=args.force)
    err_console.print(f"[green]Removed worktree '{escape(record.name)}'[/green] ({escape(record.path)})")
    return 0


def _cmd_rename(args) -> int:
    manager = _build_manager(args)
    record = manager.rename(args.target, args.new_name)
    err_console.print(f"[green]Renamed worktree to '{escape(record.name)}'[/green]")
    return 0


def _cmd_prune(args) -> int:
    manager = _build_manager(args)
    removed = manager.prune()
    if not removed:
        err_console.print("No orphaned worktrees to prune")
        return 0
    for record in removed:
        err_console.print(f"[yellow]Pruned[/yellow] {escape(record.name)} ({escape(record.path)})")
    return 0


def _cmd_clean(args) -> int:
    manager = _build_manager(args)
    removed, skipped = manager.clean(dry_run=args.dry_run)
    for record in skipped:
        err_console.print(f"[yellow]Skipped[/yellow] {escape(record.name)} (uncommitted changes)")
    if not removed:
        err_console.print(f"No worktrees merged into {escape(manager.config.base)} to clean")
        return 0
    verb = "Dry run: would remove" if args.dry_run else "[green]Removed[/green]"
    for record in removed:
        err_console.print(f"{verb} {escape(record.name)} ({escape(record.branch)}, {escape(record.path)})")
    return 0


def _cmd_doctor(args) -> int:
    manager = _build_manager(args)
    checks = manager.doctor()
    DisplayService(err_console, color=not args.no_color).display_doctor(checks)
    return 0 if all(check.ok for check in checks) else 1


COMMANDS = {
    "add": _cmd_add,
    "list": _cmd_list,
    "ls": _cmd_list,
    "switch": _cmd_switch,
    "go": _cmd_switch,
    "remove": _cmd_remove,
    "rm": _cmd_remove,
    "rename": _cmd_rename,
    "prune": _cmd_prune,
    "clean": _cmd_clean,
    "doctor": _cmd_doctor,
}


def main(argv=None):
    """Main entry point for the application."""
    parser = create_parser()
    try:
        parsed_args = parser.parse_args(argv)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 2

    setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

    if parsed_args.command is None:
        parser.print_help(sys.stderr)
        return 2

    if parsed_args.command == "help":
        topic = parsed_args.topic
        if topic is None:
            parser.print_help()
            return 0
        subparser = parser.subcommand_parsers.get(topic)
        if subparser is None:
            err_console.print(f"[red]Error: unknown command '{escape(topic)}'[/red]")
            return 2
        subparser.print_help()
        return 0

    if parsed_args.command == "init":
        sys.stdout.write(init_script(parsed_args.shell))
        return 0

    if parsed_args.command == "completions":
        sys.stdout.write(completion_script(parsed_args.shell))
        return 0

    caught = []
    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            return COMMANDS[parsed_args.command](parsed_args)
    except WorktyError as e:
        logger.debug(f"{type(e).__name__}: {e}")
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        return e.exit_code
    except ValueError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 2
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 130
    except Exception as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        if parsed_args.debug:
            err_console.print_exception()
        return 1
    finally:
        _report_warnings(caught)


if __name__ == "__main__":
    sys.exit(main())
