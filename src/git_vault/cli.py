import argparse
import logging
import sys
from collections import deque
from dataclasses import replace
from pathlib import Path

from rich.console import Console
from rich.table import Table

from . import runner
from .config import Config
from .constants import APP_NAME, CONFIG_FILE, ERROR_LOG_FILE, LOG_FILE

logger = logging.getLogger(APP_NAME)
console = Console()


def _build_context(args: argparse.Namespace, default_mode: str) -> runner.RunContext:
    """Merges CLI overrides on top of the loaded configuration."""
    conf = Config.load(args.config)

    if args.projects_dir:
        conf.core = replace(conf.core, projects_dir=args.projects_dir.expanduser())

    backup = replace(conf.backup, mode=args.mode or conf.backup.mode or default_mode)
    if getattr(args, "dest", None):
        backup.destination = args.dest.expanduser()
    if getattr(args, "archive_dir", None):
        backup.archive_dir = args.archive_dir.expanduser()
    if getattr(args, "timestamp", False):
        backup.timestamp = True
    conf.backup = backup

    return runner.RunContext(
        config=conf,
        verbose=args.verbose,
        interactive=sys.stdin.isatty(),
        user=getattr(args, "user", None),
    )


def run_command(args: argparse.Namespace) -> int:
    """Executes `backup` or `clone-all` and maps the outcome to an exit code.

    Returns:
        int: 1 on a fatal error, or on any failed repository with --strict.
             0 otherwise.
    """
    default_mode = "archive" if args.command == "clone-all" else "mirror"
    context = _build_context(args, default_mode)
    logger.debug(
        f"{args.command}: projects={context.config.core.projects_dir} "
        f"mode={context.config.backup.mode}"
    )

    result = runner.execute(args.command, context)
    if result is None:
        return 1
    if args.strict and result.summary.failed:
        return 1
    return 0


def show_config(path: Path | None) -> None:
    """Displays the effective configuration and flags inconsistent settings."""
    conf = Config.load(path)

    table = Table(title="Git Vault Configuration", show_lines=True)
    table.add_column("Section", style="cyan", justify="right")
    table.add_column("Key", style="green")
    table.add_column("Value", style="yellow")

    for section in conf.__dataclass_fields__:
        values = getattr(conf, section)
        first = True
        for key in values.__dataclass_fields__:
            value = getattr(values, key)
            if key == "token" and value:
                value = "********"
            if isinstance(value, list):
                value = ", ".join(value) or "[]"
            elif key == "mode" and not value:
                value = "(mirror for backup, archive for clone-all)"
            table.add_row(section if first else "", key, str(value))
            first = False

    console.print(table)
    console.print(f"[dim]Config file: {path or CONFIG_FILE}[/dim]")

    if note := conf.branches.discrepancy():
        console.print(f"[bold yellow]NOTE:[/bold yellow] {note}")
        console.print(
            "[dim]Set [branches] local_fallbacks and clone_fallbacks explicitly "
            "if both workflows should agree.[/dim]"
        )


def show_log(errors: bool, lines: int) -> None:
    """Prints the last `lines` lines of the run log or the error log."""
    log_file = ERROR_LOG_FILE if errors else LOG_FILE
    if not log_file.exists():
        console.print(f"[red]No log file found yet at {log_file}.[/red]")
        return

    with open(log_file, errors="replace") as f:
        tail = deque(f, maxlen=lines)
    console.print(f"[bold cyan]{log_file}[/bold cyan]")
    for line in tail:
        console.print(line.rstrip("\n"), markup=False, highlight=False)


def _add_run_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--projects-dir", type=Path, help="Directory holding the working copies"
    )
    parser.add_argument(
        "--mode", choices=["mirror", "archive"], help="Artifact type to produce"
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit non-zero if any repository failed to sync",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Update local git repositories and back them up.",
    )
    parser.add_argument(
        "--config", type=Path, default=None, help=f"Config file (default: {CONFIG_FILE})"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show debug output"
    )

    subparsers = parser.add_subparsers(dest="command")

    backup_parser = subparsers.add_parser(
        "backup", help="Pull every local repository and copy it to the backup"
    )
    _add_run_options(backup_parser)
    backup_parser.add_argument("--dest", type=Path, help="Mirror destination directory")
    backup_parser.add_argument(
        "--timestamp",
        action="store_true",
        help="Suffix the destination with today's date",
    )

    clone_parser = subparsers.add_parser(
        "clone-all", help="Clone or update all GitHub repositories and archive them"
    )
    _add_run_options(clone_parser)
    clone_parser.add_argument("--user", help="GitHub account to back up")
    clone_parser.add_argument(
        "--archive-dir", type=Path, help="Directory receiving the zip archive"
    )
    clone_parser.add_argument("--dest", type=Path, help="Mirror destination directory")

    subparsers.add_parser("config", help="Show the effective configuration")

    log_parser = subparsers.add_parser("log", help="Show the end of the run log")
    log_parser.add_argument(
        "--errors", action="store_true", help="Show the error log instead"
    )
    log_parser.add_argument(
        "-n", "--lines", type=int, default=50, help="Number of lines (default: 50)"
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the Git Vault CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command in ("backup", "clone-all"):
        sys.exit(run_command(args))
    elif args.command == "config":
        show_config(args.config)
        return
    elif args.command == "log":
        show_log(args.errors, args.lines)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
