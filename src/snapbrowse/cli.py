from pathlib import Path
import logging
import os
import sys
import argparse
from typing import Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .config import DEFAULT_CONFIG
from .helpers import bytes_size_to_string, format_time
from .ls import ls
from .progress import RichProgressBars
from .repository import LocalRepository, RepositoryError

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
REPO_ENV = "SNAPBROWSE_REPOSITORY"


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all CLI options"""
    parser = argparse.ArgumentParser(
        prog="snapbrowse",
        description="snapbrowse - browse and restore backup snapshots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  snapbrowse --repo /backups/repo init
  snapbrowse backup ~/documents
  snapbrowse snapshots
  snapbrowse ls latest -l -s
  snapbrowse restore 3f2a9c1e:home/user/notes.txt /tmp/notes.txt
  snapbrowse tui latest
        """
    )

    parser.add_argument(
        "--repo",
        help=f"Repository directory (default: ${REPO_ENV} or the saved repository)"
    )

    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level (default: saved value or WARNING)"
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        help="Write log records to this file (default for the TUI: snapbrowse.log in the config dir)"
    )

    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Show saved configuration and exit",
    )

    parser.add_argument(
        "--clear-config",
        action="store_true",
        help="Clear saved repository path and exit",
    )

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p_init = sub.add_parser("init", help="Create a new repository")
    p_init.add_argument("--cold", action="store_true", help="Mark the repository as cold storage (no file viewing)")

    p_backup = sub.add_parser("backup", help="Store files and directories as a new snapshot")
    p_backup.add_argument("paths", nargs="+", help="Files or directories to back up")
    p_backup.add_argument("--host", help="Hostname recorded in the snapshot")

    sub.add_parser("snapshots", help="List snapshots")

    p_ls = sub.add_parser("ls", help="List the contents of a snapshot")
    p_ls.add_argument("snapshot", help="Snapshot id, unique id prefix or 'latest'")
    p_ls.add_argument("-l", "--long", action="store_true", help="Show mode, owner, size and time")
    p_ls.add_argument("-s", "--summary", action="store_true", help="Print a summary at the end")
    p_ls.add_argument("--numeric-id", action="store_true", help="Show numeric user and group ids")

    p_restore = sub.add_parser("restore", help="Restore a snapshot or a path inside it")
    p_restore.add_argument("source", help="SNAPSHOT[:PATH]")
    p_restore.add_argument("target", nargs="?", help="Target path (prompted for when omitted)")
    p_restore.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    p_tui = sub.add_parser("tui", help="Browse snapshots interactively (default)")
    p_tui.add_argument("snapshot", nargs="?", help="Open this snapshot directly")
    p_tui.add_argument("--numeric-id", action="store_true", help="Start with numeric user and group ids")
    p_tui.add_argument("--max-view-bytes", type=int, help=f"Largest file prefix shown by the viewer (default: {DEFAULT_CONFIG.max_view_bytes})")
    p_tui.add_argument("--max-view-lines", type=int, help=f"Maximum height of the file viewer in rows (default: {DEFAULT_CONFIG.max_view_lines})")

    return parser


def _setup_logging(level: str, log_file: Optional[Path]) -> None:
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    else:
        handler = RichHandler(console=err_console, show_path=False)
    logging.basicConfig(level=level, handlers=[handler], force=True)


def _repo_location(args) -> Optional[str]:
    if args.repo:
        return args.repo
    if os.environ.get(REPO_ENV):
        return os.environ[REPO_ENV]
    from .config_persist import get_repository_path
    return get_repository_path()


def _open_repo(args, progress: bool = True) -> LocalRepository:
    location = _repo_location(args)
    if not location:
        raise RepositoryError(f"no repository given; use --repo or set {REPO_ENV}")
    repo = LocalRepository(location, RichProgressBars(err_console) if progress else None)
    if args.repo:
        from .config_persist import save_repository_path
        save_repository_path(args.repo)
    return repo


def cmd_init(args) -> int:
    location = args.repo or os.environ.get(REPO_ENV)
    if not location:
        raise RepositoryError(f"no repository given; use --repo or set {REPO_ENV}")
    repo = LocalRepository.init(location, cold=args.cold)
    console.print(f"[green]Created repository[/green] [cyan]{repo.path}[/cyan]{' (cold)' if repo.is_cold else ''}")
    from .config_persist import save_repository_path
    save_repository_path(location)
    return 0


def cmd_backup(args) -> int:
    repo = _open_repo(args)
    snapshot = repo.backup(args.paths, hostname=args.host)
    console.print(f"[green]snapshot[/green] [bold]{snapshot.short_id}[/bold] saved")
    return 0


def cmd_snapshots(args) -> int:
    repo = _open_repo(args)
    snapshots = repo.snapshots()
    table = Table(box=box.SIMPLE, header_style="bold bright_blue")
    table.add_column("ID", style="cyan")
    table.add_column("Time", style="green")
    table.add_column("Host")
    table.add_column("Paths")
    for s in snapshots:
        table.add_row(s.short_id, format_time(s.time), s.hostname, "\n".join(s.paths))
    console.print(table)
    console.print(f"{len(snapshots)} snapshot(s)")
    return 0


def cmd_ls(args) -> int:
    repo = _open_repo(args)
    snapshot = repo.find_snapshot(args.snapshot)
    summary = None
    for line, summary in ls(repo, snapshot.tree, long=args.long, numeric=args.numeric_id):
        console.print(line, markup=False, highlight=False, soft_wrap=True)
    if args.summary and summary is not None:
        console.print(
            f"total: {summary.dirs} dirs, {summary.files} files, {bytes_size_to_string(summary.size)}",
            highlight=False,
        )
    return 0


def _ask_target(default: str) -> str:
    from prompt_toolkit import prompt
    from prompt_toolkit.completion import PathCompleter
    return prompt("restore to: ", default=default, completer=PathCompleter(expanduser=True)).strip()


def _confirm(message: str) -> bool:
    from prompt_toolkit.shortcuts import confirm
    return confirm(message)


def cmd_restore(args) -> int:
    repo = _open_repo(args)
    snapshot_id, _, path = args.source.partition(":")
    snapshot = repo.find_snapshot(snapshot_id)
    node = repo.node_from_path(snapshot, path)
    path = path.strip("/")

    target = args.target
    if not target:
        if any(os.path.isabs(p) for p in snapshot.paths) and path:
            default = f"/{path}"
        else:
            default = path or "."
        target = _ask_target(default)
        if not target:
            console.print("[yellow]No target given, nothing restored[/yellow]")
            return 1
    if not args.yes and not _confirm(f"restore {snapshot.short_id}:/{path} to {target}?"):
        console.print("[yellow]Restore cancelled[/yellow]")
        return 1

    with repo.progress_bars().progress_counter("restoring") as progress:
        summary = repo.restore(node, Path(target), progress)
    console.print(
        f"[green]restored[/green] {summary.files} files, {summary.dirs} dirs, "
        f"{bytes_size_to_string(summary.size)} to [cyan]{target}[/cyan]"
    )
    return 0


def cmd_tui(args) -> int:
    from .tui.app import run_tui, setup_logging
    from .tui.options import TUIOptions

    options = TUIOptions(
        numeric_ids=True if getattr(args, "numeric_id", False) else None,
        log_level=args.log_level,
        log_file=args.log_file,
    )
    options.config = options.config.update_from_args(args)
    setup_logging(options)

    repo = _open_repo(args, progress=False)
    snapshot = None
    snapshot_id = getattr(args, "snapshot", None)
    if snapshot_id:
        snapshot = repo.find_snapshot(snapshot_id)
    return run_tui(repo, repo.snapshots(), options, snapshot)


COMMANDS = {
    "init": cmd_init,
    "backup": cmd_backup,
    "snapshots": cmd_snapshots,
    "ls": cmd_ls,
    "restore": cmd_restore,
    "tui": cmd_tui,
}


def main(argv: Optional[list] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    # Handle config management commands first
    if args.show_config:
        from .config_persist import get_config_summary
        summary = get_config_summary()
        console.print("[bold blue]snapbrowse configuration:[/bold blue]")
        console.print(f"Config file: [cyan]{summary['config_file']}[/cyan]")
        console.print(f"Config exists: [{'green' if summary['config_exists'] else 'yellow'}]{summary['config_exists']}[/{'green' if summary['config_exists'] else 'yellow'}]")
        console.print(f"Has repository: [{'green' if summary['has_repository'] else 'yellow'}]{summary['has_repository']}[/{'green' if summary['has_repository'] else 'yellow'}]")
        if summary['repository']:
            console.print(f"Repository: [cyan]{summary['repository']}[/cyan]")
        console.print(f"Numeric ids: [cyan]{summary['numeric_ids']}[/cyan]")
        console.print(f"Log level: [cyan]{summary['log_level']}[/cyan]")
        return 0

    if args.clear_config:
        from .config_persist import clear_repository_path, get_config_file
        clear_repository_path()
        console.print("[green]Cleared saved configuration[/green]")
        console.print(f"Config file: [dim]{get_config_file()}[/dim]")
        return 0

    command = args.command or "tui"
    if args.log_level is None:
        from .config_persist import get_log_level
        args.log_level = get_log_level()
    if command != "tui":
        # the TUI sets up its own file logging from TUIOptions
        _setup_logging(args.log_level, args.log_file)

    try:
        return COMMANDS[command](args)
    except RepositoryError as exc:
        logger.debug("command %s failed", command, exc_info=True)
        err_console.print(f"[red]Error: {escape(str(exc))}[/red]", soft_wrap=True)
        return 1
    except KeyboardInterrupt:
        return 130


# Top-level guard for proper exit code and output handling
if __name__ == "__main__":
    sys.exit(main())
