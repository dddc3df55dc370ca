import logging
import sys
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.table import Table

from . import discovery, system
from .branches import BranchResolver
from .config import Config
from .constants import APP_NAME, ERROR_LOG_FILE, LOG_FILE
from .errors import VaultError
from .github import GitHubClient, resolve_username
from .models import BackupArtifact, RunSummary, SyncStatus
from .publish import BackupPublisher
from .sync import SyncEngine

logger = logging.getLogger(APP_NAME)

console = Console()
err_console = Console(stderr=True)


@dataclass
class RunContext:
    """Everything a single run needs, passed explicitly instead of held globally.

    Attributes:
        config (Config): Effective configuration (file plus CLI overrides).
        log_file (Path): Run log destination.
        error_log_file (Path): Error-only log destination.
        verbose (bool): Log DEBUG messages to the console.
        interactive (bool): Whether prompts may be shown.
        user (str | None): Provider account for clone-all runs.
    """

    config: Config = field(default_factory=Config)
    log_file: Path = LOG_FILE
    error_log_file: Path = ERROR_LOG_FILE
    verbose: bool = False
    interactive: bool = True
    user: str | None = None


@dataclass
class RunResult:
    """What a completed run produced.

    Attributes:
        summary (RunSummary): Per-repository outcomes.
        artifact (BackupArtifact): The published backup.
    """

    summary: RunSummary
    artifact: BackupArtifact


def setup_logging(context: RunContext) -> None:
    """Configures the logging subsystem for a run.

    Attaches a console handler plus two rotating file handlers: the run log
    receives every record, the error log only ERROR and above. Previously
    attached handlers are removed so repeated runs do not duplicate lines.

    Args:
        context (RunContext): Supplies log paths, size limit and verbosity.
    """
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(logging.DEBUG if context.verbose else logging.INFO)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    max_bytes = context.config.limits.max_log_size
    for path, level in (
        (context.log_file, logging.DEBUG),
        (context.error_log_file, logging.ERROR),
    ):
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=5)
        except OSError as e:
            logger.warning(f"Could not open log file {path}: {e}")
            continue
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


def run_backup(context: RunContext) -> RunResult:
    """Local mode: update every working copy in the projects directory, then publish.

    Raises:
        VaultError: On any fatal condition.
    """
    conf = context.config
    system.require_tools()

    projects_dir = conf.core.projects_dir
    logger.info(f"Source: {projects_dir}")
    sources = discovery.discover_local(projects_dir)

    resolver = BranchResolver(
        conf.branches.local_fallbacks, remote=conf.core.remote_name
    )
    engine = SyncEngine(resolver, projects_dir, remote=conf.core.remote_name)
    summary = engine.run(sources)

    return RunResult(summary, _publish(summary, context))


def run_clone_all(context: RunContext) -> RunResult:
    """Remote mode: clone or update every repository the provider lists, then publish.

    Raises:
        VaultError: On any fatal condition, including an API error during discovery.
    """
    conf = context.config
    system.require_tools()

    client = GitHubClient(
        api_url=conf.github.api_url,
        token=conf.github.resolved_token(),
        page_size=conf.github.page_size,
        timeout=conf.github.timeout,
    )
    user = resolve_username(
        client,
        context.user or conf.github.user,
        interactive=context.interactive,
    )
    sources = discovery.discover_remote(client, user, protocol=conf.github.protocol)

    projects_dir = conf.core.projects_dir
    resolver = BranchResolver(
        conf.branches.clone_fallbacks,
        remote=conf.core.remote_name,
        use_remote_tracking=True,
    )
    engine = SyncEngine(resolver, projects_dir, remote=conf.core.remote_name)
    summary = engine.run(sources)

    return RunResult(summary, _publish(summary, context))


def _publish(summary: RunSummary, context: RunContext) -> BackupArtifact:
    conf = context.config
    publisher = BackupPublisher(conf.backup.exclude)
    artifact = publisher.publish(summary, conf.backup, conf.core.projects_dir)
    logger.info(
        f"Backup complete: {artifact.path} ({len(artifact.repositories)} repositories)"
    )
    return artifact


def print_summary(result: RunResult) -> None:
    """Renders the per-repository table and the run counts."""
    summary = result.summary

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Repository", style="cyan")
    table.add_column("Branch", style="dim")
    table.add_column("Status")
    table.add_column("Detail", style="dim")

    styles = {
        SyncStatus.SYNCED: "green",
        SyncStatus.CLONED: "green",
        SyncStatus.SKIPPED_NO_BRANCH: "yellow",
        SyncStatus.FAILED: "bold red",
    }
    for outcome in summary.outcomes:
        style = styles[outcome.status]
        table.add_row(
            outcome.name,
            outcome.branch or "-",
            f"[{style}]{outcome.status.value}[/{style}]",
            outcome.reason or "",
        )

    if summary.total:
        console.print(table)
    console.print(
        f"Total: {summary.total}  "
        f"[green]Succeeded: {summary.succeeded}[/green]  "
        f"[red]Failed: {summary.failed}[/red]  "
        f"[yellow]Skipped: {summary.skipped}[/yellow]"
    )
    console.print(f"[bold green]✔ Backup written to {result.artifact.path}[/bold green]")


def execute(mode: str, context: RunContext) -> RunResult | None:
    """Runs `mode` (``backup`` or ``clone-all``) with fatal-error handling.

    Returns:
        RunResult | None: The result, or None if the run terminated on a fatal error.
    """
    setup_logging(context)
    runner = run_clone_all if mode == "clone-all" else run_backup

    try:
        result = runner(context)
    except VaultError as e:
        logger.critical(f"FATAL: {e}")
        err_console.print(f"[bold red]FATAL:[/bold red] {e}")
        return None

    summary = result.summary
    logger.info(
        f"Run finished: total={summary.total} succeeded={summary.succeeded} "
        f"failed={summary.failed} skipped={summary.skipped}"
    )
    if summary.failed:
        logger.warning(f"{summary.failed} repositories failed to sync.")
    print_summary(result)
    return result
