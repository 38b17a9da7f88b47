import argparse
import logging
import shutil
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .config import Config
from .constants import APP_NAME, LOG_FILE
from .models import Outcome, OutcomeKind, RunOptions, SyncSummary
from .sync import WorkspaceSync

logger = logging.getLogger(APP_NAME)
console = Console()
err_console = Console(stderr=True)

_OUTCOME_STYLES = {
    OutcomeKind.SUCCEEDED: "[green]succeeded[/green]",
    OutcomeKind.SKIPPED: "[yellow]skipped (local changes)[/yellow]",
    OutcomeKind.FAILED: "[red]failed[/red]",
}


def setup_logging(config: Config) -> None:
    """Configures the logging subsystem.

    Errors are echoed to stderr. Everything from INFO up is written to a rotating
    log file in the state directory.

    Args:
        config (Config): Supplies the log rotation size.
    """
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )
    logger.setLevel(logging.INFO)

    # Drop handlers from a previous invocation in the same process.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(logging.ERROR)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    try:
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=config.limits.max_log_size,
            backupCount=5,
        )
    except OSError as e:
        err_console.print(
            f"[bold yellow]WARNING:[/bold yellow] File logging disabled, "
            f"cannot open {LOG_FILE}: {e}"
        )
        return
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


def check_prerequisites() -> bool:
    """Verifies that the external tools the sync relies on are installed."""
    if shutil.which("git"):
        return True
    err_console.print(
        "[bold red]ERROR:[/bold red] 'git' was not found on your PATH. "
        "Install git and try again."
    )
    return False


def list_repos(config: Config) -> None:
    """Prints the configured repositories."""
    table = Table(title="Configured Repositories", header_style="bold magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Primary URL")
    table.add_column("Fallback URL", style="dim")

    for spec in config.repositories:
        table.add_row(spec.name, spec.primary_url, spec.fallback_url)

    console.print(table)
    console.print(
        f"[dim]Branch candidates: {', '.join(config.core.branch_candidates)} "
        f"(remote: {config.core.remote_name})[/dim]"
    )


def show_status(syncer: WorkspaceSync, config: Config) -> None:
    """Prints the live state of every configured repository without changing it."""
    table = Table(title=f"Workspace: {syncer.root}", header_style="bold magenta")
    table.add_column("Repository", style="cyan")
    table.add_column("Present")
    table.add_column("Current Branch")
    table.add_column("Target Branch")
    table.add_column("Working Tree")

    with console.status("Inspecting repositories...", spinner="dots"):
        for spec in config.repositories:
            state = syncer.inspect(spec)
            if not state.exists:
                table.add_row(spec.name, "[red]no[/red]", "-", "-", "-")
                continue

            current = state.current_branch or "[dim]detached[/dim]"
            if state.resolved_branch is None:
                target = "[red]none found[/red]"
            elif state.on_resolved_branch:
                target = f"[green]{state.resolved_branch}[/green]"
            else:
                target = f"[yellow]{state.resolved_branch}[/yellow]"
            tree = (
                "[yellow]modified[/yellow]"
                if state.has_local_changes
                else "[green]clean[/green]"
            )
            table.add_row(spec.name, "yes", current, target, tree)

    console.print(table)


def report_outcome(outcome: Outcome) -> None:
    """Narrates the result of a single repository as soon as it is known."""
    if outcome.kind is OutcomeKind.SUCCEEDED:
        console.print(f"   [bold green]✔[/bold green] {outcome.reason}")
    elif outcome.kind is OutcomeKind.SKIPPED:
        console.print(f"   [bold yellow]SKIPPED:[/bold yellow] {outcome.reason}")
    else:
        console.print(f"   [bold red]FAILED:[/bold red] {outcome.reason}")


def print_summary(summary: SyncSummary) -> None:
    """Renders the per-repository outcome table and the aggregate counts."""
    table = Table(title="Sync Summary", header_style="bold magenta")
    table.add_column("Repository", style="cyan")
    table.add_column("Outcome")
    table.add_column("Branch")
    table.add_column("Details")

    for outcome in summary.outcomes:
        details = outcome.reason
        if outcome.warnings:
            details += "\n" + "\n".join(
                f"[yellow]! {w}[/yellow]" for w in outcome.warnings
            )
        table.add_row(
            outcome.name,
            _OUTCOME_STYLES[outcome.kind],
            outcome.branch or "-",
            details,
        )

    console.print(table)
    console.print(
        f"[bold]{summary.succeeded}[/bold] succeeded, "
        f"[bold]{summary.skipped}[/bold] skipped, "
        f"[bold]{summary.failed}[/bold] failed "
        f"(of {summary.total})"
    )

    if summary.skipped:
        console.print(
            "[bold yellow]ATTENTION:[/bold yellow] Some repositories have local "
            "changes and were left untouched. Stash or commit them, or rerun with "
            "--force to discard them."
        )
    if summary.failed:
        console.print(
            "[bold red]ERROR:[/bold red] Some repositories could not be synchronized. "
            f"See {LOG_FILE} for details, fix the cause, and rerun."
        )
    if summary.all_succeeded:
        console.print("[bold green]SUCCESS:[/bold green] Workspace is up to date.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description=(
            "Clone the workspace repositories and check them out on their "
            "development branch."
        ),
        add_help=False,  # Re-added below with the extra -Help alias
    )
    parser.add_argument(
        "-h",
        "--help",
        "-Help",
        action="help",
        default=argparse.SUPPRESS,
        help="Show this help message and exit",
    )
    parser.add_argument(
        "-f",
        "--force",
        "-Force",
        action="store_true",
        help="Discard local changes when needed to reach the target branch",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        "-Quiet",
        action="store_true",
        help="Suppress progress output (the summary is still printed)",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        default=None,
        help="Directory holding the repositories (default: current directory)",
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--list",
        action="store_true",
        help="List the configured repositories and exit",
    )
    mode.add_argument(
        "--status",
        action="store_true",
        help="Show the state of each repository without changing anything",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the workspace-sync CLI."""
    args = build_parser().parse_args(argv)

    workspace = (args.workspace or Path.cwd()).resolve()
    config = Config.load(workspace)
    setup_logging(config)

    if args.list:
        list_repos(config)
        return

    if not check_prerequisites():
        sys.exit(1)

    if not workspace.is_dir():
        err_console.print(
            f"[bold red]ERROR:[/bold red] Workspace directory not found: {workspace}"
        )
        sys.exit(1)

    options = RunOptions(force=args.force, quiet=args.quiet)
    syncer = WorkspaceSync(
        workspace,
        options,
        branch_candidates=config.core.branch_candidates,
        remote=config.core.remote_name,
    )

    if args.status:
        show_status(syncer, config)
        return

    logger.info(
        f"Syncing {len(config.repositories)} repositories in {workspace} "
        f"(force={options.force})"
    )
    summary = syncer.run(
        config.repositories,
        on_outcome=None if options.quiet else report_outcome,
    )
    print_summary(summary)

    if not summary.all_succeeded:
        sys.exit(1)


if __name__ == "__main__":
    main()
