"""
twinsync CLI - Sync, status and manifest commands.

Provides the CLI interface to SyncService for reconciling a working copy
with its GitHub and Hugging Face remotes.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from twinsync.cli.errors import ExitCode, print_not_git_repo_error, report_error
from twinsync.cli.prompts import CliPrompter
from twinsync.core.config import load_sync_config
from twinsync.core.exceptions import TwinsyncError
from twinsync.core.git import GitRepo
from twinsync.core.manifest import MANIFEST_FILE, write_manifest
from twinsync.core.sync import SyncResult, SyncService, SyncStatus

console = Console()


def _resolve(path: Path | None) -> Path:
    return (path or Path.cwd()).resolve()


def print_sync_result(result: SyncResult) -> None:
    """Render a sync result, one line per notable event."""
    for name in result.unreachable:
        console.print(f"[yellow]⚠[/yellow]  {name}: unreachable or empty, nothing merged")
    for name in result.merged:
        console.print(f"[green]✓[/green] Merged changes from {name}")
    for name in result.discarded:
        console.print(
            f"[yellow]⚠[/yellow]  Merge with {name} conflicted; changes from {name} "
            "were discarded (local wins)"
        )
    for path in result.skipped_files:
        console.print(f"[dim]Skipped large file {escape(path)}[/dim]")

    if result.commit_sha:
        console.print(f"[green]✓[/green] Committed: {result.commit_sha[:8]}")

    for name in result.pushed:
        suffix = " (forced)" if name in result.force_pushed else ""
        console.print(f"[green]✓[/green] Pushed to {name}{suffix}")
    for name, error in result.push_failures.items():
        console.print(f"[red]✗[/red] Push to {name} failed: {escape(error)}")

    if result.status in (SyncStatus.UP_TO_DATE, SyncStatus.PULLED):
        console.print(f"[blue]{escape(result.message)}[/blue]")
    elif result.status is SyncStatus.LOCAL_ONLY:
        console.print(f"[yellow]⚠[/yellow]  {escape(result.message)}")


def sync(
    message: str = typer.Argument(
        "",
        help="Commit message (empty = 'Update <timestamp>')",
    ),
    pull_only: bool = typer.Option(
        False,
        "--pull-only",
        help="Merge remote changes but do not commit or push",
    ),
    path: Path | None = typer.Option(
        None,
        "--path",
        "-C",
        help="Working copy to sync (default: current directory)",
    ),
) -> None:
    """
    Sync the working copy with GitHub and the Space.

    Rebuilds manifest.json, stages everything (asking about large files),
    merges the remotes newest first, commits and pushes to every remote.
    When a merge conflicts, the local version wins and the remote's changes
    are left out of this sync.

    Examples:
        twinsync sync                       # Auto message
        twinsync sync "Add chapter 3"       # Custom message
        twinsync sync --pull-only           # Merge only
    """
    project_dir = _resolve(path)
    service = SyncService(project_dir=project_dir, ask_large_file=CliPrompter().ask_large_file)

    if not service.repo.is_repo():
        print_not_git_repo_error(str(project_dir))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    try:
        console.print("[blue]Syncing...[/blue]")
        result = service.sync(message=message or None, pull_only=pull_only)
    except TwinsyncError as e:
        report_error(e)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    print_sync_result(result)
    if not result.success:
        raise typer.Exit(ExitCode.GENERAL_ERROR)


def status(
    path: Path | None = typer.Option(
        None,
        "--path",
        "-C",
        help="Working copy to inspect (default: current directory)",
    ),
) -> None:
    """
    Show remotes, heads and sync settings without contacting any remote.

    Heads are the last fetched values; run 'twinsync sync --pull-only' to
    refresh them.
    """
    project_dir = _resolve(path)
    repo = GitRepo(project_dir)
    if not repo.is_repo():
        print_not_git_repo_error(str(project_dir))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    head = repo.head()
    config = load_sync_config(project_dir)

    table = Table(title="Remotes")
    table.add_column("Remote", style="cyan")
    table.add_column("URL")
    table.add_column("Head")
    table.add_column("State")

    service = SyncService(project_dir=project_dir, config=config)
    for remote in service.remotes():
        remote_head = repo.remote_head(remote.name, remote.branch)
        if remote_head is None:
            state = "[dim]never fetched[/dim]"
        elif remote_head == head:
            state = "[green]in sync[/green]"
        else:
            state = "[yellow]differs[/yellow]"
        table.add_row(
            remote.name,
            escape(remote.display_url),
            remote_head[:8] if remote_head else "-",
            state,
        )

    console.print(f"Local head: {head[:8] if head else '[dim]no commits[/dim]'}")
    console.print(table)
    console.print(
        f"[dim]Large-file gate: {'on' if config.ask_before_upload else 'off'}, "
        f"threshold {config.max_file_size_mb:g} MB[/dim]"
    )


def manifest(
    path: Path | None = typer.Option(
        None,
        "--path",
        "-C",
        help="Working copy root (default: current directory)",
    ),
) -> None:
    """Rebuild manifest.json without committing anything."""
    project_dir = _resolve(path)
    try:
        written = write_manifest(project_dir)
    except TwinsyncError as e:
        report_error(e)
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    console.print(f"[green]✓[/green] Wrote {written.relative_to(project_dir)}")


__all__ = ["MANIFEST_FILE", "manifest", "status", "sync"]
