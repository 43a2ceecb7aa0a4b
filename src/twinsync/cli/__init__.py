"""
twinsync CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys

import typer
from rich.console import Console

from twinsync import __version__
from twinsync.cli import repo, sync
from twinsync.cli.errors import ExitCode
from twinsync.core.config.env import load_layered_env

# Help panel names for command grouping
PANEL_REPO = "Manage Repositories"
PANEL_SYNC = "Sync a Working Copy"

# Create the main Typer app
app = typer.Typer(
    name="twinsync",
    help="Keep a GitHub repository and a Hugging Face Space in step",
    no_args_is_help=True,
    add_completion=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """
    Configure logging for all commands.

    Args:
        verbose: If True, show INFO messages
        debug: If True, show DEBUG messages including every git command
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show progress messages",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    twinsync - one project, two homes.

    Creates a repository on GitHub and a matching Hugging Face Space, keeps a
    local working copy linked to both and syncs it with a single command.

    Quick Start:
        export GITHUB_TOKEN=... HF_TOKEN=...
        twinsync repo notes          # create on both hosts
        cd notes
        twinsync sync                # commit, merge and push everywhere

    Documentation:
        twinsync --help              # This message
        twinsync <command> --help    # Help for specific command
    """
    setup_logging(verbose=verbose, debug=debug)

    # Precedence: OS env > project .env > user .env
    load_layered_env()

    ctx.obj = {"verbose": verbose, "debug": debug}


# =============================================================================
# Manage Repositories
# =============================================================================

app.command(name="repo", rich_help_panel=PANEL_REPO)(repo.repo)


# =============================================================================
# Sync a Working Copy
# =============================================================================

app.command(name="sync", rich_help_panel=PANEL_SYNC)(sync.sync)
app.command(name="status", rich_help_panel=PANEL_SYNC)(sync.status)
app.command(name="manifest", rich_help_panel=PANEL_SYNC)(sync.manifest)


@app.command()
def version() -> None:
    """Show twinsync version and exit."""
    console.print(f"twinsync version {__version__}")
    raise typer.Exit(ExitCode.SUCCESS)


def cli_main() -> None:
    """
    Main CLI entry point.

    Ctrl+C anywhere exits with the conventional SIGINT status instead of a
    traceback.
    """
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(ExitCode.SIGINT)


__all__ = ["app", "cli_main"]
