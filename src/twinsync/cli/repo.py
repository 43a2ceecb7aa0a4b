"""
twinsync CLI - Repo command.

Creates, clones, links, edits or removes a repository on GitHub and/or
Hugging Face Spaces depending on where it already exists.
"""

from enum import Enum
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from twinsync.cli.errors import ExitCode, report_error
from twinsync.cli.prompts import CliPrompter
from twinsync.core.backends import Backend, build_backends
from twinsync.core.config import load_settings
from twinsync.core.exceptions import TwinsyncError
from twinsync.core.provision import (
    AutoPrompter,
    Flavor,
    ProvisionOutcome,
    ProvisionService,
    ProvisionStatus,
    validate_name,
)

console = Console()


class BackendSelection(str, Enum):
    GITHUB = "github"
    SPACE = "space"
    BOTH = "both"

    @property
    def names(self) -> list[str]:
        if self is BackendSelection.BOTH:
            return ["github", "space"]
        return [self.value]


def print_outcome(outcome: ProvisionOutcome) -> None:
    """Render a provisioning outcome."""
    status_styles = {
        ProvisionStatus.CREATED: ("✓", "green"),
        ProvisionStatus.CLONED: ("✓", "green"),
        ProvisionStatus.LINKED: ("✓", "green"),
        ProvisionStatus.UPDATED: ("✓", "green"),
        ProvisionStatus.REMOVED: ("✓", "green"),
        ProvisionStatus.PARTIAL_FAILURE: ("⚠", "red"),
        ProvisionStatus.CANCELLED: ("○", "blue"),
    }
    icon, color = status_styles[outcome.status]
    console.print(f"[{color}]{icon}[/{color}] {escape(outcome.message or outcome.status.value)}")

    if outcome.files_written:
        console.print(f"[dim]Wrote {', '.join(outcome.files_written)}[/dim]")

    if outcome.failures:
        table = Table(title="Failures", show_header=False)
        table.add_column("Backend", style="cyan")
        table.add_column("Error")
        for backend, error in outcome.failures.items():
            table.add_row(backend, escape(error))
        console.print(table)

    if outcome.sync_result is not None:
        console.print(f"[dim]{escape(outcome.sync_result.summary())}[/dim]")


def repo(
    name: str = typer.Argument(..., help="Repository name (letters, digits, '-' and '_')"),
    github_user: str | None = typer.Option(
        None,
        "--github-user",
        envvar="GITHUB_USER",
        help="GitHub account (defaults to the token owner)",
    ),
    hf_user: str | None = typer.Option(
        None,
        "--hf-user",
        envvar="HF_USER",
        help="Hugging Face account (defaults to the token owner)",
    ),
    description: str = typer.Option(
        "",
        "--description",
        "-d",
        help="Short description for the repository and README",
    ),
    private: bool = typer.Option(
        False,
        "--private/--public",
        help="Create private repositories",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Skip all confirmations",
    ),
    backend: BackendSelection = typer.Option(
        BackendSelection.BOTH,
        "--backend",
        "-b",
        help="Which hosts to manage",
    ),
    flavor: Flavor = typer.Option(
        Flavor.STATIC,
        "--flavor",
        help="Space SDK and starter file set",
    ),
    parent: Path | None = typer.Option(
        None,
        "--parent",
        help="Directory that holds the working copy (default: current directory)",
    ),
) -> None:
    """
    Create, clone, link or remove a repository on GitHub and Hugging Face.

    What happens depends on where NAME already exists:

        nowhere                 create it everywhere and push a first commit
        remotely only           clone it, create what is missing
        locally, not remotely   create the missing hosts and link them
        everywhere              edit (fill gaps) or remove

    Examples:
        twinsync repo notes                      # GitHub + Space
        twinsync repo notes --backend github     # GitHub only
        twinsync repo demo --flavor gradio -d "Gradio demo"
        twinsync repo notes --force              # no questions asked
    """
    backends: list[Backend] = []
    try:
        validate_name(name)

        settings = load_settings()
        if github_user:
            settings.github_user = github_user
        if hf_user:
            settings.hf_user = hf_user
        backends = build_backends(settings, backend.names, sdk=flavor.value)

        prompter = AutoPrompter() if force else CliPrompter()
        service = ProvisionService(
            backends,
            prompter=prompter,
            parent_dir=parent,
            flavor=flavor,
        )
        outcome = service.reconcile(name, description=description, private=private, force=force)
    except TwinsyncError as e:
        report_error(e)
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    finally:
        for b in backends:
            b.close()

    print_outcome(outcome)
    if not outcome.success:
        raise typer.Exit(ExitCode.GENERAL_ERROR)
