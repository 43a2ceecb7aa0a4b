"""
Standardized error handling and exit codes for the twinsync CLI.

This module provides consistent error messaging with actionable guidance
and standardized exit codes across all CLI commands.
"""

from enum import IntEnum

from rich.console import Console
from rich.markup import escape

from twinsync.core.exceptions import (
    BackendError,
    ConfirmationMismatchError,
    GitError,
    InvalidNameError,
    ManifestBuildError,
    ProvisionError,
    TokenError,
    TwinsyncError,
)

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for twinsync CLI operations."""

    SUCCESS = 0
    """Operation completed successfully, or a benign no-op."""

    GENERAL_ERROR = 1
    """Validation failure, partial failure or failed push."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "GITHUB_TOKEN is not set",
        ...     reason="A token is needed to create repositories",
        ...     solution="export GITHUB_TOKEN=ghp_...",
        ... )
    """
    console.print(f"[red]Error:[/red] {escape(problem)}")

    if reason:
        console.print(f"[dim]{escape(reason)}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {escape(solution)}")


def print_not_git_repo_error(path: str) -> None:
    """Print error when the sync target is not a working copy."""
    print_error(
        f"Not a git repository: {path}",
        reason="twinsync sync runs inside a working copy created by 'twinsync repo'",
        solution="twinsync repo <name>  # or cd to the working copy",
    )


def report_error(error: TwinsyncError) -> None:
    """Print any twinsync error with guidance matching its type."""
    if isinstance(error, InvalidNameError):
        print_error(str(error), solution="Use only letters, digits, '-' and '_'")
    elif isinstance(error, TokenError):
        print_error(
            str(error),
            reason="Tokens are read from the environment or a .env file",
            solution=f"export {error.variable}=<token>  # or add it to ~/.config/twinsync/.env",
        )
    elif isinstance(error, ConfirmationMismatchError):
        print_error(str(error), reason="Nothing was deleted")
    elif isinstance(error, ManifestBuildError):
        print_error(
            str(error),
            reason="The sync was aborted before anything was staged or pushed",
            solution="Check permissions on the working copy",
        )
    elif isinstance(error, GitError):
        print_error(str(error), reason=error.stderr or None)
    elif isinstance(error, ProvisionError):
        failed = error.context.get("rollback_failures") or []
        if failed:
            print_error(
                str(error),
                reason=f"Rollback failed for: {', '.join(failed)}",
                solution="Delete those repositories by hand before retrying",
            )
        else:
            print_error(str(error), reason="Backends created in this run were rolled back")
    elif isinstance(error, BackendError):
        print_error(str(error))
    else:
        print_error(str(error))
