"""
Custom exceptions for twinsync.

Exception Hierarchy:
    TwinsyncError (base)
    ├── ValidationError (bad input, fatal before any remote contact)
    │   ├── InvalidNameError
    │   ├── TokenError
    │   └── ConfirmationMismatchError
    ├── BackendError (hosting API failures)
    │   └── BackendUnreachableError
    ├── GitError (git subprocess failures)
    ├── ManifestBuildError (working copy scan failed)
    └── ProvisionError (create/link/remove could not complete)

Example:
    >>> from twinsync.core.exceptions import BackendError
    >>> try:
    ...     raise BackendError("github", "Repository already exists", status_code=422)
    ... except BackendError as e:
    ...     print(f"Error from {e.backend}: {e}")
    ...     print(f"Context: {e.context}")
"""

from __future__ import annotations

from twinsync.core.redact import redact_text


class TwinsyncError(Exception):
    """
    Base exception for all twinsync errors.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class ValidationError(TwinsyncError):
    """Invalid user input or environment. Always fatal."""


class InvalidNameError(ValidationError):
    """Repository name contains characters outside [A-Za-z0-9_-]."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Invalid repository name: {name!r} "
            "(only letters, digits, '-' and '_' are allowed)",
            name=name,
        )
        self.name = name


class TokenError(ValidationError):
    """Access token is missing or too short."""

    def __init__(self, variable: str, message: str) -> None:
        super().__init__(message, variable=variable)
        self.variable = variable


class ConfirmationMismatchError(ValidationError):
    """Typed confirmation did not match the repository name."""

    def __init__(self, expected: str, received: str) -> None:
        super().__init__(
            f"Confirmation '{received}' does not match '{expected}'",
            expected=expected,
            received=received,
        )


class BackendError(TwinsyncError):
    """
    Error returned by a hosting backend.

    Attributes:
        backend: Name of the backend that failed ("github" or "space")
        message: Human-readable error message
        context: Additional context about the failure
    """

    def __init__(self, backend: str, message: str, **context: object) -> None:
        super().__init__(message, backend=backend, **context)
        self.backend = backend

    def __str__(self) -> str:
        return f"[{self.backend}] {self.message}"


class BackendUnreachableError(BackendError):
    """Network failure talking to a backend. Callers treat it as "absent"."""


class GitError(TwinsyncError):
    """
    A git command failed.

    The command line and stderr are redacted so that credential-bearing
    remote URLs never reach logs or the terminal.
    """

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        stderr: str = "",
        returncode: int | None = None,
    ) -> None:
        safe_command = [redact_text(part) for part in command] if command else None
        super().__init__(redact_text(message), returncode=returncode)
        self.command = safe_command
        self.stderr = redact_text(stderr)
        self.returncode = returncode


class ManifestBuildError(TwinsyncError):
    """The working copy could not be scanned; nothing was written."""


class ProvisionError(TwinsyncError):
    """A provisioning step failed after rollback was attempted."""
