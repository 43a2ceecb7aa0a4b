"""
Base class for hosting backends.

A backend hosts one kind of remote repository (a GitHub repository or a
Hugging Face Space) and exposes exists/create/delete over an authenticated
REST API. Both concrete backends share the HTTP plumbing defined here.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from twinsync.core.exceptions import BackendError, BackendUnreachableError
from twinsync.core.redact import embed_credentials

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class Backend(ABC):
    """
    A remote hosting service with repository lifecycle operations.

    Subclasses set `name` (also used as the git remote name) and
    implement the four API calls plus `clone_url`.

    Args:
        token: Bearer token for the API
        owner: Account that owns the repositories (None = token owner)
        base_url: API base URL
        client: Optional preconfigured httpx.Client (tests inject a
            MockTransport here)
    """

    name: str = ""
    label: str = ""

    def __init__(
        self,
        token: str,
        owner: str | None = None,
        *,
        base_url: str,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.token = token
        self._owner = owner
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(owner={self._owner!r}, base_url={self.base_url!r})"

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "User-Agent": "twinsync",
        }

    @property
    def owner(self) -> str:
        """Owning account, resolved through `whoami()` on first use."""
        if not self._owner:
            self._owner = self.whoami()
        return self._owner

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> Backend:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        allow_404: bool = False,
        **kwargs: Any,
    ) -> httpx.Response | None:
        """
        Send a request and translate failures into backend errors.

        Returns:
            The response, or None for a 404 when ``allow_404`` is set.

        Raises:
            BackendUnreachableError: On connection errors and timeouts
            BackendError: On any other non-2xx response
        """
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = self._client.request(method, url, headers=self.headers, **kwargs)
        except httpx.RequestError as e:
            raise BackendUnreachableError(
                self.name, f"Cannot reach {self.label}: {e}", url=url
            ) from e

        if allow_404 and response.status_code == 404:
            return None

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise BackendError(
                self.name,
                f"{self.label} returned {response.status_code}: {_error_detail(response)}",
                status_code=response.status_code,
                url=url,
            ) from e
        return response

    def authenticated_url(self, repo_name: str) -> str:
        """Clone URL with the token embedded, for use as a git remote."""
        return embed_credentials(self.clone_url(repo_name), self.owner, self.token)

    @abstractmethod
    def whoami(self) -> str:
        """Login name of the token owner."""

    @abstractmethod
    def exists(self, repo_name: str) -> bool:
        """Whether ``owner/repo_name`` exists."""

    @abstractmethod
    def create(self, repo_name: str, *, description: str = "", private: bool = False) -> str:
        """Create the repository and return its web URL."""

    @abstractmethod
    def delete(self, repo_name: str) -> None:
        """Delete the repository."""

    @abstractmethod
    def clone_url(self, repo_name: str) -> str:
        """HTTPS clone URL without credentials."""


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip()[:200] or response.reason_phrase
    if isinstance(data, dict):
        for key in ("message", "error"):
            if data.get(key):
                return str(data[key])
    return str(data)[:200]
