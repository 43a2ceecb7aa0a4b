"""
GitHub backend.

Uses the GitHub REST API directly (no `gh` CLI) so that the same token
that authenticates git pushes also drives repository creation and
deletion.
"""

from __future__ import annotations

import httpx

from twinsync.core.backends.base import Backend
from twinsync.core.config.models import DEFAULT_GITHUB_API
from twinsync.core.exceptions import BackendError


class GitHubBackend(Backend):
    """
    Repositories on github.com.

    Example:
        >>> backend = GitHubBackend(token, owner="alice")
        >>> if not backend.exists("demo"):
        ...     backend.create("demo", description="Demo space", private=False)
    """

    name = "github"
    label = "GitHub"

    def __init__(
        self,
        token: str,
        owner: str | None = None,
        *,
        base_url: str = DEFAULT_GITHUB_API,
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__(token, owner, base_url=base_url, client=client)

    @property
    def headers(self) -> dict[str, str]:
        headers = super().headers
        headers["Accept"] = "application/vnd.github+json"
        headers["X-GitHub-Api-Version"] = "2022-11-28"
        return headers

    def whoami(self) -> str:
        response = self._request("GET", "/user")
        assert response is not None
        login = response.json().get("login")
        if not login:
            raise BackendError(self.name, "GitHub did not return a login for this token")
        return str(login)

    def exists(self, repo_name: str) -> bool:
        response = self._request("GET", f"/repos/{self.owner}/{repo_name}", allow_404=True)
        return response is not None

    def create(self, repo_name: str, *, description: str = "", private: bool = False) -> str:
        payload = {
            "name": repo_name,
            "description": description,
            "private": private,
            "auto_init": False,
        }
        response = self._request("POST", "/user/repos", json=payload)
        assert response is not None
        return str(response.json().get("html_url") or self.web_url(repo_name))

    def delete(self, repo_name: str) -> None:
        self._request("DELETE", f"/repos/{self.owner}/{repo_name}")

    def clone_url(self, repo_name: str) -> str:
        return f"https://github.com/{self.owner}/{repo_name}.git"

    def web_url(self, repo_name: str) -> str:
        return f"https://github.com/{self.owner}/{repo_name}"
