"""
Hugging Face Spaces backend.

Spaces are git repositories served as apps. The `sdk` chosen at creation
time comes from the provisioning flavor (static, gradio, streamlit,
docker).
"""

from __future__ import annotations

import httpx

from twinsync.core.backends.base import Backend
from twinsync.core.config.models import DEFAULT_HF_API
from twinsync.core.exceptions import BackendError


class SpaceBackend(Backend):
    """
    Spaces on huggingface.co.

    Example:
        >>> backend = SpaceBackend(token, owner="alice", sdk="static")
        >>> backend.create("demo", private=True)
        'https://huggingface.co/spaces/alice/demo'
    """

    name = "space"
    label = "Hugging Face"

    def __init__(
        self,
        token: str,
        owner: str | None = None,
        *,
        sdk: str = "static",
        base_url: str = DEFAULT_HF_API,
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__(token, owner, base_url=base_url, client=client)
        self.sdk = sdk

    def whoami(self) -> str:
        response = self._request("GET", "/api/whoami-v2")
        assert response is not None
        name = response.json().get("name")
        if not name:
            raise BackendError(self.name, "Hugging Face did not return a user for this token")
        return str(name)

    def exists(self, repo_name: str) -> bool:
        response = self._request(
            "GET", f"/api/spaces/{self.owner}/{repo_name}", allow_404=True
        )
        return response is not None

    def create(self, repo_name: str, *, description: str = "", private: bool = False) -> str:
        # Description lives in the README front matter, not in the API call.
        payload = {
            "type": "space",
            "name": repo_name,
            "organization": self.owner,
            "private": private,
            "sdk": self.sdk,
        }
        response = self._request("POST", "/api/repos/create", json=payload)
        assert response is not None
        return self.web_url(repo_name)

    def delete(self, repo_name: str) -> None:
        payload = {"type": "space", "name": repo_name, "organization": self.owner}
        self._request("DELETE", "/api/repos/delete", json=payload)

    def clone_url(self, repo_name: str) -> str:
        return f"{self.base_url}/spaces/{self.owner}/{repo_name}"

    def web_url(self, repo_name: str) -> str:
        return f"{self.base_url}/spaces/{self.owner}/{repo_name}"
