"""
Hosting backends.

Two backends are supported: GitHub repositories ("github") and Hugging
Face Spaces ("space"). The backend name doubles as the git remote name in
every working copy, and the order returned by `build_backends()` is the
remote registration order (GitHub first).

Example:
    >>> from twinsync.core.backends import build_backends
    >>> backends = build_backends(settings, {"github", "space"}, sdk="static")
    >>> [b.name for b in backends]
    ['github', 'space']
"""

from __future__ import annotations

from collections.abc import Iterable

from twinsync.core.backends.base import Backend
from twinsync.core.backends.github import GitHubBackend
from twinsync.core.backends.huggingface import SpaceBackend
from twinsync.core.config.env import TOKEN_VARIABLES, require_token
from twinsync.core.config.models import Settings

BACKEND_NAMES = ("github", "space")


def build_backends(
    settings: Settings,
    enabled: Iterable[str],
    *,
    sdk: str = "static",
) -> list[Backend]:
    """
    Instantiate the enabled backends in registration order.

    Raises:
        TokenError: If a required token is missing or too short
    """
    wanted = set(enabled)
    backends: list[Backend] = []
    if "github" in wanted:
        token = require_token(TOKEN_VARIABLES["github"], settings.github_token or "")
        backends.append(
            GitHubBackend(token, settings.github_user, base_url=settings.github_api)
        )
    if "space" in wanted:
        token = require_token(TOKEN_VARIABLES["space"], settings.hf_token or "")
        backends.append(
            SpaceBackend(token, settings.hf_user, sdk=sdk, base_url=settings.hf_api)
        )
    return backends


__all__ = [
    "BACKEND_NAMES",
    "Backend",
    "GitHubBackend",
    "SpaceBackend",
    "build_backends",
]
