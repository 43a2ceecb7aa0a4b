"""
Configuration loading.

Two layers of configuration exist:

* `.twinsync.json` in every working copy (SyncConfig): upload gate settings.
* Settings from the environment (tokens, account names, API endpoints),
  after `load_layered_env()` has merged the .env files in.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .models import DEFAULT_GITHUB_API, DEFAULT_HF_API, Settings, SyncConfig

logger = logging.getLogger(__name__)

SYNC_CONFIG_FILE = ".twinsync.json"


def get_sync_config_path(project_dir: Path | None = None) -> Path:
    """
    Get path to the working copy's sync configuration file.

    Args:
        project_dir: Working copy root (defaults to current directory)

    Returns:
        Path to .twinsync.json in the working copy root
    """
    if project_dir is None:
        project_dir = Path.cwd()
    return project_dir / SYNC_CONFIG_FILE


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def load_sync_config(project_dir: Path | None = None) -> SyncConfig:
    """
    Load the sync configuration for a working copy.

    A missing or invalid file falls back to the defaults
    (10 MB threshold, gate enabled) so a sync never fails on config.

    Example:
        >>> config = load_sync_config(Path("my-space"))
        >>> config.max_file_size_mb
        10.0
    """
    path = get_sync_config_path(project_dir)
    data = load_json_file(path)
    if data is None:
        if path.exists():
            logger.warning("Using default sync config, %s is unreadable", path.name)
        else:
            logger.info("No %s found, using defaults", path.name)
        return SyncConfig()

    try:
        return SyncConfig.model_validate(data)
    except PydanticValidationError as e:
        logger.warning("Invalid values in %s, using defaults: %s", path.name, e)
        return SyncConfig()


def save_sync_config(config: SyncConfig, project_dir: Path | None = None) -> Path:
    """Write the sync configuration atomically via a temp file."""
    path = get_sync_config_path(project_dir)
    path.parent.mkdir(parents=True, exist_ok=True)

    temp_path = path.with_suffix(".tmp")
    try:
        temp_path.write_text(render_sync_config(config))
        temp_path.replace(path)
    except OSError:
        if temp_path.exists():
            temp_path.unlink()
        raise
    return path


def render_sync_config(config: SyncConfig | None = None) -> str:
    """Serialize a SyncConfig the way it is stored on disk."""
    config = config or SyncConfig()
    return json.dumps(config.model_dump(), indent=2) + "\n"


def load_settings() -> Settings:
    """
    Build Settings from the process environment.

    Supported env vars:
        GITHUB_TOKEN, HF_TOKEN - backend access tokens
        GITHUB_USER, HF_USER - default account names
        TWINSYNC_GITHUB_API - overrides the GitHub API base URL
        TWINSYNC_HF_API - overrides the Hugging Face base URL
    """
    return Settings(
        github_token=os.environ.get("GITHUB_TOKEN") or None,
        hf_token=os.environ.get("HF_TOKEN") or None,
        github_user=os.environ.get("GITHUB_USER") or None,
        hf_user=os.environ.get("HF_USER") or None,
        github_api=os.environ.get("TWINSYNC_GITHUB_API") or DEFAULT_GITHUB_API,
        hf_api=os.environ.get("TWINSYNC_HF_API") or DEFAULT_HF_API,
    )
