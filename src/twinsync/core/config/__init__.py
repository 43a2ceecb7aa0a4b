"""
Configuration models and loading.

Per-working-copy sync settings (.twinsync.json) and process-wide settings
from the layered environment.
"""

from .env import load_layered_env, require_token
from .loader import (
    SYNC_CONFIG_FILE,
    get_sync_config_path,
    load_settings,
    load_sync_config,
    render_sync_config,
    save_sync_config,
)
from .models import Settings, SyncConfig

__all__ = [
    # Models
    "Settings",
    "SyncConfig",
    # Loader functions
    "SYNC_CONFIG_FILE",
    "get_sync_config_path",
    "load_layered_env",
    "load_settings",
    "load_sync_config",
    "render_sync_config",
    "require_token",
    "save_sync_config",
]
