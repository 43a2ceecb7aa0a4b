"""
twinsync - keep a GitHub repository and a Hugging Face Space in step

A CLI tool that creates, links and deletes a repository on both hosts and
syncs a local working copy with them.
"""

__version__ = "0.4.0"

# Re-export core models for convenience
from twinsync.core.config.models import Settings, SyncConfig
from twinsync.core.sync.models import SyncResult, SyncStatus

__all__ = ["Settings", "SyncConfig", "SyncResult", "SyncStatus", "__version__"]
