"""
Configuration data models for twinsync.

These models define the structure of the per-working-copy `.twinsync.json`
file and the process-wide settings read from the environment, with
validation via Pydantic.
"""

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_GITHUB_API = "https://api.github.com"
DEFAULT_HF_API = "https://huggingface.co"


class SyncConfig(BaseModel):
    """
    Per-working-copy sync settings stored in `.twinsync.json`.

    Created once at provisioning time with the defaults below and read at
    every sync. Unknown keys are ignored so hand edits never break a sync.
    """

    model_config = ConfigDict(extra="ignore")

    max_file_size_mb: float = Field(
        default=10,
        gt=0,
        description="Staged files larger than this (in MB) go through the upload gate",
    )
    ask_before_upload: bool = Field(
        default=True,
        description="Ask before committing files above max_file_size_mb",
    )

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.max_file_size_mb * 1024 * 1024)


class Settings(BaseModel):
    """
    Process-wide settings: tokens, account names and API endpoints.

    Tokens are optional here; commands that need one call
    `require_token()` so that a missing token fails fast with a clear
    message instead of a 401 halfway through.
    """

    github_token: str | None = Field(default=None, repr=False)
    hf_token: str | None = Field(default=None, repr=False)
    github_user: str | None = Field(
        default=None,
        description="GitHub account that owns created repositories",
    )
    hf_user: str | None = Field(
        default=None,
        description="Hugging Face account that owns created Spaces",
    )
    github_api: str = Field(default=DEFAULT_GITHUB_API)
    hf_api: str = Field(default=DEFAULT_HF_API)
