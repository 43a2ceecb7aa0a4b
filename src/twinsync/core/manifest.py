"""
Manifest generation.

The manifest (`manifest.json`) is a derived listing of the working copy's
folders and the files they contain. The static Space template renders it as
a navigable index. It is rebuilt from scratch on every sync and never
patched, so it always matches the tree that is about to be committed.

Layout rules:
- Only folders appear at the top level; root files are infrastructure.
- Names with a leading number ("01_intro", "2. Basics") sort first, by
  that number; the prefix is stripped from the display name.
- Infrastructure folders and files are excluded.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from pydantic import BaseModel, Field

from twinsync.core.config.loader import SYNC_CONFIG_FILE
from twinsync.core.exceptions import ManifestBuildError

logger = logging.getLogger(__name__)

MANIFEST_FILE = "manifest.json"

EXCLUDED_FOLDERS = frozenset(
    {
        ".git",
        ".github",
        ".huggingface",
        ".venv",
        "venv",
        "node_modules",
        "__pycache__",
    }
)

EXCLUDED_FILES = frozenset(
    {
        MANIFEST_FILE,
        SYNC_CONFIG_FILE,
        ".gitignore",
        ".gitattributes",
        "README.md",
        "index.html",
        ".DS_Store",
    }
)

_NUMERIC_PREFIX_RE = re.compile(r"^(\d+)[\s._-]*")


class ManifestFile(BaseModel):
    """A file entry: display name plus its path relative to the root."""

    name: str
    html: str = Field(description="POSIX path of the file relative to the working copy")


class ManifestFolder(BaseModel):
    """A folder entry with its direct files and nested folders."""

    name: str
    folder: str = Field(description="POSIX path of the folder relative to the working copy")
    files: list[ManifestFile] = Field(default_factory=list)
    subfolders: list[ManifestFolder] = Field(default_factory=list)


ManifestFolder.model_rebuild()


def sort_key(name: str) -> tuple[int, int, str, str]:
    """
    Order numbered entries first (by number), then the rest lexicographically.

    Example:
        >>> sorted(["b", "10_x", "2_y", "A"], key=sort_key)
        ['2_y', '10_x', 'A', 'b']
    """
    match = _NUMERIC_PREFIX_RE.match(name)
    if match:
        return (0, int(match.group(1)), name.lower(), name)
    return (1, 0, name.lower(), name)


def display_name(name: str, *, is_file: bool = False) -> str:
    """
    Strip the numeric prefix (and, for files, the extension).

    Example:
        >>> display_name("01_Introduction")
        'Introduction'
        >>> display_name("3 - notes.html", is_file=True)
        'notes'
    """
    if is_file:
        name = Path(name).stem if Path(name).suffix else name
    stripped = _NUMERIC_PREFIX_RE.sub("", name)
    # A name that is only a number keeps it
    return stripped or name


def _is_excluded_folder(path: Path) -> bool:
    return path.name in EXCLUDED_FOLDERS or path.name.startswith(".") or path.is_symlink()


def _scan_folder(root: Path, folder: Path) -> ManifestFolder:
    files: list[ManifestFile] = []
    subfolders: list[ManifestFolder] = []

    for child in sorted(folder.iterdir(), key=lambda p: sort_key(p.name)):
        if child.is_dir():
            if not _is_excluded_folder(child):
                subfolders.append(_scan_folder(root, child))
        elif child.name not in EXCLUDED_FILES:
            files.append(
                ManifestFile(
                    name=display_name(child.name, is_file=True),
                    html=child.relative_to(root).as_posix(),
                )
            )

    return ManifestFolder(
        name=display_name(folder.name),
        folder=folder.relative_to(root).as_posix(),
        files=files,
        subfolders=subfolders,
    )


def build_manifest(root: Path) -> list[ManifestFolder]:
    """
    Scan ``root`` and return the top-level folder entries.

    Raises:
        ManifestBuildError: If any part of the tree cannot be read. Nothing is
            returned in that case, so a partial listing can never be written.
    """
    root = Path(root)
    try:
        entries = sorted(root.iterdir(), key=lambda p: sort_key(p.name))
        return [
            _scan_folder(root, entry)
            for entry in entries
            if entry.is_dir() and not _is_excluded_folder(entry)
        ]
    except OSError as e:
        raise ManifestBuildError(
            f"Cannot scan {root}: {e}",
            path=str(getattr(e, "filename", root)),
        ) from e


def render_manifest(folders: list[ManifestFolder]) -> str:
    """Serialize deterministically so unchanged trees give identical bytes."""
    data = [folder.model_dump() for folder in folders]
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def write_manifest(root: Path) -> Path:
    """
    Rebuild and atomically rewrite `manifest.json` under ``root``.

    Returns:
        Path of the written manifest.

    Raises:
        ManifestBuildError: If the scan or the write fails.
    """
    root = Path(root)
    folders = build_manifest(root)
    content = render_manifest(folders)
    path = root / MANIFEST_FILE

    temp_path = path.with_suffix(".tmp")
    try:
        temp_path.write_text(content, encoding="utf-8")
        temp_path.replace(path)
    except OSError as e:
        if temp_path.exists():
            temp_path.unlink()
        raise ManifestBuildError(f"Cannot write {path}: {e}", path=str(path)) from e

    logger.info("Manifest rebuilt with %d top-level folders", len(folders))
    return path
