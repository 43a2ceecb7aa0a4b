"""
Starter files for new working copies.

Each flavor (the Space SDK) maps to a fixed set of files. Rendering is a
pure function of (name, description, flavor); writing skips the whole set
when the marker file already exists, and every file is written through a
temp file so it is either complete or absent.
"""

from __future__ import annotations

import html
import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from twinsync.core.config.loader import SYNC_CONFIG_FILE, render_sync_config

logger = logging.getLogger(__name__)

MARKER_FILE = "README.md"

# Extensions routed through git-lfs in .gitattributes
LFS_EXTENSIONS = (
    "7z",
    "bin",
    "ckpt",
    "gz",
    "h5",
    "mov",
    "mp3",
    "mp4",
    "onnx",
    "pdf",
    "psd",
    "pt",
    "pth",
    "safetensors",
    "tar",
    "wav",
    "zip",
)


class Flavor(str, Enum):
    """Deployment flavor of the Space (its SDK)."""

    STATIC = "static"
    GRADIO = "gradio"
    STREAMLIT = "streamlit"
    DOCKER = "docker"


@dataclass(frozen=True)
class StarterFile:
    """A file to create in a fresh working copy."""

    path: str
    content: str


_GITIGNORE = """\
__pycache__/
*.py[cod]
.venv/
venv/
.env
.env.local
.DS_Store
*.tmp
"""

_INDEX_HTML = """\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{title}</title>
  <style>
    body {{ font-family: system-ui, sans-serif; max-width: 48rem; margin: 2rem auto; }}
    ul {{ list-style: none; padding-left: 1.2rem; }}
    summary {{ cursor: pointer; font-weight: 600; }}
  </style>
</head>
<body>
  <h1>{title}</h1>
  <p>{description}</p>
  <div id="tree"></div>
  <script>
    function render(folders) {{
      const list = document.createElement("ul");
      for (const folder of folders) {{
        const item = document.createElement("li");
        const details = document.createElement("details");
        const summary = document.createElement("summary");
        summary.textContent = folder.name;
        details.appendChild(summary);
        const files = document.createElement("ul");
        for (const file of folder.files) {{
          const li = document.createElement("li");
          const link = document.createElement("a");
          link.href = file.html;
          link.textContent = file.name;
          li.appendChild(link);
          files.appendChild(li);
        }}
        details.appendChild(files);
        details.appendChild(render(folder.subfolders));
        item.appendChild(details);
        list.appendChild(item);
      }}
      return list;
    }}
    fetch("manifest.json")
      .then((response) => response.json())
      .then((folders) => document.getElementById("tree").appendChild(render(folders)));
  </script>
</body>
</html>
"""

_GRADIO_APP = """\
import gradio as gr


def greet(name: str) -> str:
    return f"Hello {{name}}!"


demo = gr.Interface(fn=greet, inputs="text", outputs="text", title={title})

if __name__ == "__main__":
    demo.launch({launch_args})
"""

_STREAMLIT_APP = """\
import streamlit as st

st.title({title})
st.write({description})
"""

_DOCKERFILE = """\
FROM python:3.11-slim

WORKDIR /app
COPY requirements.txt .
RUN pip install --no-cache-dir -r requirements.txt
COPY . .

EXPOSE 7860
CMD ["python", "app.py"]
"""


def _readme(name: str, description: str, flavor: Flavor) -> str:
    lines = [
        "---",
        f"title: {name}",
        "emoji: 📚",
        "colorFrom: blue",
        "colorTo: indigo",
        f"sdk: {flavor.value}",
    ]
    if flavor is Flavor.STATIC:
        lines.append("app_file: index.html")
    elif flavor is Flavor.DOCKER:
        lines.append("app_port: 7860")
    else:
        lines.append("app_file: app.py")
    lines.append("pinned: false")
    if description:
        # Hub limits short_description to 60 characters
        lines.append(f"short_description: {json.dumps(description[:60], ensure_ascii=False)}")
    lines += ["---", "", f"# {name}", ""]
    if description:
        lines += [description, ""]
    return "\n".join(lines)


def _gitattributes() -> str:
    return "".join(f"*.{ext} filter=lfs diff=lfs merge=lfs -text\n" for ext in LFS_EXTENSIONS)


def render_starter_files(name: str, description: str, flavor: Flavor) -> list[StarterFile]:
    """
    Render the starter files for ``flavor``.

    Example:
        >>> [f.path for f in render_starter_files("demo", "", Flavor.STATIC)]
        ['README.md', '.gitignore', '.gitattributes', '.twinsync.json', 'index.html']
    """
    files = [
        StarterFile(MARKER_FILE, _readme(name, description, flavor)),
        StarterFile(".gitignore", _GITIGNORE),
        StarterFile(".gitattributes", _gitattributes()),
        StarterFile(SYNC_CONFIG_FILE, render_sync_config()),
    ]

    title = json.dumps(name)
    if flavor is Flavor.STATIC:
        files.append(
            StarterFile(
                "index.html",
                _INDEX_HTML.format(title=html.escape(name), description=html.escape(description)),
            )
        )
    elif flavor is Flavor.GRADIO:
        files.append(StarterFile("app.py", _GRADIO_APP.format(title=title, launch_args="")))
        files.append(StarterFile("requirements.txt", "gradio\n"))
    elif flavor is Flavor.STREAMLIT:
        files.append(
            StarterFile(
                "app.py",
                _STREAMLIT_APP.format(title=title, description=json.dumps(description)),
            )
        )
        files.append(StarterFile("requirements.txt", "streamlit\n"))
    elif flavor is Flavor.DOCKER:
        files.append(StarterFile("Dockerfile", _DOCKERFILE))
        files.append(
            StarterFile(
                "app.py",
                _GRADIO_APP.format(
                    title=title, launch_args='server_name="0.0.0.0", server_port=7860'
                ),
            )
        )
        files.append(StarterFile("requirements.txt", "gradio\n"))

    return files


def _write_atomic(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(path.name + ".tmp")
    try:
        temp_path.write_text(content, encoding="utf-8")
        temp_path.replace(path)
    except OSError:
        if temp_path.exists():
            temp_path.unlink()
        raise


def write_starter_files(
    root: Path,
    files: list[StarterFile],
    *,
    fill_missing: bool = False,
) -> list[str]:
    """
    Write starter files under ``root``.

    Args:
        root: Working copy root
        files: Output of `render_starter_files()`
        fill_missing: Write every absent file even when the marker exists
            (used when editing an existing working copy)

    Returns:
        Relative paths of the files that were written.
    """
    root = Path(root)
    if not fill_missing and (root / MARKER_FILE).exists():
        logger.info("%s already present in %s, leaving starter files alone", MARKER_FILE, root)
        return []

    written: list[str] = []
    for starter in files:
        target = root / starter.path
        if target.exists():
            continue
        _write_atomic(target, starter.content)
        written.append(starter.path)
    return written
