"""Project root discovery.

Experiments and scripts may be launched from any working directory (or the
package may be installed in editable mode), so relative paths from the config
are resolved against the directory holding `config/` and `pyproject.toml`.
"""

from __future__ import annotations

from pathlib import Path


def find_project_root(start: Path) -> Path:
    """Find the enclosing project root.

    Strategy: walk upward from `start` until we find a directory that looks
    like the project root (must contain `config/` and `pyproject.toml`).

    Returns `start` if no such parent exists.
    """
    start = start.resolve()
    for candidate in (start, *start.parents):
        if (candidate / "config").is_dir() and (candidate / "pyproject.toml").is_file():
            return candidate
    return start


def resolve_path(root: Path, path) -> Path:
    """Resolve `path` against `root` unless it is already absolute."""
    path = Path(path)
    return path if path.is_absolute() else root / path
