"""Filesystem locations: project root discovery and the local store file."""

import os
from typing import Iterator, Optional

from .logging import get_logger

log = get_logger("paths")

ROOT_MARKERS = (".git", "pyproject.toml", ".env", "README.md")
STORE_FILENAME = "store.sqlite3"


def expand_abs(path: str) -> str:
    """Expand env vars and ~ then return absolute path."""
    return os.path.abspath(os.path.expanduser(os.path.expandvars(path or "")))


def _ancestors(start_dir: Optional[str]) -> Iterator[str]:
    d = os.path.abspath(start_dir or os.getcwd())
    while True:
        yield d
        parent = os.path.dirname(d)
        if parent == d:
            return
        d = parent


def find_upwards(start_dir: Optional[str], filename: str) -> Optional[str]:
    for d in _ancestors(start_dir):
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
    return None


def find_project_root(start_dir: Optional[str] = None) -> str:
    """Nearest directory at or above start_dir holding a root marker.

    Falls back to start_dir itself when no marker is found.
    """
    for d in _ancestors(start_dir):
        if any(os.path.exists(os.path.join(d, marker)) for marker in ROOT_MARKERS):
            return d
    start = os.path.abspath(start_dir or os.getcwd())
    log.debug(f"No project marker found above {start}; using it as root")
    return start


def default_store_path(start_dir: Optional[str] = None) -> str:
    return os.path.join(find_project_root(start_dir), "var", "myjantes", STORE_FILENAME)
