"""Filesystem helpers shared by the extractor, the rollups and cleanup.

Rules:
- sidecar maps live next to their source as ``<source>.map.txt``
- directory rollups live inside the directory as ``_level_<n>.map.txt``
- a name is ignored when it is dot-prefixed or matches an ignore list (case-insensitive)
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

MAP_SUFFIX = ".map.txt"
CONFIG_FILE = "codemap.json"
WATCHLIST_FILE = "watchlist.txt"

LEVEL_MAP_NAMES = (
    "_level_0.map.txt",
    "_level_1.map.txt",
    "_level_2.map.txt",
    "_level_3.map.txt",
)

# Tool state, never mapped as a source.
NON_SOURCE_NAMES = {CONFIG_FILE, WATCHLIST_FILE}

DEFAULT_IGNORED_NAMES = (
    ".git",
    "node_modules",
    "dist",
    "bin",
    "vendor",
    ".idea",
    ".vscode",
)


def should_ignore_name(name: str, extra: Optional[Iterable[str]] = None) -> bool:
    if name.startswith(".") and name != ".":
        return True
    lowered = name.lower()
    for ignored in DEFAULT_IGNORED_NAMES:
        if lowered == ignored.lower():
            return True
    for ignored in extra or ():
        if lowered == ignored.lower():
            return True
    return False


def is_map_artifact(name: str) -> bool:
    return name.endswith(MAP_SUFFIX)


def is_level_map(name: str) -> bool:
    return name in LEVEL_MAP_NAMES


def is_mappable_source(path: Path) -> bool:
    return not is_map_artifact(path.name) and path.name not in NON_SOURCE_NAMES


def sidecar_path(source: Path) -> Path:
    return source.with_name(source.name + MAP_SUFFIX)


def source_for_sidecar(sidecar: Path) -> Path:
    return sidecar.with_name(sidecar.name[: -len(MAP_SUFFIX)])


def normalize_ext(ext: str) -> str:
    ext = ext.strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


def count_lines(path: Path) -> int:
    try:
        with path.open("rb") as handle:
            count = 0
            last = b""
            for chunk in iter(lambda: handle.read(65536), b""):
                count += chunk.count(b"\n")
                last = chunk
    except OSError:
        return 0
    if last and not last.endswith(b"\n"):
        count += 1
    return count


def format_size(size: int) -> str:
    unit = 1024
    if size < unit:
        return f"{size} B"
    div, exp = unit, 0
    n = size // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{size / div:.1f} {'KMGTPE'[exp]}B"


def write_text(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path
