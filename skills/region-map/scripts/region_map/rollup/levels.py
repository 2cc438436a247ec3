"""Renderers for the four per-directory rollups.

Level 0 lists the files of one directory, level 1 concatenates the region
tables of its watched files, level 2 is the subdirectory tree and level 3
the full tree with region tables inlined under mapped files.
"""
from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Iterator, List, Mapping, Optional, Sequence, Tuple

from region_map._fs import count_lines, format_size, is_map_artifact, should_ignore_name, sidecar_path
from region_map.extractor import MapRow, read_map_rows, render_rows, rows_from_record
from region_map.ir import FileMapRecord

LEVEL_TITLES = {
    0: "INVENTORY",
    1: "STRUCTURE",
    2: "HIERARCHY",
    3: "DEEP STRUCTURE",
}

INVENTORY_TIME_FORMAT = "%Y-%m-%d %H:%M"


def level_header(level: int, directory: Path, generated: str) -> List[str]:
    return [
        f"# LEVEL {level}: {LEVEL_TITLES[level]} - {directory.name}",
        f"Path: {directory}",
        f"Generated: {generated}",
        "",
    ]


def sorted_entries(directory: Path, warnings: List[str]) -> List[os.DirEntry]:
    try:
        with os.scandir(directory) as handle:
            return sorted(handle, key=lambda entry: entry.name)
    except OSError as exc:
        warnings.append(f"Failed to list {directory}: {exc}")
        return []


def region_rows(
    path: Path,
    records: Mapping[str, FileMapRecord],
    warnings: List[str],
) -> Optional[List[MapRow]]:
    """Rows for ``path`` from the in-memory record, else from its sidecar; None if neither exists."""
    record = records.get(str(path))
    if record is not None:
        return rows_from_record(record)
    sidecar = sidecar_path(path)
    if not sidecar.is_file():
        return None
    return read_map_rows(sidecar, warnings)


def walk_tree(
    directory: Path,
    ignored: Sequence[str],
    warnings: List[str],
    *,
    include_files: bool,
    depth: int = 0,
) -> Iterator[Tuple[int, Path, bool]]:
    for entry in sorted_entries(directory, warnings):
        if should_ignore_name(entry.name, ignored):
            continue
        is_dir = entry.is_dir(follow_symlinks=False)
        if is_dir:
            yield depth, Path(entry.path), True
            yield from walk_tree(
                Path(entry.path), ignored, warnings, include_files=include_files, depth=depth + 1
            )
        elif include_files:
            yield depth, Path(entry.path), False


def inventory_lines(directory: Path, ignored: Sequence[str], generated: str, warnings: List[str]) -> List[str]:
    lines = level_header(0, directory, generated)
    lines.append("Do you need code structure? See: _level_1.map.txt")
    lines.append("Do you need subdirectories? See: _level_2.map.txt")
    lines.append("")
    lines.append("Name | Size | LOC | Modified")
    lines.append("---|---|---|---")
    for entry in sorted_entries(directory, warnings):
        if entry.is_dir(follow_symlinks=False):
            continue
        if is_map_artifact(entry.name) or should_ignore_name(entry.name, ignored):
            continue
        try:
            info = entry.stat()
        except OSError as exc:
            warnings.append(f"Failed to stat {entry.path}: {exc}")
            continue
        loc = count_lines(Path(entry.path))
        modified = time.strftime(INVENTORY_TIME_FORMAT, time.localtime(info.st_mtime))
        lines.append(f"{entry.name} | {format_size(info.st_size)} | {loc} | {modified}")
    return lines


def structure_lines(
    directory: Path,
    watched: Sequence[str],
    records: Mapping[str, FileMapRecord],
    generated: str,
    warnings: List[str],
) -> List[str]:
    lines = level_header(1, directory, generated)
    lines.append("Need file inventory? See: _level_0.map.txt")
    lines.append("Need subdirectories? See: _level_2.map.txt")
    lines.append("")
    for raw in sorted(watched):
        path = Path(raw)
        rows = region_rows(path, records, warnings)
        if rows is None:
            continue
        lines.append(f"### {path.name}")
        lines.extend(render_rows(rows))
        lines.append("")
    return lines


def hierarchy_lines(directory: Path, ignored: Sequence[str], generated: str, warnings: List[str]) -> List[str]:
    lines = level_header(2, directory, generated)
    for depth, path, _is_dir in walk_tree(directory, ignored, warnings, include_files=False):
        lines.append(f"{'  ' * depth}- 📁 {path.name}/")
    return lines


def deep_structure_lines(
    directory: Path,
    ignored: Sequence[str],
    records: Mapping[str, FileMapRecord],
    generated: str,
    warnings: List[str],
) -> List[str]:
    lines = level_header(3, directory, generated)
    for depth, path, is_dir in walk_tree(directory, ignored, warnings, include_files=True):
        indent = "  " * depth
        if is_dir:
            lines.append(f"{indent}- 📁 {path.name}/")
            continue
        if is_map_artifact(path.name):
            continue
        rows = region_rows(path, records, warnings)
        if rows is None:
            lines.append(f"{indent}- {path.name}")
            continue
        lines.append(f"{indent}- 📄 {path.name}")
        lines.extend(render_rows(rows, indent=indent + "    "))
    return lines
