from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from region_map._fs import is_mappable_source, sidecar_path, write_text
from region_map.ir import FileMapRecord, Region

from .constants import ENTIRE_FILE_LABEL, HEADER_KEYS, MAP_SEPARATOR, MODIFIED_FORMAT
from .core import extract_regions


@dataclass(frozen=True)
class MapRow:
    start: Optional[int]
    end: Optional[int]
    label: str

    def render(self, indent: str = "") -> str:
        start = "?" if self.start is None else str(self.start)
        end = "?" if self.end is None else str(self.end)
        return f"{indent}| {start:>4} | {end:>4} | {self.label}"


def format_row(region: Region) -> str:
    end = max(region.end, region.start)
    return f"| {region.start:4d} | {end:4d} | {region.label()}"


def rows_from_record(record: FileMapRecord) -> List[MapRow]:
    if not record.regions:
        return [MapRow(1, max(1, record.line_count), ENTIRE_FILE_LABEL)]
    return [MapRow(r.start, max(r.end, r.start), r.label()) for r in record.regions]


def render_map(record: FileMapRecord) -> str:
    lines = [
        f"File: {record.name}",
        f"Path: {record.path}",
        f"Size: {record.size_kb:.2f} KB",
        f"LOC: {record.line_count}",
        f"Modified: {time.strftime(MODIFIED_FORMAT, time.localtime(record.modified))}",
        MAP_SEPARATOR,
    ]
    if record.regions:
        lines.extend(format_row(region) for region in record.regions)
    else:
        lines.append(f"| {1:4d} | {max(1, record.line_count):4d} | {ENTIRE_FILE_LABEL}")
    return "\n".join(lines) + "\n"


def build_record(path: Path, warnings: List[str]) -> Optional[FileMapRecord]:
    try:
        stat = path.stat()
        # newline="" keeps lone carriage returns so lines match count_lines.
        with path.open(encoding="utf-8", errors="replace", newline="") as handle:
            content = handle.read()
    except OSError as exc:
        warnings.append(f"Failed to open source: {path.name} ({exc})")
        return None
    result = extract_regions(content, path.suffix.lower())
    warnings.extend(f"{path.name}: {warning}" for warning in result.warnings)
    return FileMapRecord(
        name=path.name,
        path=str(path),
        size=stat.st_size,
        line_count=result.line_count,
        modified=stat.st_mtime,
        regions=result.regions,
    )


def generate_map(path: Path, warnings: List[str]) -> Optional[FileMapRecord]:
    """Extract regions for ``path`` and write its sidecar map.

    Returns the in-memory record, or None when the source is not mappable or
    could not be read.
    """
    if not is_mappable_source(path):
        return None
    record = build_record(path, warnings)
    if record is None:
        return None
    target = sidecar_path(path)
    try:
        write_text(target, render_map(record))
    except OSError as exc:
        warnings.append(f"Failed to write map: {target.name} ({exc})")
    return record


def _parse_bound(value: str) -> Optional[int]:
    value = value.strip()
    if value.isdigit():
        return int(value)
    return None


def _is_row_start(line: str) -> bool:
    return line.startswith("|") or ("|" in line and line[0].isdigit())


def parse_map_rows(text: str) -> List[MapRow]:
    """Region rows of a sidecar map, header stripped.

    Accepts the current ``| start | end | name`` rows and the legacy
    ``range|name`` rows, where a single value means start == end.
    """
    rows: List[MapRow] = []
    in_header = True
    for raw in text.split("\n"):
        line = raw.strip()
        if not line:
            continue
        if in_header:
            if line.startswith(HEADER_KEYS):
                continue
            if line.startswith("-----"):
                in_header = False
                continue
            if not _is_row_start(line):
                continue
            in_header = False

        if line.startswith("|"):
            parts = line[1:].split("|", 2)
            if len(parts) == 3:
                rows.append(MapRow(_parse_bound(parts[0]), _parse_bound(parts[1]), parts[2].strip()))
                continue

        parts = line.split("|", 1)
        if len(parts) == 2:
            span = parts[0].strip()
            label = parts[1].strip()
            if "-" in span:
                first, _, last = span.partition("-")
                rows.append(MapRow(_parse_bound(first), _parse_bound(last), label))
            else:
                bound = _parse_bound(span)
                rows.append(MapRow(bound, bound, label))
        else:
            rows.append(MapRow(None, None, line))
    return rows


def read_map_rows(path: Path, warnings: Optional[List[str]] = None) -> Optional[List[MapRow]]:
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        if warnings is not None:
            warnings.append(f"Failed to read map: {path.name} ({exc})")
        return None
    return parse_map_rows(text)


def render_rows(rows: Sequence[MapRow], indent: str = "") -> List[str]:
    return [row.render(indent) for row in rows]
