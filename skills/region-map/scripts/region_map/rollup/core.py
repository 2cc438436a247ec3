from __future__ import annotations

import os
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from region_map._fs import LEVEL_MAP_NAMES, should_ignore_name, write_text
from region_map.ir import FileMapRecord, now_iso
from region_map.utils import progress

from .budget import estimate_tokens
from .levels import deep_structure_lines, hierarchy_lines, inventory_lines, structure_lines

if TYPE_CHECKING:
    from region_map.cli.config import Config, RootConfig

DEFAULT_FOLDER_WORKERS = 10


@dataclass
class LevelMapResult:
    directory: str
    written: List[str] = field(default_factory=list)
    tokens: int = 0
    warnings: List[str] = field(default_factory=list)


def partition_watched(files: Iterable[object]) -> Dict[str, Tuple[str, ...]]:
    """Group watched files by absolute parent directory; each group is sorted and immutable."""
    grouped: Dict[str, set] = defaultdict(set)
    for item in files:
        path = os.path.abspath(str(item))
        grouped[os.path.dirname(path)].add(path)
    return {directory: tuple(sorted(paths)) for directory, paths in grouped.items()}


def collect_target_dirs(config: "Config", warnings: List[str]) -> Dict[str, "RootConfig"]:
    targets: Dict[str, "RootConfig"] = {}
    for root in config.roots:
        base = os.path.abspath(root.path)
        if not os.path.isdir(base):
            warnings.append(f"Root not found: {base}")
            continue
        if should_ignore_name(os.path.basename(base), root.ignored_dirs):
            continue
        for dirpath, dirnames, _filenames in os.walk(base, onerror=lambda exc: warnings.append(str(exc))):
            dirnames[:] = sorted(name for name in dirnames if not should_ignore_name(name, root.ignored_dirs))
            targets.setdefault(dirpath, root)
    return targets


def write_level_maps(
    directory: str,
    watched: Sequence[str],
    ignored: Sequence[str],
    records: Mapping[str, FileMapRecord],
    generated: Optional[str] = None,
) -> LevelMapResult:
    base = Path(directory)
    generated = generated or now_iso()
    result = LevelMapResult(directory=directory)
    renders = (
        inventory_lines(base, ignored, generated, result.warnings),
        structure_lines(base, watched, records, generated, result.warnings),
        hierarchy_lines(base, ignored, generated, result.warnings),
        deep_structure_lines(base, ignored, records, generated, result.warnings),
    )
    for name, lines in zip(LEVEL_MAP_NAMES, renders):
        text = "\n".join(lines) + "\n"
        target = base / name
        try:
            write_text(target, text)
        except OSError as exc:
            result.warnings.append(f"Failed to write {target}: {exc}")
            continue
        result.written.append(str(target))
        result.tokens += estimate_tokens(text)
    return result


def _directory_task(
    directory: str,
    watched: Sequence[str],
    ignored: Sequence[str],
    records: Mapping[str, FileMapRecord],
    generated: str,
) -> LevelMapResult:
    try:
        return write_level_maps(directory, watched, ignored, records, generated)
    except Exception as exc:
        return LevelMapResult(directory=directory, warnings=[f"Folder maps failed for {directory}: {exc}"])


def generate_folder_maps(
    config: "Config",
    files: Iterable[object],
    warnings: List[str],
    *,
    records: Optional[Mapping[str, FileMapRecord]] = None,
    workers: int = DEFAULT_FOLDER_WORKERS,
) -> List[LevelMapResult]:
    """Write the four level maps for every directory under the configured roots.

    One task per directory runs on a pool of ``workers`` threads; the call
    returns once every directory has been written.
    """
    progress("Generating folder maps...")
    watched = partition_watched(files)
    targets = collect_target_dirs(config, warnings)
    shared_records: Mapping[str, FileMapRecord] = dict(records or {})
    generated = now_iso()

    results: List[LevelMapResult] = []
    with ThreadPoolExecutor(max_workers=max(1, int(workers))) as executor:
        futures = [
            executor.submit(
                _directory_task,
                directory,
                watched.get(directory, ()),
                tuple(root.ignored_dirs),
                shared_records,
                generated,
            )
            for directory, root in sorted(targets.items())
        ]
        for future in as_completed(futures):
            results.append(future.result())

    results.sort(key=lambda item: item.directory)
    for result in results:
        warnings.extend(result.warnings)
    progress(f"Wrote folder maps for {len(results)} directories", done=True)
    return results


def refresh_directory(
    directory: str,
    watchlist: Iterable[str],
    config: "Config",
    *,
    records: Optional[Mapping[str, FileMapRecord]] = None,
) -> LevelMapResult:
    """Rewrite one directory's level maps from a flat watchlist."""
    base = os.path.abspath(directory)
    wanted = os.path.normcase(base).lower()
    watched = sorted(
        os.path.abspath(path)
        for path in watchlist
        if os.path.normcase(os.path.dirname(os.path.abspath(path))).lower() == wanted
    )
    root = config.root_for(Path(base))
    ignored = tuple(root.ignored_dirs) if root is not None else ()
    return write_level_maps(base, watched, ignored, records or {})
