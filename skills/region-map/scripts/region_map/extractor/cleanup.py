from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, List

from region_map._fs import (
    LEVEL_MAP_NAMES,
    is_level_map,
    is_map_artifact,
    normalize_ext,
    should_ignore_name,
    source_for_sidecar,
)
from region_map.utils import progress

if TYPE_CHECKING:
    from region_map.cli.config import Config, RootConfig


def remove_file(path: Path, warnings: List[str]) -> int:
    try:
        path.unlink()
    except FileNotFoundError:
        return 0
    except OSError as exc:
        warnings.append(f"Failed to remove {path}: {exc}")
        return 0
    return 1


def remove_level_maps(directory: Path, warnings: List[str]) -> int:
    removed = 0
    for name in LEVEL_MAP_NAMES:
        target = directory / name
        if target.is_file():
            removed += remove_file(target, warnings)
    return removed


def is_orphan(sidecar: Path, root: "RootConfig") -> bool:
    source = source_for_sidecar(sidecar)
    if not source.is_file():
        return True
    if should_ignore_name(source.name, root.ignored_dirs):
        return True
    return normalize_ext(source.suffix) not in root.allowed_exts


def reconcile_root(root: "RootConfig", warnings: List[str]) -> int:
    base = Path(os.path.abspath(root.path))
    if not base.is_dir():
        warnings.append(f"Root not found: {base}")
        return 0
    if should_ignore_name(base.name, root.ignored_dirs):
        return remove_level_maps(base, warnings)

    removed = 0
    for dirpath, dirnames, filenames in os.walk(base, onerror=lambda exc: warnings.append(str(exc))):
        current = Path(dirpath)
        kept: List[str] = []
        for name in sorted(dirnames):
            if should_ignore_name(name, root.ignored_dirs):
                # Ignored directories only lose their own rollups; they are not descended.
                removed += remove_level_maps(current / name, warnings)
            else:
                kept.append(name)
        dirnames[:] = kept
        for name in sorted(filenames):
            if not is_map_artifact(name) or is_level_map(name):
                continue
            sidecar = current / name
            if is_orphan(sidecar, root):
                removed += remove_file(sidecar, warnings)
    return removed


def cleanup_maps(config: "Config", warnings: List[str]) -> int:
    """Remove sidecar maps whose source is gone, ignored, or no longer an allowed extension."""
    progress("Cleaning up orphaned maps...")
    removed = 0
    for root in config.roots:
        removed += reconcile_root(root, warnings)
    progress(f"Removed {removed} obsolete map files", done=True)
    return removed


def deep_clean(target: Path, warnings: List[str]) -> int:
    """Delete every ``*.map.txt`` beneath ``target``, regardless of configuration."""
    progress(f"Deep clean in {target}...")
    removed = 0
    for dirpath, _dirnames, filenames in os.walk(target, onerror=lambda exc: warnings.append(str(exc))):
        for name in filenames:
            if is_map_artifact(name):
                removed += remove_file(Path(dirpath) / name, warnings)
    progress(f"Deep clean removed {removed} files", done=True)
    return removed
