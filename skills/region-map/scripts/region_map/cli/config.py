from __future__ import annotations

import json
import os
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

from region_map._fs import (
    CONFIG_FILE,
    NON_SOURCE_NAMES,
    is_map_artifact,
    normalize_ext,
    should_ignore_name,
    write_text,
)
from region_map.utils import progress

SETUP_IGNORED_DIRS = ["node_modules", ".git", "dist", "build"]


@dataclass
class RootConfig:
    path: str
    allowed_exts: List[str]
    ignored_dirs: List[str] = field(default_factory=list)


@dataclass
class Config:
    roots: List[RootConfig]

    def allowed_exts(self) -> Set[str]:
        return {ext for root in self.roots for ext in root.allowed_exts}

    def root_for(self, directory: Path) -> Optional[RootConfig]:
        """Root whose path contains ``directory`` (case-insensitive prefix), else the first root."""
        lowered = os.path.abspath(directory).lower()
        for root in self.roots:
            prefix = os.path.abspath(root.path).lower()
            if lowered == prefix or lowered.startswith(prefix.rstrip(os.sep) + os.sep):
                return root
        return self.roots[0] if self.roots else None

    def to_payload(self) -> Dict[str, Any]:
        roots: List[Dict[str, Any]] = []
        for root in self.roots:
            entry: Dict[str, Any] = {"path": root.path, "allowed_exts": root.allowed_exts}
            if root.ignored_dirs:
                entry["ignored_dirs"] = root.ignored_dirs
            roots.append(entry)
        return {"roots": roots}


def normalize_str_list(value: Any) -> List[str]:
    if isinstance(value, str) and value.strip():
        return [value.strip()]
    if isinstance(value, list):
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return []


def normalize_exts(value: Any) -> List[str]:
    exts: List[str] = []
    for item in normalize_str_list(value):
        ext = normalize_ext(item)
        if ext and ext not in exts:
            exts.append(ext)
    return exts


def resolve_root_path(raw: str, base: Path) -> str:
    if not raw or raw == ".":
        return str(base)
    path = Path(raw)
    if not path.is_absolute():
        path = base / path
    return os.path.abspath(path)


def parse_config(payload: Dict[str, Any], base: Path) -> Config:
    roots: List[RootConfig] = []
    raw_roots = payload.get("roots")
    if not isinstance(raw_roots, list):
        return Config(roots=[])
    for item in raw_roots:
        if not isinstance(item, dict):
            continue
        raw_path = item.get("path")
        if not isinstance(raw_path, str):
            continue
        roots.append(
            RootConfig(
                path=resolve_root_path(raw_path, base),
                allowed_exts=normalize_exts(item.get("allowed_exts")),
                ignored_dirs=normalize_str_list(item.get("ignored_dirs")),
            )
        )
    return Config(roots=roots)


def migrate_legacy(payload: Dict[str, Any], base: Path) -> Optional[Config]:
    """Convert the single-root ``{"root_path", "allowed_exts"}`` layout."""
    if "allowed_exts" not in payload and "root_path" not in payload:
        return None
    raw_path = payload.get("root_path")
    root_path = resolve_root_path(raw_path if isinstance(raw_path, str) else "", base)
    return Config(roots=[RootConfig(path=root_path, allowed_exts=normalize_exts(payload.get("allowed_exts")))])


def detect_extensions(base: Path) -> List[str]:
    counts: Counter = Counter()
    for dirpath, dirnames, filenames in os.walk(base):
        dirnames[:] = [name for name in dirnames if not should_ignore_name(name)]
        for name in filenames:
            if should_ignore_name(name) or is_map_artifact(name) or name in NON_SOURCE_NAMES:
                continue
            suffix = Path(name).suffix.lower()
            if suffix:
                counts[suffix] += 1
    return sorted(counts)


def auto_setup(base: Path) -> Config:
    progress(f"Scanning {base} for file types...")
    exts = detect_extensions(base)
    progress(f"Watching extensions: {', '.join(exts) or '(none)'}", done=True)
    return Config(roots=[RootConfig(path=str(base), allowed_exts=exts, ignored_dirs=list(SETUP_IGNORED_DIRS))])


def save_config(path: Path, config: Config, warnings: List[str]) -> None:
    try:
        path.write_text(json.dumps(config.to_payload(), ensure_ascii=True, indent=2), encoding="utf-8")
    except OSError as exc:
        warnings.append(f"Failed to save {path.name}: {exc}")


def load_or_setup(base: Path, warnings: List[str]) -> Config:
    """Load ``codemap.json`` from ``base``; migrate the legacy layout or auto-configure when needed."""
    path = base / CONFIG_FILE
    payload: Any = None
    if path.exists():
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            warnings.append(f"Failed to parse {CONFIG_FILE}: {exc}")

    if isinstance(payload, dict):
        config = parse_config(payload, base)
        if config.roots:
            progress(f"Loaded config with {len(config.roots)} roots", done=True)
            return config
        migrated = migrate_legacy(payload, base)
        if migrated is not None:
            progress(f"Migrating legacy {CONFIG_FILE} to the roots layout", done=True)
            save_config(path, migrated, warnings)
            return migrated

    progress(f"No valid {CONFIG_FILE} found; auto-configuring")
    config = auto_setup(base)
    save_config(path, config, warnings)
    return config


def watch_key(path: str) -> str:
    """Comparison key for watched paths: absolute, cleaned and lower-cased."""
    return os.path.normcase(os.path.abspath(path)).lower()


def is_watched_under(path: str, directory: str) -> bool:
    key = watch_key(path)
    prefix = watch_key(directory)
    return key == prefix or key.startswith(prefix.rstrip(os.sep) + os.sep)


def load_watchlist(path: Path, warnings: List[str]) -> List[str]:
    """Absolute paths from ``watchlist.txt``, one per line; missing file means empty."""
    if not path.exists():
        return []
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        warnings.append(f"Failed to read {path.name}: {exc}")
        return []
    return [os.path.abspath(line.strip()) for line in text.split("\n") if line.strip()]


def merge_watchlist(previous: Iterable[str], files: Iterable[object]) -> List[str]:
    """Union of both lists deduplicated by ``watch_key``; entries whose file is gone are dropped."""
    merged: Dict[str, str] = {}
    for item in list(previous) + [str(item) for item in files]:
        path = os.path.abspath(item)
        if os.path.isfile(path):
            merged.setdefault(watch_key(path), path)
    return sorted(merged.values())


def save_watchlist(path: Path, entries: Iterable[str], warnings: List[str]) -> None:
    lines = sorted(entries)
    try:
        write_text(path, "".join(f"{line}\n" for line in lines))
    except OSError as exc:
        warnings.append(f"Failed to save {path.name}: {exc}")
