#!/usr/bin/env python3
"""Region mapper CLI: write per-file region maps and per-directory rollups."""

from __future__ import annotations

import argparse
import os
import sys
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from region_map._fs import WATCHLIST_FILE, is_mappable_source, normalize_ext, should_ignore_name
from region_map.extractor import cleanup_maps, deep_clean, generate_map
from region_map.ir import FileMapRecord
from region_map.rollup import DEFAULT_FOLDER_WORKERS, configure_tokenizer, generate_folder_maps, refresh_directory
from region_map.utils import progress, report_warnings
from .config import (
    Config,
    is_watched_under,
    load_or_setup,
    load_watchlist,
    merge_watchlist,
    save_watchlist,
    watch_key,
)

ALWAYS_PRUNED_DIRS = {".git", "node_modules"}


def resolve_target(raw: str) -> Optional[Path]:
    try:
        target = Path(os.path.abspath(raw))
    except (OSError, ValueError) as exc:
        print(f"Invalid directory: {raw} ({exc})", file=sys.stderr)
        return None
    if not target.is_dir():
        print(f"Invalid directory: {target}", file=sys.stderr)
        return None
    return target


def discover_files(target: Path, config: Config, exts: Set[str], warnings: List[str]) -> List[Path]:
    ignored: List[str] = []
    for root in config.roots:
        ignored.extend(root.ignored_dirs)
    files: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(target, onerror=lambda exc: warnings.append(str(exc))):
        dirnames[:] = sorted(
            name
            for name in dirnames
            if name not in ALWAYS_PRUNED_DIRS and not should_ignore_name(name, ignored)
        )
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.suffix.lower() in exts and is_mappable_source(path):
                files.append(path)
    return files


def map_files(files: Iterable[Path], warnings: List[str]) -> Dict[str, FileMapRecord]:
    records: Dict[str, FileMapRecord] = {}
    for path in files:
        record = generate_map(path, warnings)
        if record is not None:
            records[str(path)] = record
    return records


def run_scan(args: argparse.Namespace) -> int:
    target = resolve_target(args.directory)
    if target is None:
        return 1
    warnings: List[str] = []
    start = time.time()
    configure_tokenizer(args.precise_tokens, warnings)
    config_dir = Path(os.path.abspath(args.config_dir))
    config = load_or_setup(config_dir, warnings)
    watchlist_path = config_dir / WATCHLIST_FILE
    previous = load_watchlist(watchlist_path, warnings)

    if args.full:
        for root in config.roots:
            deep_clean(Path(root.path), warnings)
    if args.prune:
        cleanup_maps(config, warnings)

    exts = {normalize_ext(args.ext)} if args.ext else config.allowed_exts()
    progress(f"Scanning {target}...")
    files = discover_files(target, config, exts, warnings)
    pending = files
    if args.new:
        known = {watch_key(path) for path in previous}
        pending = [path for path in files if watch_key(str(path)) not in known]
    progress(f"Found {len(pending)} files to map", done=True)

    records = map_files(pending, warnings)
    watched = merge_watchlist(previous, files)
    save_watchlist(watchlist_path, watched, warnings)
    results = generate_folder_maps(config, watched, warnings, records=records, workers=args.workers)

    tokens = sum(result.tokens for result in results)
    elapsed = time.time() - start
    print(
        f"Mapped {len(records)} files and {len(results)} directories in {elapsed:.2f}s "
        f"(level maps ~{tokens} tokens)"
    )
    report_warnings(warnings, max_items=args.max_warnings)
    return 0


def run_clean(args: argparse.Namespace) -> int:
    target = resolve_target(args.directory)
    if target is None:
        return 1
    warnings: List[str] = []
    removed = deep_clean(target, warnings)
    watchlist_path = Path(os.path.abspath(args.config_dir)) / WATCHLIST_FILE
    if watchlist_path.exists():
        entries = load_watchlist(watchlist_path, warnings)
        kept = [entry for entry in entries if not is_watched_under(entry, str(target))]
        if len(kept) != len(entries):
            save_watchlist(watchlist_path, kept, warnings)
    print(f"Workspace cleaned: removed {removed} map files")
    report_warnings(warnings, max_items=args.max_warnings)
    return 0


def run_refresh(args: argparse.Namespace) -> int:
    target = resolve_target(args.directory)
    if target is None:
        return 1
    warnings: List[str] = []
    config_dir = Path(os.path.abspath(args.config_dir))
    config = load_or_setup(config_dir, warnings)
    watchlist = load_watchlist(config_dir / WATCHLIST_FILE, warnings)
    result = refresh_directory(str(target), watchlist, config)
    warnings.extend(result.warnings)
    print(f"Refreshed {len(result.written)} level maps in {target} (~{result.tokens} tokens)")
    report_warnings(warnings, max_items=args.max_warnings)
    return 0


def run_prune(args: argparse.Namespace) -> int:
    warnings: List[str] = []
    config = load_or_setup(Path(os.path.abspath(args.config_dir)), warnings)
    removed = cleanup_maps(config, warnings)
    print(f"Removed {removed} obsolete map files")
    report_warnings(warnings, max_items=args.max_warnings)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Heuristic region maps for LLM-friendly code navigation")
    parser.add_argument(
        "--config-dir",
        default=".",
        help="Directory holding codemap.json (default: .)",
    )
    parser.add_argument("--max-warnings", type=int, default=30, help="Warnings shown after a run")

    subparsers = parser.add_subparsers(dest="command")

    scan_parser = subparsers.add_parser("scan", help="Map files and write folder rollups")
    scan_parser.add_argument("directory", nargs="?", default=".", help="Directory to scan (default: .)")
    scan_parser.add_argument("--ext", default=None, help="Only map files with this extension")
    mode = scan_parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--full",
        action="store_true",
        help="Deep clean every root before scanning",
    )
    mode.add_argument(
        "--new",
        action="store_true",
        help=f"Only map files missing from {WATCHLIST_FILE}",
    )
    scan_parser.add_argument(
        "--prune",
        action="store_true",
        help="Remove orphaned maps before scanning",
    )
    scan_parser.add_argument(
        "--workers",
        type=int,
        default=DEFAULT_FOLDER_WORKERS,
        help=f"Parallel folder-map workers (default: {DEFAULT_FOLDER_WORKERS})",
    )
    scan_parser.add_argument(
        "--precise-tokens",
        action="store_true",
        help="Use tiktoken for the level-map token estimate",
    )

    clean_parser = subparsers.add_parser("clean", help="Remove every .map.txt under a directory")
    clean_parser.add_argument("directory", nargs="?", default=".", help="Directory to clean (default: .)")

    subparsers.add_parser("prune", help="Remove maps whose source is gone or no longer watched")

    refresh_parser = subparsers.add_parser(
        "refresh",
        help="Rewrite one directory's level maps from existing sidecars",
    )
    refresh_parser.add_argument("directory", nargs="?", default=".", help="Directory to refresh (default: .)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "scan":
        return run_scan(args)
    if args.command == "clean":
        return run_clean(args)
    if args.command == "prune":
        return run_prune(args)
    if args.command == "refresh":
        return run_refresh(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
