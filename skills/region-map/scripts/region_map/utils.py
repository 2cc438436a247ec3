from __future__ import annotations

import sys
from typing import Iterable, List


def progress(message: str, done: bool = False) -> None:
    """Print a progress message to stderr (doesn't interfere with stdout output)."""
    if done:
        print(f"  [done] {message}", file=sys.stderr)
    else:
        print(f"  [....] {message}", file=sys.stderr)


def report_warnings(warnings: Iterable[str], max_items: int = 30) -> List[str]:
    """Print collected warnings to stderr, capped at ``max_items``; return the printed ones."""
    items = list(warnings)
    if not items:
        return []
    shown = items[:max_items]
    print(f"WARNINGS ({len(items)}):", file=sys.stderr)
    for warning in shown:
        print(f"  {warning}", file=sys.stderr)
    if len(items) > len(shown):
        print(f"  ... {len(items) - len(shown)} more", file=sys.stderr)
    return shown
