from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

from region_map.ir import CONTAINER_KINDS, Region

BRACE = "brace"
PAREN = "paren"
INDENT = "indent"
TAG = "tag"
POINT = "point"


@dataclass
class OpenScope:
    region: Region
    depth: int
    closer: str
    tag: str = ""
    qualifier: str = ""


class ScopeStack:
    """Regions waiting for their closing line, innermost last."""

    def __init__(self) -> None:
        self._items: List[OpenScope] = []

    def __len__(self) -> int:
        return len(self._items)

    def push(self, scope: OpenScope) -> None:
        self._items.append(scope)

    def pop(self) -> OpenScope:
        return self._items.pop()

    def peek(self) -> Optional[OpenScope]:
        if not self._items:
            return None
        return self._items[-1]

    def close_innermost(self, should_close: Callable[[OpenScope], bool]) -> List[OpenScope]:
        """Pop scopes from the innermost outward while ``should_close`` holds."""
        closed: List[OpenScope] = []
        while self._items and should_close(self._items[-1]):
            closed.append(self._items.pop())
        return closed

    def nearest_container(self) -> str:
        for scope in reversed(self._items):
            if scope.region.kind in CONTAINER_KINDS:
                return scope.region.name
        return ""

    def drain(self) -> List[OpenScope]:
        closed = list(reversed(self._items))
        self._items.clear()
        return closed
