from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Dict, List


class RegionKind:
    FUNCTION = "function"
    CONTAINER = "container"
    INTERFACE = "interface"
    OBJECT = "object"
    BLOCK = "block"
    IMPORTS = "imports"
    VARIABLES = "variables"
    TEST_SUITE = "test_suite"
    TEST_CASE = "test_case"
    ROUTE = "route"
    STYLE = "style"
    ELEMENT = "element"
    DEPENDENCY = "dependency"
    MARKER = "marker"
    HEADING = "heading"
    FILE = "file"


# Kinds whose identifier qualifies nested functions and test cases.
CONTAINER_KINDS = {RegionKind.CONTAINER, RegionKind.INTERFACE, RegionKind.OBJECT}

# Single-line kinds that post-processing stretches over the following block.
POINT_KINDS = {RegionKind.MARKER, RegionKind.HEADING, RegionKind.DEPENDENCY}

KIND_SYMBOLS: Dict[str, str] = {
    RegionKind.FUNCTION: "ƒ",
    RegionKind.CONTAINER: "📦",
    RegionKind.INTERFACE: "📄",
    RegionKind.OBJECT: "🧱",
    RegionKind.BLOCK: "🧱",
    RegionKind.IMPORTS: "📥",
    RegionKind.VARIABLES: "🔨",
    RegionKind.TEST_SUITE: "🧪",
    RegionKind.TEST_CASE: "✓",
    RegionKind.ROUTE: "🛣️",
    RegionKind.STYLE: "🎨",
    RegionKind.DEPENDENCY: "🔗 depends on:",
    RegionKind.MARKER: "📍",
}


def now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


@dataclass
class Region:
    start: int
    end: int
    kind: str
    name: str
    detail: str = ""
    parent: str = ""

    @property
    def qualified_name(self) -> str:
        if not self.parent:
            return self.name
        if self.kind == RegionKind.TEST_CASE:
            return f"{self.parent} » {self.name}"
        return f"{self.parent}.{self.name}"

    def label(self) -> str:
        text = self.qualified_name
        if self.detail:
            text = f"{text} {self.detail}"
        symbol = KIND_SYMBOLS.get(self.kind)
        if symbol:
            return f"{symbol} {text}"
        return text

    def with_end(self, end: int) -> "Region":
        return replace(self, end=end)


@dataclass
class FileMapRecord:
    name: str
    path: str
    size: int
    line_count: int
    modified: float
    regions: List[Region] = field(default_factory=list)

    @property
    def size_kb(self) -> float:
        return self.size / 1024.0
