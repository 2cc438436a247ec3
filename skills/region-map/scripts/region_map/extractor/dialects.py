"""Per-language detection table.

Each dialect pairs an ordered list of detectors (first accepted match wins)
with the closure rule its scopes use. Adding a language means adding one
``Dialect`` entry to ``DIALECTS``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from region_map.ir import RegionKind

from .constants import JS_KEYWORDS, STRUCTURAL_TAGS
from .scopes import BRACE, INDENT, PAREN, POINT, TAG


@dataclass(frozen=True)
class Candidate:
    kind: str
    name: str
    detail: str = ""
    closer: str = BRACE
    indent: int = 0
    tag: str = ""
    # Offset just past the opening token, used for same-line closing tags.
    open_end: int = 0
    # Expression-bodied constructs end on the line that opens them.
    single_line: bool = False


Builder = Callable[[re.Match[str], str], Optional[Candidate]]


@dataclass(frozen=True)
class Detector:
    pattern: re.Pattern[str]
    build: Builder

    def detect(self, line: str) -> Optional[Candidate]:
        match = self.pattern.search(line)
        if not match:
            return None
        return self.build(match, line)


@dataclass(frozen=True)
class Dialect:
    name: str
    extensions: Tuple[str, ...]
    closure: str
    detectors: Tuple[Detector, ...] = ()
    dependencies: Tuple[re.Pattern[str], ...] = ()
    # Matches a bare dependency line inside an open imports block.
    block_dependency: Optional[re.Pattern[str]] = None
    markers: Tuple[re.Pattern[str], ...] = ()
    fence: Optional[re.Pattern[str]] = None

    @property
    def counts_depth(self) -> bool:
        return self.closure == BRACE

    def detect(self, line: str) -> Optional[Candidate]:
        for detector in self.detectors:
            candidate = detector.detect(line)
            if candidate is not None:
                return candidate
        return None

    def dependency(self, line: str, *, in_imports: bool = False) -> Optional[str]:
        patterns = self.dependencies
        if in_imports and self.block_dependency is not None:
            patterns = patterns + (self.block_dependency,)
        for pattern in patterns:
            match = pattern.search(line)
            if not match:
                continue
            for group in match.groups():
                if group:
                    return group.strip()
        return None

    def marker(self, line: str) -> Optional[str]:
        """Return the cleaned marker label, "" for an empty marker, None when absent."""
        for pattern in self.markers:
            match = pattern.match(line)
            if match:
                return match.group("label").strip().strip("=- \t")
        return None


def named(kind: str, closer: str = BRACE, detail: str = "") -> Builder:
    def build(match: re.Match[str], line: str) -> Optional[Candidate]:
        name = match.group(1)
        if not name:
            return None
        return Candidate(kind=kind, name=name.strip(), detail=detail, closer=closer)

    return build


def fixed(kind: str, name: str, closer: str = BRACE, detail: str = "") -> Builder:
    def build(match: re.Match[str], line: str) -> Optional[Candidate]:
        return Candidate(kind=kind, name=name, detail=detail, closer=closer)

    return build


def indented(kind: str) -> Builder:
    def build(match: re.Match[str], line: str) -> Optional[Candidate]:
        return Candidate(
            kind=kind,
            name=match.group("name"),
            closer=INDENT,
            indent=len(match.group("indent")),
        )

    return build


def declaration(kind: str) -> Builder:
    """Like ``named`` but rejects forward declarations ending in ``;``."""

    def build(match: re.Match[str], line: str) -> Optional[Candidate]:
        if line.rstrip().endswith(";"):
            return None
        return Candidate(kind=kind, name=match.group(1))

    return build


def js_method(match: re.Match[str], line: str) -> Optional[Candidate]:
    name = match.group(1)
    if name in JS_KEYWORDS:
        return None
    return Candidate(kind=RegionKind.FUNCTION, name=name)


def js_route(match: re.Match[str], line: str) -> Optional[Candidate]:
    return Candidate(
        kind=RegionKind.ROUTE,
        name=f"{match.group(1).upper()} {match.group(2)}",
        closer=PAREN,
    )


def arrow_function(match: re.Match[str], line: str) -> Optional[Candidate]:
    name = match.group(1)
    body = line[match.end() :].strip()
    if not body or body.startswith("{"):
        return Candidate(kind=RegionKind.FUNCTION, name=name)
    if body.startswith("("):
        return Candidate(kind=RegionKind.FUNCTION, name=name, closer=PAREN)
    return Candidate(kind=RegionKind.FUNCTION, name=name, single_line=True)


def go_type(match: re.Match[str], line: str) -> Optional[Candidate]:
    return Candidate(kind=RegionKind.CONTAINER, name=match.group(1), detail=f"({match.group(2)})")


def rust_type(match: re.Match[str], line: str) -> Optional[Candidate]:
    if line.rstrip().endswith(";"):
        return None
    return Candidate(kind=RegionKind.CONTAINER, name=match.group(2), detail=f"({match.group(1)})")


def css_rule(match: re.Match[str], line: str) -> Optional[Candidate]:
    return Candidate(kind=RegionKind.STYLE, name=match.group(1).strip())


def heading(match: re.Match[str], line: str) -> Optional[Candidate]:
    text = match.group(2).strip()
    if not text:
        return None
    return Candidate(kind=RegionKind.HEADING, name=text, closer=POINT)


ID_ATTR_RE = re.compile(r"""id=["']([^"']+)["']""")
CLASS_ATTR_RE = re.compile(r"""class=["']([^"']+)["']""")


def markup_element(match: re.Match[str], line: str) -> Optional[Candidate]:
    open_tag = match.group(1)
    if not open_tag or open_tag.lower() not in STRUCTURAL_TAGS:
        return None
    detail = ""
    id_match = ID_ATTR_RE.search(line)
    class_match = CLASS_ATTR_RE.search(line)
    if id_match:
        detail = "#" + id_match.group(1)
    elif class_match and class_match.group(1).split():
        detail = "." + class_match.group(1).split()[0]
    return Candidate(
        kind=RegionKind.ELEMENT,
        name=f"<{open_tag}>",
        detail=detail,
        closer=TAG,
        tag=open_tag.lower(),
        open_end=match.end(),
    )


SLASH_MARKER_RE = re.compile(r"^\s*//\s*(?:(\d+)\.|#region|={3})\s*(?P<label>.*)$")
HASH_MARKER_RE = re.compile(r"^\s*#\s*(?:(\d+)\.|region\b|={3})\s*(?P<label>.*)$")
MARKDOWN_HEADING_RE = re.compile(r"^(#+)\s+(.*)$")
MARKDOWN_FENCE_RE = re.compile(r"^\s*(```|~~~)")
HTML_TAG_RE = re.compile(r"<\s*([a-zA-Z0-9-]+)\b([^>]*)>|<\s*/\s*([a-zA-Z0-9-]+)\s*>")


GO = Dialect(
    name="go",
    extensions=(".go",),
    closure=BRACE,
    detectors=(
        Detector(
            re.compile(r"^func\s+(?:\([^)]+\)\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*[\[(]"),
            named(RegionKind.FUNCTION),
        ),
        Detector(
            re.compile(r"^type\s+([A-Za-z_][A-Za-z0-9_]*)(?:\[[^\]]*\])?\s+(struct|interface)"),
            go_type,
        ),
        Detector(re.compile(r"^import\s*\("), fixed(RegionKind.IMPORTS, "Imports", PAREN)),
        Detector(re.compile(r"^const\s*\("), fixed(RegionKind.BLOCK, "Const", PAREN)),
        Detector(re.compile(r"^var\s*\("), fixed(RegionKind.VARIABLES, "Var", PAREN)),
    ),
    dependencies=(re.compile(r"""^\s*import\s*(?:\(\s*)?(?:[\w.]+\s+)?["']([^"']+)["']"""),),
    block_dependency=re.compile(r"""^\s*(?:[\w.]+\s+)?"([^"]+)"\s*$"""),
    markers=(SLASH_MARKER_RE,),
)

JAVASCRIPT = Dialect(
    name="javascript",
    extensions=(".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs"),
    closure=BRACE,
    detectors=(
        Detector(
            re.compile(r"^(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*([a-zA-Z0-9_$]+)\s*[(<]"),
            named(RegionKind.FUNCTION),
        ),
        Detector(
            re.compile(r"^(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+([a-zA-Z0-9_$]+)"),
            named(RegionKind.CONTAINER),
        ),
        Detector(
            re.compile(
                r"^(?:export\s+)?(?:const|let|var)\s+([a-zA-Z0-9_$]+)\s*(?::[^=]+)?=\s*(?:async\s*)?"
                r"(?:\([^)]*\)|[a-zA-Z0-9_$]+)\s*(?::[^=]+)?=>"
            ),
            arrow_function,
        ),
        Detector(
            re.compile(r"^(?:export\s+)?interface\s+([a-zA-Z0-9_$]+)"),
            named(RegionKind.INTERFACE),
        ),
        Detector(
            re.compile(r"""^\s*(?:describe|context|suite)(?:\.\w+)?\s*\(\s*["'`]([^"'`]+)["'`]"""),
            named(RegionKind.TEST_SUITE, PAREN),
        ),
        Detector(
            re.compile(r"""^\s*(?:it|test)(?:\.\w+)?\s*\(\s*["'`]([^"'`]+)["'`]"""),
            named(RegionKind.TEST_CASE, PAREN),
        ),
        Detector(
            re.compile(r"^(?:export\s+)?(?:const|let|var)\s+([a-zA-Z0-9_$]+)\s*(?::[^=]+)?=\s*\{"),
            named(RegionKind.OBJECT),
        ),
        Detector(
            re.compile(r"^export\s+default\s*\{"),
            fixed(RegionKind.CONTAINER, "default", detail="export"),
        ),
        Detector(
            re.compile(r"""^(?:router|app)\.(get|post|put|delete|patch|use)\s*\(\s*["']([^"']+)["']"""),
            js_route,
        ),
        Detector(
            re.compile(
                r"^\s*(?:(?:public|private|protected|static|readonly|override)\s+)*(?:async\s+)?"
                r"(?:get\s+|set\s+)?\*?([a-zA-Z0-9_$]+)\s*\([^)]*\)\s*(?::\s*[^{]+)?\{"
            ),
            js_method,
        ),
        Detector(
            re.compile(r"^\s*([a-zA-Z0-9_$]+)\s*:\s*(?:async\s+)?function\s*\*?\s*\("),
            named(RegionKind.FUNCTION),
        ),
        Detector(
            re.compile(r"^\s*([a-zA-Z0-9_$]+)\s*:\s*(?:async\s+)?(?:\([^)]*\)|[a-zA-Z0-9_$]+)\s*=>"),
            arrow_function,
        ),
    ),
    dependencies=(
        re.compile(r"""^\s*(?:import|export)\s+(?:.*?\s+from\s+)?["']([^"']+)["']"""),
        re.compile(r"""^\s*(?:(?:const|let|var)\s+.+?=\s*)?require\s*\(\s*["']([^"']+)["']"""),
    ),
    markers=(SLASH_MARKER_RE,),
)

JAVA = Dialect(
    name="java",
    extensions=(".java", ".cs"),
    closure=BRACE,
    detectors=(
        Detector(
            re.compile(
                r"^\s*(?:(?:public|protected|private|internal|static|final|abstract|sealed|partial)\s+)*"
                r"(?:class|interface|enum|record|struct)\s+([a-zA-Z0-9_]+)"
            ),
            named(RegionKind.CONTAINER),
        ),
        Detector(
            re.compile(
                r"^\s*(?:public|protected|private|internal)\s+"
                r"(?:(?:static|final|abstract|synchronized|override|virtual|async)\s+)*"
                r"[\w<>\[\],.?]+\s+([a-zA-Z0-9_]+)\s*\("
            ),
            declaration(RegionKind.FUNCTION),
        ),
    ),
    dependencies=(
        re.compile(r"^\s*import\s+(?:static\s+)?([\w.*]+)\s*;"),
        re.compile(r"^\s*using\s+(?:static\s+)?([\w.]+)\s*;"),
    ),
    markers=(SLASH_MARKER_RE,),
)


RUST = Dialect(
    name="rust",
    extensions=(".rs",),
    closure=BRACE,
    detectors=(
        Detector(
            re.compile(
                r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:(?:async|unsafe|const)\s+)*"
                r"(?:extern\s+\"[^\"]*\"\s+)?fn\s+([a-zA-Z0-9_]+)"
            ),
            declaration(RegionKind.FUNCTION),
        ),
        Detector(
            re.compile(r"^\s*(?:pub(?:\([^)]*\))?\s+)?(struct|enum|trait)\s+([a-zA-Z0-9_]+)"),
            rust_type,
        ),
        Detector(
            re.compile(r"^\s*impl(?:<[^>]*>)?\s+(?:[\w:<>, ]+?\s+for\s+)?([a-zA-Z0-9_]+)"),
            named(RegionKind.CONTAINER, detail="(impl)"),
        ),
    ),
    dependencies=(re.compile(r"^\s*(?:pub\s+)?use\s+([\w:]+)"),),
    markers=(SLASH_MARKER_RE,),
)

CSS = Dialect(
    name="css",
    extensions=(".css", ".scss", ".less"),
    closure=BRACE,
    detectors=(Detector(re.compile(r"^\s*([^{}]+?)\s*\{\s*$"), css_rule),),
    dependencies=(re.compile(r"""@import\s*(?:url\s*\(\s*)?["']?([^"')\s;]+)["']?"""),),
    markers=(SLASH_MARKER_RE,),
)

PYTHON = Dialect(
    name="python",
    extensions=(".py",),
    closure=INDENT,
    detectors=(
        Detector(
            re.compile(r"^(?P<indent>\s*)(?:async\s+)?def\s+(?P<name>[a-zA-Z0-9_]+)\s*\("),
            indented(RegionKind.FUNCTION),
        ),
        Detector(
            re.compile(r"^(?P<indent>\s*)class\s+(?P<name>[a-zA-Z0-9_]+)"),
            indented(RegionKind.CONTAINER),
        ),
    ),
    dependencies=(
        re.compile(r"^\s*from\s+([\w.]+)\s+import\b"),
        re.compile(r"^\s*import\s+([\w.]+)"),
    ),
    markers=(SLASH_MARKER_RE, HASH_MARKER_RE),
)

MARKUP = Dialect(
    name="markup",
    extensions=(".html", ".htm", ".xml", ".vue", ".php"),
    closure=TAG,
    detectors=(Detector(HTML_TAG_RE, markup_element),),
    dependencies=(
        re.compile(r"""<\s*script\s+[^>]*src=["']([^"']+)["']"""),
        re.compile(
            r"""<\s*link\s+[^>]*href=["']([^"']+)["'][^>]*rel=["']stylesheet["']"""
            r"""|<\s*link\s+[^>]*rel=["']stylesheet["'][^>]*href=["']([^"']+)["']"""
        ),
    ),
    markers=(SLASH_MARKER_RE,),
)

MARKDOWN = Dialect(
    name="markdown",
    extensions=(".md", ".markdown"),
    closure=POINT,
    detectors=(Detector(MARKDOWN_HEADING_RE, heading),),
    fence=MARKDOWN_FENCE_RE,
)

PLAIN = Dialect(name="plain", extensions=(), closure=POINT, markers=(SLASH_MARKER_RE,))

DIALECTS: Tuple[Dialect, ...] = (GO, JAVASCRIPT, JAVA, RUST, CSS, PYTHON, MARKUP, MARKDOWN)

_BY_EXTENSION: Dict[str, Dialect] = {
    ext: dialect for dialect in DIALECTS for ext in dialect.extensions
}


def dialect_for(ext: str) -> Dialect:
    """Dialect registered for ``ext``; unknown extensions only get manual markers."""
    return _BY_EXTENSION.get(ext.lower(), PLAIN)
