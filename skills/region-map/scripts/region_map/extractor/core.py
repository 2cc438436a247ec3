from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from region_map.ir import POINT_KINDS, Region, RegionKind

from .constants import ENTIRE_FILE_LABEL
from .dialects import Candidate, Dialect, dialect_for
from .scopes import BRACE, INDENT, PAREN, TAG, OpenScope, ScopeStack


@dataclass
class ExtractResult:
    regions: List[Region]
    line_count: int
    warnings: List[str] = field(default_factory=list)


def leading_width(line: str) -> int:
    return len(line) - len(line.lstrip())


def whole_file_region(line_count: int) -> Region:
    return Region(start=1, end=max(1, line_count), kind=RegionKind.FILE, name=ENTIRE_FILE_LABEL)


def split_lines(content: str) -> List[str]:
    """Split on ``\\n`` only so numbering agrees with ``count_lines``.

    ``str.splitlines`` also breaks on form feeds and Unicode separators,
    which would shift every later region.
    """
    if not content:
        return []
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def extract_regions(content: str, ext: str) -> ExtractResult:
    """Detect named regions in ``content``; never raises.

    A failure inside the heuristics degrades to one region spanning the file.
    """
    lines = split_lines(content)
    line_count = len(lines)
    try:
        regions = scan_lines(lines, dialect_for(ext))
        return ExtractResult(finalize_regions(regions, line_count), line_count)
    except Exception as exc:
        return ExtractResult(
            [whole_file_region(line_count)],
            line_count,
            [f"Region extraction failed for {ext or 'no extension'}: {exc}"],
        )


def scope_closes(scope: OpenScope, line: str, brace: int, paren: int) -> bool:
    if scope.closer == BRACE:
        return brace <= scope.depth and "}" in line
    if scope.closer == PAREN:
        return paren <= scope.depth and ")" in line
    if scope.closer == INDENT:
        return bool(line.strip()) and leading_width(line) <= scope.depth
    if scope.closer == TAG:
        return f"</{scope.tag}>" in line.lower()
    return False


def closes_on_open_line(scope: OpenScope, candidate: Candidate, line: str, brace: int, paren: int) -> bool:
    if candidate.single_line:
        return True
    if scope.closer == BRACE:
        opened = line.find("{")
        if opened < 0:
            # Bodiless declarations such as overload signatures.
            return line.rstrip().endswith(";")
        return opened >= 0 and line.rfind("}") > opened and brace <= scope.depth
    if scope.closer == PAREN:
        opened = line.find("(")
        return opened >= 0 and line.rfind(")") > opened and paren <= scope.depth
    if scope.closer == TAG:
        return f"</{scope.tag}>" in line[candidate.open_end :].lower()
    return False


def scan_lines(lines: Sequence[str], dialect: Dialect) -> List[Region]:
    stack = ScopeStack()
    regions: List[Region] = []
    brace = 0
    paren = 0
    last_content = 0
    in_fence = False

    for number, line in enumerate(lines, start=1):
        brace_before, paren_before = brace, paren
        if dialect.counts_depth:
            brace += line.count("{") - line.count("}")
            paren += line.count("(") - line.count(")")

        for scope in stack.close_innermost(lambda s: scope_closes(s, line, brace, paren)):
            # Indented blocks end on their last content line, not on the dedent.
            end = last_content if scope.closer == INDENT else number
            regions.append(scope.region.with_end(max(end, scope.region.start)))

        if line.strip():
            last_content = number

        if dialect.fence is not None and dialect.fence.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue

        label = dialect.marker(line)
        if label is not None:
            if label:
                regions.append(Region(number, number, RegionKind.MARKER, label))
            continue

        candidate = dialect.detect(line)
        if candidate is not None and candidate.kind in POINT_KINDS:
            regions.append(Region(number, number, candidate.kind, candidate.name))
            continue

        innermost = stack.peek()
        in_imports = innermost is not None and innermost.region.kind == RegionKind.IMPORTS
        dependency = dialect.dependency(line, in_imports=in_imports)
        if dependency:
            regions.append(Region(number, number, RegionKind.DEPENDENCY, dependency))

        if candidate is None:
            continue

        if candidate.closer == BRACE:
            depth = brace_before
        elif candidate.closer == PAREN:
            depth = paren_before
        else:
            depth = candidate.indent

        qualifier = ""
        if candidate.kind in (RegionKind.FUNCTION, RegionKind.TEST_CASE):
            qualifier = stack.nearest_container()

        scope = OpenScope(
            region=Region(
                start=number,
                end=number,
                kind=candidate.kind,
                name=candidate.name,
                detail=candidate.detail,
                parent=qualifier,
            ),
            depth=depth,
            closer=candidate.closer,
            tag=candidate.tag,
            qualifier=qualifier,
        )
        stack.push(scope)
        if closes_on_open_line(scope, candidate, line, brace, paren):
            regions.append(stack.pop().region)

    final_line = len(lines)
    for scope in stack.drain():
        regions.append(scope.region.with_end(max(final_line, scope.region.start)))
    return regions


def finalize_regions(regions: List[Region], line_count: int) -> List[Region]:
    """Sort by start, stretch point regions over their block, clamp inverted ranges."""
    ordered = sorted(regions, key=lambda region: region.start)
    finalized: List[Region] = []
    for index, region in enumerate(ordered):
        end = region.end
        if region.kind in POINT_KINDS and region.start == region.end:
            if index + 1 < len(ordered):
                next_start = ordered[index + 1].start
                if next_start > region.start:
                    end = next_start - 1
            else:
                end = line_count
        if end < region.start:
            end = region.start
        finalized.append(region.with_end(end))
    if not finalized:
        finalized.append(whole_file_region(line_count))
    return finalized
