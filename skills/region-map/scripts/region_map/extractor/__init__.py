from __future__ import annotations

from .cleanup import cleanup_maps, deep_clean, is_orphan, reconcile_root, remove_level_maps
from .constants import ENTIRE_FILE_LABEL, STRUCTURAL_TAGS
from .core import ExtractResult, extract_regions, finalize_regions, scan_lines
from .dialects import DIALECTS, Candidate, Detector, Dialect, dialect_for
from .mapfile import (
    MapRow,
    build_record,
    generate_map,
    parse_map_rows,
    read_map_rows,
    render_map,
    render_rows,
    rows_from_record,
)
from .scopes import BRACE, INDENT, PAREN, POINT, TAG, OpenScope, ScopeStack
