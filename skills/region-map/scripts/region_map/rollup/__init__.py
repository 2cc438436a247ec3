from __future__ import annotations

from .budget import configure_tokenizer, estimate_tokens
from .core import (
    DEFAULT_FOLDER_WORKERS,
    LevelMapResult,
    collect_target_dirs,
    generate_folder_maps,
    partition_watched,
    refresh_directory,
    write_level_maps,
)
from .levels import (
    deep_structure_lines,
    hierarchy_lines,
    inventory_lines,
    region_rows,
    structure_lines,
    walk_tree,
)
