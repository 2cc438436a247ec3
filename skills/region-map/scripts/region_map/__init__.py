"""Heuristic region maps and per-directory rollups."""
