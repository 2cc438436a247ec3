import os
import sys
import tempfile
import unittest
from pathlib import Path
from typing import List

sys.path.append(os.path.join(os.path.dirname(__file__), "../scripts"))

from region_map._fs import count_lines
from region_map.extractor import MapRow, generate_map, parse_map_rows, read_map_rows, render_map, rows_from_record
from region_map.ir import FileMapRecord, Region, RegionKind


def write_file(root: Path, rel_path: str, content: str) -> Path:
    full_path = root / rel_path
    full_path.parent.mkdir(parents=True, exist_ok=True)
    full_path.write_text(content, encoding="utf-8")
    return full_path


class TestRenderMap(unittest.TestCase):
    def test_header_and_rows(self):
        record = FileMapRecord(
            name="app.js",
            path="/repo/app.js",
            size=2048,
            line_count=12,
            modified=0.0,
            regions=[
                Region(1, 12, RegionKind.CONTAINER, "App"),
                Region(3, 5, RegionKind.FUNCTION, "render", parent="App"),
            ],
        )
        lines = render_map(record).splitlines()
        self.assertEqual(lines[0], "File: app.js")
        self.assertEqual(lines[1], "Path: /repo/app.js")
        self.assertEqual(lines[2], "Size: 2.00 KB")
        self.assertEqual(lines[3], "LOC: 12")
        self.assertTrue(lines[4].startswith("Modified: "))
        self.assertEqual(lines[5], "-" * 50)
        self.assertEqual(lines[6], "|    1 |   12 | 📦 App")
        self.assertEqual(lines[7], "|    3 |    5 | ƒ App.render")

    def test_record_without_regions_spans_file(self):
        record = FileMapRecord(name="a.txt", path="/a.txt", size=0, line_count=0, modified=0.0)
        self.assertTrue(render_map(record).endswith("|    1 |    1 | (Entire File)\n"))
        self.assertEqual(rows_from_record(record), [MapRow(1, 1, "(Entire File)")])


class TestParseMapRows(unittest.TestCase):
    def test_current_format_round_trips_labels(self):
        record = FileMapRecord(
            name="x.go",
            path="/x.go",
            size=10,
            line_count=9,
            modified=0.0,
            regions=[
                Region(1, 3, RegionKind.IMPORTS, "Imports"),
                Region(2, 2, RegionKind.DEPENDENCY, "fmt"),
                Region(5, 9, RegionKind.FUNCTION, "main"),
            ],
        )
        rows = parse_map_rows(render_map(record))
        self.assertEqual(rows, rows_from_record(record))

    def test_legacy_range_rows(self):
        text = "\n".join(
            [
                "File: old.js",
                "Path: /repo/old.js",
                "Size: 1.00 KB",
                "LOC: 40",
                "Modified: 2020-01-01 10:00:00",
                "-" * 50,
                "1-40|📦 Legacy",
                "7|📍 Setup",
                "12 - 20 | ƒ Legacy.run",
            ]
        )
        rows = parse_map_rows(text)
        self.assertEqual(
            rows,
            [
                MapRow(1, 40, "📦 Legacy"),
                MapRow(7, 7, "📍 Setup"),
                MapRow(12, 20, "ƒ Legacy.run"),
            ],
        )
        self.assertEqual(rows[1].render(), "|    7 |    7 | 📍 Setup")

    def test_headerless_legacy_file(self):
        rows = parse_map_rows("3-9|ƒ helper\n")
        self.assertEqual(rows, [MapRow(3, 9, "ƒ helper")])

    def test_unparseable_bounds_render_as_question_marks(self):
        rows = parse_map_rows("-----\n| x | y | odd\n")
        self.assertEqual(rows, [MapRow(None, None, "odd")])
        self.assertEqual(rows[0].render("  "), "  |    ? |    ? | odd")


class TestGenerateMap(unittest.TestCase):
    def test_writes_sidecar_next_to_source(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            source = write_file(root, "pkg/util.py", "def helper():\n    return 1\n")
            warnings: List[str] = []
            record = generate_map(source, warnings)
            self.assertIsNotNone(record)
            sidecar = root / "pkg" / "util.py.map.txt"
            self.assertTrue(sidecar.is_file())
            self.assertEqual(read_map_rows(sidecar), [MapRow(1, 2, "ƒ helper")])
            self.assertEqual(record.line_count, 2)
            self.assertEqual(warnings, [])

    def test_regeneration_overwrites_sidecar(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            source = write_file(root, "a.go", "func A() {\n}\n")
            generate_map(source, [])
            source.write_text("func B() {\n}\n", encoding="utf-8")
            generate_map(source, [])
            rows = read_map_rows(root / "a.go.map.txt")
            self.assertEqual(rows, [MapRow(1, 2, "ƒ B")])

    def test_line_count_matches_newline_count(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            source = write_file(root, "page.py", "x = 1\n\x0c\ndef f():\n    return 1\n")
            record = generate_map(source, [])
            self.assertEqual(record.line_count, count_lines(source))
            self.assertEqual(record.line_count, 4)
            self.assertEqual(read_map_rows(root / "page.py.map.txt"), [MapRow(3, 4, "ƒ f")])

    def test_map_artifacts_are_not_mapped(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            sidecar = write_file(Path(temp_dir), "a.go.map.txt", "File: a.go\n")
            self.assertIsNone(generate_map(sidecar, []))
            self.assertFalse((Path(temp_dir) / "a.go.map.txt.map.txt").exists())

    def test_missing_source_is_a_warning(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            warnings: List[str] = []
            self.assertIsNone(generate_map(Path(temp_dir) / "gone.go", warnings))
            self.assertEqual(len(warnings), 1)
            self.assertIn("gone.go", warnings[0])

    def test_read_missing_sidecar_returns_none(self):
        warnings: List[str] = []
        self.assertIsNone(read_map_rows(Path("/nonexistent/x.map.txt"), warnings))
        self.assertEqual(len(warnings), 1)


if __name__ == "__main__":
    unittest.main()
