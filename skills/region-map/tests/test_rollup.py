import os
import sys
import tempfile
import unittest
from pathlib import Path
from typing import Dict, List
from unittest.mock import patch

sys.path.append(os.path.join(os.path.dirname(__file__), "../scripts"))

from region_map.cli.config import Config, RootConfig
from region_map.extractor import generate_map
from region_map.ir import FileMapRecord, Region, RegionKind
from region_map.rollup import (
    collect_target_dirs,
    estimate_tokens,
    generate_folder_maps,
    partition_watched,
    refresh_directory,
    write_level_maps,
)


def write_file(root: Path, rel_path: str, content: str) -> Path:
    full_path = root / rel_path
    full_path.parent.mkdir(parents=True, exist_ok=True)
    full_path.write_text(content, encoding="utf-8")
    return full_path


def read_level(directory: Path, level: int) -> str:
    return (directory / f"_level_{level}.map.txt").read_text(encoding="utf-8")


def build_tree(root: Path) -> List[Path]:
    files = [
        write_file(root, "main.go", "package main\n\nfunc main() {\n}\n"),
        write_file(root, "sub/util.go", "func Util() {\n}\n"),
    ]
    write_file(root, "notes.txt", "one\ntwo\n")
    write_file(root, "skipme/hidden.go", "func Hidden() {\n}\n")
    write_file(root, "node_modules/lib.js", "module.exports = {};\n")
    write_file(root, ".cache/x.go", "func X() {\n}\n")
    return files


def go_config(root: Path) -> Config:
    return Config(roots=[RootConfig(path=str(root), allowed_exts=[".go"], ignored_dirs=["skipme"])])


class TestGenerateFolderMaps(unittest.TestCase):
    def test_writes_four_levels_for_each_directory(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            files = build_tree(root)
            warnings: List[str] = []
            records: Dict[str, FileMapRecord] = {}
            for path in files:
                record = generate_map(path, warnings)
                records[str(path)] = record

            results = generate_folder_maps(go_config(root), files, warnings, records=records, workers=2)

            self.assertEqual([result.directory for result in results], sorted([str(root), str(root / "sub")]))
            for result in results:
                self.assertEqual(len(result.written), 4)
                self.assertGreater(result.tokens, 0)
            self.assertFalse((root / "skipme" / "_level_0.map.txt").exists())
            self.assertFalse((root / "node_modules" / "_level_0.map.txt").exists())
            self.assertFalse((root / ".cache" / "_level_0.map.txt").exists())
            self.assertEqual(warnings, [])

            inventory = read_level(root, 0)
            self.assertTrue(inventory.startswith(f"# LEVEL 0: INVENTORY - {root.name}\n"))
            self.assertIn("Name | Size | LOC | Modified", inventory)
            self.assertIn("main.go | 30 B | 4 |", inventory)
            self.assertIn("notes.txt | 8 B | 2 |", inventory)
            table = inventory.split("Name | Size | LOC | Modified")[1]
            self.assertNotIn(".map.txt", table)

            structure = read_level(root, 1)
            self.assertIn("### main.go\n|    3 |    4 | ƒ main\n", structure)
            self.assertNotIn("util.go", structure)
            self.assertNotIn("notes.txt", structure)

            hierarchy = read_level(root, 2)
            self.assertIn("- 📁 sub/", hierarchy)
            self.assertNotIn("skipme", hierarchy)
            self.assertNotIn("node_modules", hierarchy)

            deep = read_level(root, 3)
            self.assertIn("- 📄 main.go\n    |    3 |    4 | ƒ main\n", deep)
            self.assertIn("- notes.txt\n", deep)
            self.assertIn("- 📁 sub/\n  - 📄 util.go\n      |    1 |    2 | ƒ Util\n", deep)
            self.assertNotIn(".map.txt", deep)
            self.assertNotIn("hidden.go", deep)

            sub_structure = read_level(root / "sub", 1)
            self.assertIn("### util.go", sub_structure)

    def test_legacy_sidecar_is_rendered_canonically(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            source = write_file(root, "old.go", "func Old() {\n\n\n}\n")
            write_file(root, "old.go.map.txt", "1-4|ƒ Old\n7|📍 Tail\n")
            warnings: List[str] = []
            generate_folder_maps(go_config(root), [source], warnings)
            structure = read_level(root, 1)
            self.assertIn("### old.go\n|    1 |    4 | ƒ Old\n|    7 |    7 | 📍 Tail\n", structure)

    def test_in_memory_records_win_over_sidecars(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            source = write_file(root, "app.go", "func App() {\n}\n")
            write_file(root, "app.go.map.txt", "1-2|ƒ Stale\n")
            record = FileMapRecord(
                name="app.go",
                path=str(source),
                size=15,
                line_count=2,
                modified=0.0,
                regions=[Region(1, 2, RegionKind.FUNCTION, "Fresh")],
            )
            generate_folder_maps(go_config(root), [source], [], records={str(source): record})
            structure = read_level(root, 1)
            self.assertIn("ƒ Fresh", structure)
            self.assertNotIn("Stale", structure)

    def test_failing_directory_does_not_stop_others(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            files = build_tree(root)
            real_write = write_level_maps

            def flaky(directory, *args, **kwargs):
                if directory.endswith("sub"):
                    raise RuntimeError("disk full")
                return real_write(directory, *args, **kwargs)

            warnings: List[str] = []
            with patch("region_map.rollup.core.write_level_maps", side_effect=flaky):
                results = generate_folder_maps(go_config(root), files, warnings, workers=3)

            self.assertEqual(len(results), 2)
            self.assertTrue((root / "_level_3.map.txt").is_file())
            self.assertFalse((root / "sub" / "_level_0.map.txt").exists())
            self.assertEqual(len(warnings), 1)
            self.assertIn("disk full", warnings[0])

    def test_missing_root_is_a_warning(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            config = Config(roots=[RootConfig(path=os.path.join(temp_dir, "absent"), allowed_exts=[".go"])])
            warnings: List[str] = []
            self.assertEqual(collect_target_dirs(config, warnings), {})
            self.assertEqual(len(warnings), 1)


class TestPartitionAndRefresh(unittest.TestCase):
    def test_partition_groups_by_parent_directory(self):
        grouped = partition_watched(["/r/b.go", "/r/a.go", "/r/sub/c.go", "/r/a.go"])
        self.assertEqual(grouped["/r"], ("/r/a.go", "/r/b.go"))
        self.assertEqual(grouped["/r/sub"], ("/r/sub/c.go",))

    def test_refresh_directory_uses_only_its_own_files(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            files = build_tree(root)
            for path in files:
                generate_map(path, [])
            result = refresh_directory(str(root / "sub"), [str(path) for path in files], go_config(root))
            self.assertEqual(len(result.written), 4)
            structure = read_level(root / "sub", 1)
            self.assertIn("### util.go", structure)
            self.assertNotIn("main.go", structure)
            self.assertFalse((root / "_level_1.map.txt").exists())


class TestBudget(unittest.TestCase):
    def test_estimate_tokens(self):
        self.assertEqual(estimate_tokens(""), 0)
        self.assertEqual(estimate_tokens("func main() {}"), 6)


if __name__ == "__main__":
    unittest.main()
