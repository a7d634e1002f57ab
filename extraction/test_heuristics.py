import json
import sys
import tempfile
import unittest
from pathlib import Path


# Allow `import extraction.*` when running from repo root.
APP_ROOT = Path(__file__).resolve().parents[1]
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))


from comparison.record_differ import load_match_heuristics  # noqa: E402
from extraction.heuristics import load_heuristics, merge_cfg  # noqa: E402
from extraction.spatial_reconstructor import load_reconstruct_heuristics  # noqa: E402


class TestHeuristics(unittest.TestCase):
    def test_load_missing_invalid_and_wrong_version(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            self.assertEqual(load_heuristics(root / "nope.json"), {})

            bad = root / "bad.json"
            bad.write_text("{not json", encoding="utf-8")
            self.assertEqual(load_heuristics(bad), {})

            listed = root / "list.json"
            listed.write_text("[1, 2]", encoding="utf-8")
            self.assertEqual(load_heuristics(listed), {})

            v2 = root / "v2.json"
            v2.write_text(json.dumps({"version": 2, "fuzzy": {"enabled": False}}), encoding="utf-8")
            self.assertEqual(load_heuristics(v2), {})

    def test_both_loaders_read_the_same_file_format(self) -> None:
        data = {"version": 1, "fuzzy": {"min_similarity": 0.8}}
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "h.json"
            p.write_text(json.dumps(data), encoding="utf-8")
            self.assertEqual(load_heuristics(p), data)
            self.assertEqual(load_match_heuristics(p), data)
            self.assertEqual(load_reconstruct_heuristics(p), data)

    def test_merge_is_deep_and_ignores_none(self) -> None:
        defaults = {"version": 1, "fuzzy": {"enabled": True, "min_similarity": 0.6}}
        out = merge_cfg(defaults, {"fuzzy": {"min_similarity": 0.9, "enabled": None}, "extra": 3})
        self.assertEqual(out, {"version": 1, "fuzzy": {"enabled": True, "min_similarity": 0.9}, "extra": 3})
        # Defaults are copied, never mutated.
        out["fuzzy"]["enabled"] = False
        self.assertTrue(defaults["fuzzy"]["enabled"])
        self.assertEqual(merge_cfg(defaults, None), defaults)


if __name__ == "__main__":
    unittest.main()
