import sys
import unittest
from pathlib import Path


# Allow `import comparison.*` when running from repo root.
APP_ROOT = Path(__file__).resolve().parents[1]
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))


from comparison.models import STATUS_IDENTICAL, STATUS_MISSING, STATUS_MODIFIED  # noqa: E402
from comparison.record_differ import (  # noqa: E402
    compare_across_files,
    compare_tables,
    resolve_key_column,
    suggest_key_column,
)
from extraction.models import LogicalTable  # noqa: E402


def _t(headers, rows, section="Sheet"):
    return LogicalTable(section=section, headers=list(headers), rows=[list(r) for r in rows])


class TestRecordDiffer(unittest.TestCase):
    def _assert_partition(self, result) -> None:
        s = result.summary
        self.assertEqual(s.identical + s.modified + s.missing, s.total_items)
        self.assertEqual(s.total_items, len(result.rows))

    def test_two_files_identical_modified_missing(self) -> None:
        a = [_t(["Part", "Qty"], [["Bolt", "10"], ["Nut", "5"], ["Washer", "20"]])]
        b = [_t(["Part", "Qty"], [["Bolt", "12"], ["Nut", "5"]])]
        headers, rows, summary = compare_across_files([a, b], 0)

        self.assertEqual(headers, ["Part", "Qty"])
        self.assertEqual([r.status for r in rows], [STATUS_MISSING, STATUS_MODIFIED, STATUS_IDENTICAL])
        self.assertEqual([r.key_value for r in rows], ["washer", "bolt", "nut"])

        washer = rows[0]
        self.assertEqual(washer.present_in, [0])
        self.assertEqual(washer.missing_from, [1])
        self.assertEqual(washer.cell("Qty").values, ["20", None])
        self.assertTrue(washer.cell("Qty").changed)

        bolt = rows[1]
        self.assertFalse(bolt.cell("Part").changed)
        self.assertTrue(bolt.cell("Qty").changed)
        self.assertEqual(bolt.cell("Qty").values, ["10", "12"])

        self.assertEqual(summary.total_items, 3)
        self.assertEqual((summary.identical, summary.modified, summary.missing), (1, 1, 1))
        self.assertEqual(summary.match_score, 33)
        self.assertEqual(summary.missing_per_file, [0, 1])

    def test_fuzzy_rescue_merges_near_identical_keys(self) -> None:
        a = [_t(["Part", "Qty"], [["Beam-12", "4"]])]
        b = [_t(["Part", "Qty"], [["Beam-1Z", "4"]])]
        result = compare_across_files([a, b], 0)
        self.assertEqual(len(result.rows), 1)
        rec = result.rows[0]
        self.assertEqual(rec.key_value, "beam-12")
        self.assertEqual(rec.present_in, [0, 1])
        self.assertEqual(rec.status, STATUS_MODIFIED)
        self.assertEqual(rec.cell("Part").values, ["Beam-12", "Beam-1Z"])
        self.assertFalse(rec.cell("Qty").changed)

    def test_fuzzy_rescue_can_be_disabled(self) -> None:
        a = [_t(["Part"], [["Beam-12"]])]
        b = [_t(["Part"], [["Beam-1Z"]])]
        result = compare_across_files([a, b], 0, {"fuzzy": {"enabled": False}})
        self.assertEqual([r.status for r in result.rows], [STATUS_MISSING, STATUS_MISSING])
        self.assertEqual(result.summary.match_score, 0)

    def test_fuzzy_never_joins_rows_of_one_file(self) -> None:
        a = [_t(["Part"], [["Beam-12"], ["Beam-13"]])]
        b = [_t(["Part"], [["Nut"]])]
        result = compare_across_files([a, b], 0)
        self.assertEqual(sorted(r.key_value for r in result.rows), ["beam-12", "beam-13", "nut"])
        for rec in result.rows:
            self.assertEqual(rec.status, STATUS_MISSING)
        self._assert_partition(result)

    def test_fuzzy_group_takes_one_row_per_file(self) -> None:
        a = [_t(["Part"], [["Beam-12"]])]
        b = [_t(["Part"], [["Beam-1Z"], ["Beam-13"]])]
        result = compare_across_files([a, b], 0)
        by_key = {r.key_value: r for r in result.rows}
        self.assertEqual(set(by_key), {"beam-12", "beam-13"})
        self.assertEqual(by_key["beam-12"].cell("Part").values, ["Beam-12", "Beam-1Z"])
        self.assertEqual(by_key["beam-13"].missing_from, [0])

    def test_three_files_presence_and_missing_per_file(self) -> None:
        a = [_t(["Part", "Qty"], [["X1", "1"], ["Y", "2"]])]
        b = [_t(["Part", "Qty"], [["X1", "1"]])]
        c = [_t(["Part", "Qty"], [["x1 ", "1"], ["Y", "3"]])]
        result = compare_across_files([a, b, c], 0)
        by_key = {r.key_value: r for r in result.rows}
        self.assertEqual(by_key["x1"].status, STATUS_MODIFIED)
        self.assertEqual(by_key["y"].status, STATUS_MISSING)
        self.assertEqual(by_key["y"].present_in, [0, 2])
        self.assertEqual(by_key["y"].missing_from, [1])
        self.assertEqual(by_key["y"].cell("Qty").values, ["2", None, "3"])
        self.assertEqual(result.summary.missing_per_file, [0, 1, 0])
        self._assert_partition(result)

    def test_column_absent_from_one_file(self) -> None:
        a = [_t(["Part", "Qty"], [["Bolt", "1"]])]
        b = [_t(["part", "QTY", "Price"], [["Bolt", "1", "1.50"]])]
        result = compare_across_files([a, b], 0)
        self.assertEqual(result.headers, ["Part", "Qty", "Price"])
        rec = result.rows[0]
        self.assertEqual(rec.cell("Price").values, ["", "1.50"])
        self.assertTrue(rec.cell("Price").changed)
        self.assertFalse(rec.cell("Qty").changed)
        self.assertEqual(rec.status, STATUS_MODIFIED)

    def test_value_in_column_other_file_lacks_is_a_modification(self) -> None:
        a = [_t(["Item", "Qty", "Color"], [["Bolt", "10", "Red"]])]
        b = [_t(["Item", "Qty"], [["Bolt", "10"]])]
        result = compare_across_files([a, b], 0)
        self.assertEqual(result.headers, ["Item", "Qty", "Color"])
        rec = result.rows[0]
        self.assertEqual(rec.status, STATUS_MODIFIED)
        self.assertEqual(rec.cell("Color").values, ["Red", ""])
        self.assertTrue(rec.cell("Color").changed)
        self.assertEqual(result.summary.modified, 1)
        self.assertEqual(result.summary.match_score, 0)

    def test_empty_column_other_file_lacks_stays_identical(self) -> None:
        a = [_t(["Item", "Qty", "Notes"], [["Bolt", "10", ""]])]
        b = [_t(["Item", "Qty"], [["Bolt", "10"]])]
        result = compare_across_files([a, b], 0)
        rec = result.rows[0]
        self.assertEqual(rec.cell("Notes").values, ["", ""])
        self.assertEqual(rec.status, STATUS_IDENTICAL)
        self.assertEqual(result.summary.match_score, 100)

    def test_first_row_wins_and_empty_keys_are_skipped(self) -> None:
        a = [_t(["Part", "Qty"], [["Bolt", "10"], ["BOLT", "11"], ["", "7"]])]
        b = [_t(["Part", "Qty"], [["bolt", "10"]])]
        result = compare_across_files([a, b], 0)
        self.assertEqual(len(result.rows), 1)
        self.assertEqual(result.rows[0].cell("Qty").values, ["10", "10"])
        self.assertEqual(result.rows[0].cell("Part").values, ["Bolt", "bolt"])
        self.assertEqual(result.rows[0].status, STATUS_MODIFIED)

    def test_tables_of_one_file_are_merged(self) -> None:
        a = [_t(["Part"], [["A"]], "p1"), _t(["Part", "Qty"], [["B", "2"]], "p2")]
        b = [_t(["Part", "Qty"], [["A", ""], ["B", "2"]])]
        result = compare_across_files([a, b], 0)
        self.assertEqual(result.summary.identical, 2)

    def test_empty_input_scores_100(self) -> None:
        result = compare_across_files([[], []], 0)
        self.assertEqual(result.headers, [])
        self.assertEqual(result.rows, [])
        self.assertEqual(result.summary.total_items, 0)
        self.assertEqual(result.summary.match_score, 100)
        self.assertEqual(result.summary.missing_per_file, [0, 0])

    def test_key_column_index_is_clamped(self) -> None:
        a = [_t(["Qty", "Part"], [["1", "Bolt"]])]
        b = [_t(["Qty", "Part"], [["2", "Bolt"]])]
        result = compare_across_files([a, b], 99)
        self.assertEqual(result.rows[0].key_value, "bolt")
        self.assertEqual(result.rows[0].status, STATUS_MODIFIED)

    def test_compare_tables_two_file_form(self) -> None:
        a = [_t(["Part"], [["A"]])]
        b = [_t(["Part"], [["A"]])]
        self.assertEqual(compare_tables(a, b).summary.match_score, 100)

    def test_match_score_rounds_half_up(self) -> None:
        a = [_t(["Part", "Qty"], [[f"P{i}", "1"] for i in range(8)])]
        b = [_t(["Part", "Qty"], [["P0", "1"]] + [[f"P{i}", "2"] for i in range(1, 8)])]
        # 1 identical out of 8 = 12.5%
        self.assertEqual(compare_across_files([a, b], 0).summary.match_score, 13)


class TestKeyColumn(unittest.TestCase):
    def test_suggest_key_column(self) -> None:
        self.assertEqual(suggest_key_column(["Line", "Part Number", "Qty"]), 1)
        self.assertEqual(suggest_key_column(["Qty", "Item"]), 1)
        self.assertEqual(suggest_key_column(["Qty", "Price"]), 0)

    def test_resolve_key_column(self) -> None:
        headers = ["Line", "Part Number", "Qty"]
        self.assertEqual(resolve_key_column(headers, "qty"), 2)
        self.assertEqual(resolve_key_column(headers, "0"), 0)
        self.assertEqual(resolve_key_column(headers, None), 1)
        with self.assertRaises(ValueError):
            resolve_key_column(headers, "Price")


if __name__ == "__main__":
    unittest.main()
