import datetime as dt
import sys
import tempfile
import unittest
from pathlib import Path


# Allow `import extraction.*` when running from repo root.
APP_ROOT = Path(__file__).resolve().parents[1]
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))


from extraction import grid_ingest  # noqa: E402
from extraction.document_loader import (  # noqa: E402
    DocumentLoadError,
    UnsupportedFileType,
    extract_lines,
    get_file_type,
    load_tables,
)


class TestGridIngest(unittest.TestCase):
    def test_cell_text(self) -> None:
        self.assertEqual(grid_ingest.cell_text(None), "")
        self.assertEqual(grid_ingest.cell_text(12.0), "12")
        self.assertEqual(grid_ingest.cell_text(2.5), "2.5")
        self.assertEqual(grid_ingest.cell_text(dt.datetime(2024, 3, 1)), "2024-03-01")
        self.assertEqual(grid_ingest.cell_text("  x "), "x")

    def test_grid_to_table_pads_and_names_blank_headers(self) -> None:
        grid = [
            [None, None],
            ["Part", "", "Qty"],
            ["A", "x"],
            [None, None, None],
            ["B", "y", 3.0, "extra"],
        ]
        table = grid_ingest.grid_to_table(grid, "Sheet1")
        self.assertEqual(table.headers, ["Part", "Column 2", "Qty", "Column 4"])
        self.assertEqual(table.rows, [["A", "x", "", ""], ["B", "y", "3", "extra"]])

    def test_parse_csv_detects_semicolons_and_quotes(self) -> None:
        text = 'Part;Description;Qty\nA-1;"Bolt; hex";4\n\nB-2;Nut;5\n'
        (table,) = grid_ingest.parse_csv_text(text)
        self.assertEqual(table.section, "CSV Data")
        self.assertEqual(table.headers, ["Part", "Description", "Qty"])
        self.assertEqual(table.rows, [["A-1", "Bolt; hex", "4"], ["B-2", "Nut", "5"]])
        self.assertEqual(grid_ingest.parse_csv_text("   \n"), [])

    def test_detect_delimiter(self) -> None:
        self.assertEqual(grid_ingest.detect_delimiter("a\tb\tc"), "\t")
        self.assertEqual(grid_ingest.detect_delimiter("a;b,c;d"), ";")
        self.assertEqual(grid_ingest.detect_delimiter("abc"), ",")

    def test_parse_plain_text_modes(self) -> None:
        (kv,) = grid_ingest.parse_plain_text("Vendor: ACME\nPO: 1234\nfree text")
        self.assertEqual(kv.headers, ["Field", "Value"])
        self.assertEqual(kv.rows[-1], ["", "free text"])

        (tab,) = grid_ingest.parse_plain_text("Part\tQty\nA\t1\n")
        self.assertEqual(tab.headers, ["Part", "Qty"])
        self.assertEqual(tab.rows, [["A", "1"]])

        (lines,) = grid_ingest.parse_plain_text("first line\nsecond line")
        self.assertEqual(lines.headers, ["Line", "Content"])
        self.assertEqual(lines.rows, [["1", "first line"], ["2", "second line"]])


class TestDocumentLoader(unittest.TestCase):
    def test_file_types(self) -> None:
        self.assertEqual(get_file_type("a/b/Order.PDF"), "pdf")
        self.assertEqual(get_file_type("x.xlsm"), "excel")
        self.assertIsNone(get_file_type("x.xls"))

    def test_unsupported_and_missing_files(self) -> None:
        with self.assertRaises(UnsupportedFileType):
            load_tables("notes.xyz")
        with self.assertRaises(DocumentLoadError):
            load_tables("does_not_exist.csv")

    def test_load_csv_and_lines(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "order.csv"
            p.write_text("Part,Qty\nA,1\nB,2\n", encoding="utf-8")
            (table,) = load_tables(p)
            self.assertEqual(table.headers, ["Part", "Qty"])
            self.assertEqual(len(table.rows), 2)
            self.assertEqual(extract_lines(p), ["Part,Qty", "A,1", "B,2"])

    def test_load_xlsx(self) -> None:
        import openpyxl

        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "order.xlsx"
            wb = openpyxl.Workbook()
            ws = wb.active
            ws.title = "Lines"
            ws.append(["Part", "Qty"])
            ws.append(["A", 1])
            ws.append(["B", 2.0])
            wb.save(str(p))
            (table,) = load_tables(p)
            self.assertEqual(table.section, "Lines")
            self.assertEqual(table.rows, [["A", "1"], ["B", "2"]])


if __name__ == "__main__":
    unittest.main()
