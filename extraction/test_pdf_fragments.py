import sys
import tempfile
import unittest
from pathlib import Path


# Allow `import extraction.*` when running from repo root.
APP_ROOT = Path(__file__).resolve().parents[1]
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))


from extraction import pdf_fragments  # noqa: E402
from extraction.document_loader import load_tables  # noqa: E402


def _write_order_pdf(path: Path) -> None:
    import fitz

    doc = fitz.open()
    page = doc.new_page()
    rows = [
        (60, ["Line", "Part", "Qty"]),
        (80, ["1", "BOLT-10", "10"]),
        (100, ["2", "NUT-5", "5"]),
        (120, ["3", "WASHER", "20"]),
    ]
    for y, cells in rows:
        for x, text in zip((50, 150, 300), cells):
            page.insert_text((x, y), text, fontsize=10)
    doc.save(str(path))
    doc.close()


@unittest.skipUnless(pdf_fragments.HAVE_FITZ, "PyMuPDF not installed")
class TestPdfFragments(unittest.TestCase):
    def test_fragments_and_table_from_text_layer(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "order.pdf"
            _write_order_pdf(p)

            pages = pdf_fragments.extract_fragments(p)
            self.assertEqual(len(pages), 1)
            texts = {f.text for f in pages[0]}
            self.assertIn("BOLT-10", texts)
            self.assertTrue(all(f.page == 1 for f in pages[0]))

            (table,) = load_tables(p)
            self.assertEqual(table.section, "order")
            self.assertEqual(table.headers, ["Line", "Part", "Qty"])
            self.assertEqual(table.rows[0], ["1", "BOLT-10", "10"])
            self.assertEqual(len(table.rows), 3)

            lines = pdf_fragments.extract_page_lines(p)
            self.assertEqual(lines[0], "[Page 1]")

    def test_bad_file_raises(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "broken.pdf"
            p.write_bytes(b"not a pdf")
            with self.assertRaises(pdf_fragments.PdfTextError):
                pdf_fragments.extract_fragments(p)


if __name__ == "__main__":
    unittest.main()
