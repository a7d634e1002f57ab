"""
PDF Fragments - Positioned text runs from a PDF text layer (no OCR)

Reads span-level text with PyMuPDF and returns PositionedFragments grouped by
page, ready for the spatial reconstructor. Coordinates are PDF points with y
growing down the page.
"""

from pathlib import Path
from typing import List, Optional, Sequence

try:
    import fitz  # PyMuPDF
    HAVE_FITZ = True
except ImportError:
    HAVE_FITZ = False

from .models import PositionedFragment


class PdfTextError(RuntimeError):
    pass


def page_fragments(page, page_number: int) -> List[PositionedFragment]:
    """Collect non-blank spans of one fitz page."""
    out: List[PositionedFragment] = []
    tdict = page.get_text("dict")
    for block in tdict.get("blocks", []):
        if block.get("type", 0) != 0:
            continue
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                text = str(span.get("text", "")).strip()
                if not text:
                    continue
                x0, y0, x1, _y1 = span.get("bbox", (0.0, 0.0, 0.0, 0.0))
                out.append(
                    PositionedFragment(
                        x=round(float(x0), 2),
                        y=round(float(y0), 2),
                        width=round(max(0.0, float(x1) - float(x0)), 2),
                        text=text,
                        page=int(page_number),
                    )
                )
    return out


def extract_fragments(
    pdf_path: Path,
    pages: Optional[Sequence[int]] = None,
    *,
    verbose: bool = False,
) -> List[List[PositionedFragment]]:
    """
    Extract fragments for each page.

    Args:
        pdf_path: Path to PDF file
        pages: Optional 0-indexed page numbers (default: all pages)

    Returns:
        One fragment list per processed page (page numbers are 1-indexed).
    """
    if not HAVE_FITZ:
        raise PdfTextError("PyMuPDF (fitz) is not installed")

    try:
        doc = fitz.open(str(pdf_path))
    except Exception as e:
        raise PdfTextError(f"Cannot open PDF {Path(pdf_path).name}: {e}") from e

    per_page: List[List[PositionedFragment]] = []
    try:
        indices = list(pages) if pages is not None else list(range(len(doc)))
        for page_num in indices:
            if page_num < 0 or page_num >= len(doc):
                continue
            frags = page_fragments(doc[page_num], page_num + 1)
            if verbose:
                print(f"  - Page {page_num + 1}: {len(frags)} text fragments")
            per_page.append(frags)
    finally:
        doc.close()
    return per_page


def extract_page_lines(pdf_path: Path) -> List[str]:
    """Plain text lines with `[Page N]` markers, for line-diff mode."""
    if not HAVE_FITZ:
        raise PdfTextError("PyMuPDF (fitz) is not installed")
    lines: List[str] = []
    with fitz.open(str(pdf_path)) as doc:
        for idx, page in enumerate(doc, start=1):
            text = page.get_text("text")
            if not text.strip():
                continue
            lines.append(f"[Page {idx}]")
            lines.extend(text.splitlines())
    return lines
