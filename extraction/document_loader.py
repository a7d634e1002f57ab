"""
Document Loader - Route an input file to the right extractor

PDF goes through fragment extraction + spatial reconstruction; spreadsheets,
delimited text, Word and plain text are read as ready-made grids.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

from . import grid_ingest
from . import pdf_fragments
from .models import LogicalTable
from .spatial_reconstructor import load_reconstruct_heuristics, reconstruct_table


FILE_TYPES: dict[str, str] = {
    ".pdf": "pdf",
    ".xlsx": "excel",
    ".xlsm": "excel",
    ".csv": "csv",
    ".docx": "word",
    ".txt": "text",
    ".json": "text",
    ".xml": "text",
    ".md": "text",
    ".log": "text",
}


class UnsupportedFileType(ValueError):
    pass


class DocumentLoadError(RuntimeError):
    pass


def get_file_type(path: Path | str) -> Optional[str]:
    return FILE_TYPES.get(Path(str(path)).suffix.lower())


def accepted_extensions() -> str:
    return ",".join(FILE_TYPES)


def _require_type(path: Path) -> str:
    kind = get_file_type(path)
    if kind is None:
        raise UnsupportedFileType(f"Unsupported file type: {path.name}")
    if not path.exists():
        raise DocumentLoadError(f"File not found: {path}")
    return kind


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="ignore")


def load_tables(
    path: Path | str,
    cfg: dict[str, Any] | None = None,
    *,
    verbose: bool = False,
) -> List[LogicalTable]:
    """
    Parse one document into LogicalTables.

    Args:
        path: Input document
        cfg: Reconstruction heuristics for PDFs (default: user_inputs file)
        verbose: Print progress

    Raises:
        UnsupportedFileType: unknown extension
        DocumentLoadError: the file could not be read
    """
    p = Path(path)
    kind = _require_type(p)
    if verbose:
        print(f"[INFO] Parsing {p.name} ({kind})")

    try:
        if kind == "pdf":
            pages = pdf_fragments.extract_fragments(p, verbose=verbose)
            heuristics = cfg if cfg is not None else load_reconstruct_heuristics()
            return [reconstruct_table(pages, heuristics, section=p.stem, verbose=verbose)]
        if kind == "excel":
            return grid_ingest.read_xlsx_tables(p)
        if kind == "csv":
            return grid_ingest.parse_csv_text(_read_text(p))
        if kind == "word":
            return grid_ingest.read_docx_tables(p)
        return grid_ingest.parse_plain_text(_read_text(p))
    except (UnsupportedFileType, DocumentLoadError):
        raise
    except Exception as e:
        raise DocumentLoadError(f"Failed to parse {p.name}: {type(e).__name__}: {e}") from e


def extract_lines(path: Path | str) -> List[str]:
    """Plain lines for the line-by-line diff mode."""
    p = Path(path)
    kind = _require_type(p)
    try:
        if kind == "pdf":
            return pdf_fragments.extract_page_lines(p)
        if kind == "excel":
            return grid_ingest.read_xlsx_lines(p)
        if kind == "word":
            return grid_ingest.docx_paragraph_lines(p)
        return _read_text(p).splitlines()
    except Exception as e:
        raise DocumentLoadError(f"Failed to read {p.name}: {type(e).__name__}: {e}") from e
