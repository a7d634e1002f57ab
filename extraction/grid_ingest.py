"""
Grid Ingest - Header + row grids from spreadsheets, delimited and plain text

These sources already carry their column structure, so they skip spatial
reconstruction and go straight to LogicalTables.
"""

from __future__ import annotations

import csv
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence

from .models import LogicalTable


_KV_LINE_RE = re.compile(r"^([^:]+):\s*(.+)$")


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, datetime):
        if value.hour == 0 and value.minute == 0 and value.second == 0 and value.microsecond == 0:
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def grid_to_table(grid: Iterable[Sequence[Any]], section: str) -> Optional[LogicalTable]:
    """
    First non-blank row is the header row. Blank header cells become
    "Column N"; rows are padded to the widest row. Fully blank rows are dropped.
    """
    rows = [[cell_text(v) for v in row] for row in grid]
    rows = [r for r in rows if any(c.strip() for c in r)]
    if not rows:
        return None
    width = max(len(r) for r in rows)
    headers = [h or f"Column {idx + 1}" for idx, h in enumerate(rows[0])]
    while len(headers) < width:
        headers.append(f"Column {len(headers) + 1}")
    body = []
    for r in rows[1:]:
        body.append(r + [""] * (width - len(r)))
    return LogicalTable(section=section, headers=headers, rows=body)


# =============================================================================
# Spreadsheets (openpyxl)
# =============================================================================

def read_xlsx_tables(path: Path) -> List[LogicalTable]:
    """One table per non-empty worksheet, named after the sheet."""
    from openpyxl import load_workbook

    wb = load_workbook(str(path), read_only=True, data_only=True)
    try:
        tables: List[LogicalTable] = []
        for ws in wb.worksheets:
            table = grid_to_table(ws.iter_rows(values_only=True), ws.title)
            if table is not None:
                tables.append(table)
        return tables
    finally:
        wb.close()


def read_xlsx_lines(path: Path) -> List[str]:
    from openpyxl import load_workbook

    wb = load_workbook(str(path), read_only=True, data_only=True)
    lines: List[str] = []
    try:
        for ws in wb.worksheets:
            lines.append(f"[Sheet: {ws.title}]")
            for row in ws.iter_rows(values_only=True):
                lines.append("\t".join(cell_text(v) for v in row))
            lines.append("")
    finally:
        wb.close()
    return lines


# =============================================================================
# Delimited text
# =============================================================================

def detect_delimiter(first_line: str) -> str:
    comma = first_line.count(",")
    tab = first_line.count("\t")
    semi = first_line.count(";")
    if tab > comma and tab > semi:
        return "\t"
    if semi > comma:
        return ";"
    return ","


def parse_csv_text(text: str, section: str = "CSV Data") -> List[LogicalTable]:
    lines = [ln for ln in str(text or "").splitlines() if ln.strip()]
    if not lines:
        return []
    delimiter = detect_delimiter(lines[0])
    grid = [[c.strip() for c in row] for row in csv.reader(lines, delimiter=delimiter)]
    table = grid_to_table(grid, section)
    return [table] if table is not None else []


# =============================================================================
# Plain text
# =============================================================================

def _tab_table(lines: List[str], section: str) -> Optional[LogicalTable]:
    return grid_to_table(([c.strip() for c in ln.split("\t")] for ln in lines), section)


def parse_plain_text(text: str, section: str = "Text Data") -> List[LogicalTable]:
    """
    Tab-separated lines become a grid; mostly "label: value" lines become a
    Field/Value table; anything else is numbered line by line.
    """
    lines = [ln for ln in str(text or "").splitlines() if ln.strip()]
    if not lines:
        return []

    tab_lines = sum(1 for ln in lines if "\t" in ln)
    if tab_lines > len(lines) * 0.3:
        table = _tab_table(lines, section)
        return [table] if table is not None else []

    kv_lines = sum(1 for ln in lines if _KV_LINE_RE.match(ln))
    if kv_lines > len(lines) * 0.4:
        rows = []
        for ln in lines:
            m = _KV_LINE_RE.match(ln)
            rows.append([m.group(1).strip(), m.group(2).strip()] if m else ["", ln.strip()])
        return [LogicalTable(section=section, headers=["Field", "Value"], rows=rows)]

    rows = [[str(idx), ln.strip()] for idx, ln in enumerate(lines, start=1)]
    return [LogicalTable(section=section, headers=["Line", "Content"], rows=rows)]


# =============================================================================
# Word documents (python-docx)
# =============================================================================

def docx_paragraph_lines(path: Path) -> List[str]:
    from docx import Document

    doc = Document(str(path))
    return [p.text for p in doc.paragraphs]


def read_docx_tables(path: Path) -> List[LogicalTable]:
    """Native Word tables first; otherwise fall back to paragraph text."""
    from docx import Document

    doc = Document(str(path))
    tables: List[LogicalTable] = []
    for idx, tbl in enumerate(doc.tables, start=1):
        grid = [[cell.text.strip() for cell in row.cells] for row in tbl.rows]
        table = grid_to_table(grid, f"Table {idx}")
        if table is not None:
            tables.append(table)
    if tables:
        return tables

    lines = [p.text for p in doc.paragraphs if p.text.strip()]
    if not lines:
        return []
    tab_lines = sum(1 for ln in lines if "\t" in ln)
    if tab_lines > len(lines) * 0.3:
        table = _tab_table(lines, "Document")
        return [table] if table is not None else []
    return [LogicalTable(section="Document", headers=["Content"], rows=[[ln.strip()] for ln in lines])]
