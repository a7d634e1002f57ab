"""
Sub-field extraction for free-text description cells.

Fabrication/line-item documents often pack attributes into the description,
e.g. ``Hex bolt | Mark: A1 | Grade: 8``. Each catalog entry names an output
column and the labels that introduce it; the value runs up to the next pipe.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence, Tuple


DEFAULT_CATALOG: List[Dict[str, Any]] = [
    {"header": "Mark", "labels": ["piece mark", "mark no", "mark #", "mark"]},
    {"header": "Punch", "labels": ["punch code", "punch"]},
    {"header": "Bend", "labels": ["bend dimensions", "bend dims", "bends", "bend"]},
    {"header": "Finish", "labels": ["finish"]},
    {"header": "Grade", "labels": ["grade"]},
]


def compile_catalog(catalog: Optional[Sequence[Dict[str, Any]]] = None) -> List[Tuple[str, "re.Pattern[str]"]]:
    """Return [(header, pattern)] with group 1 capturing the value."""
    out: List[Tuple[str, re.Pattern[str]]] = []
    for entry in catalog if catalog is not None else DEFAULT_CATALOG:
        if not isinstance(entry, dict):
            continue
        header = str(entry.get("header") or "").strip()
        labels = [str(lbl).strip() for lbl in (entry.get("labels") or []) if str(lbl).strip()]
        if not header or not labels:
            continue
        # Longest label first so "mark no" wins over "mark".
        labels.sort(key=len, reverse=True)
        alts = "|".join(re.escape(lbl).replace(r"\ ", r"\s+") for lbl in labels)
        out.append((header, re.compile(rf"(?<![\w])(?:{alts})\s*:\s*([^|]*)", re.IGNORECASE)))
    return out


def find_description_column(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> Optional[int]:
    for idx, h in enumerate(headers):
        if "description" in str(h or "").lower():
            return idx
    if not headers or not rows:
        return None
    best_idx = None
    best_avg = 0.0
    for idx in range(len(headers)):
        total = sum(len(str(r[idx] if idx < len(r) else "").strip()) for r in rows)
        avg = total / float(len(rows))
        if avg > best_avg:
            best_idx, best_avg = idx, avg
    return best_idx


def collapse_separators(text: str) -> str:
    s = re.sub(r"\|(\s*\|)+", "|", str(text or ""))
    s = re.sub(r"\s*\|\s*", " | ", s)
    s = s.strip(" |\t")
    return re.sub(r"\s{2,}", " ", s).strip()


def _match_value(pattern: "re.Pattern[str]", text: str) -> Optional[re.Match[str]]:
    for m in pattern.finditer(text):
        if m.group(1).strip():
            return m
    return None


def extract_subfields(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    catalog: Optional[Sequence[Dict[str, Any]]] = None,
    *,
    description_col: Optional[int] = None,
) -> Tuple[List[str], List[List[str]], List[str]]:
    """
    Pull catalog sub-fields out of the description column.

    Returns (headers, rows, added_headers). Only catalog entries that match at
    least one row produce a column; matched fragments are removed from the
    description text.
    """
    out_headers = list(headers)
    out_rows = [list(r) for r in rows]
    added: List[str] = []
    if not out_rows:
        return out_headers, out_rows, added

    col = description_col if description_col is not None else find_description_column(out_headers, out_rows)
    if col is None or col >= len(out_headers):
        return out_headers, out_rows, added

    for header, pattern in compile_catalog(catalog):
        values: List[str] = []
        hit = False
        for row in out_rows:
            text = row[col] if col < len(row) else ""
            m = _match_value(pattern, text)
            if m is None:
                values.append("")
                continue
            hit = True
            values.append(m.group(1).strip())
            row[col] = collapse_separators(text[: m.start()] + " | " + text[m.end():])
        if not hit:
            continue
        out_headers.append(header)
        added.append(header)
        for row, value in zip(out_rows, values):
            row.append(value)
    return out_headers, out_rows, added
