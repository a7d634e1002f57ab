"""
Generic table normalizer: merge a file's tables, unify header sets across
files and re-project rows onto the unified headers.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from extraction.models import LogicalTable, pad_row


def header_key(header: str) -> str:
    """Case/whitespace-insensitive identity of a header."""
    return re.sub(r"\s+", " ", str(header or "").lower()).strip()


def merge_tables(tables: Sequence[LogicalTable]) -> Tuple[List[str], List[List[str]]]:
    """
    Concatenate all rows of one file under the widest header set.

    Shorter rows are padded with "". Ties on width keep the earliest table.
    """
    if not tables:
        return [], []
    best = tables[0].headers
    for t in tables:
        if len(t.headers) > len(best):
            best = t.headers
    width = len(best)
    rows: List[List[str]] = []
    for t in tables:
        for row in t.rows:
            rows.append(pad_row(row, width))
    return list(best), rows


def unify_headers(header_sets: Sequence[Sequence[str]]) -> List[str]:
    headers: List[str] = []
    seen: set[str] = set()
    for header_set in header_sets:
        for h in header_set:
            k = header_key(h)
            if k in seen:
                continue
            seen.add(k)
            headers.append(h)
    return headers


def column_mapping(original_headers: Sequence[str], unified_headers: Sequence[str]) -> List[Optional[int]]:
    """For each original column, its index in the unified header list (or None)."""
    positions = {}
    for idx, h in enumerate(unified_headers):
        positions.setdefault(header_key(h), idx)
    return [positions.get(header_key(h)) for h in original_headers]


def normalize_rows(
    rows: Sequence[Sequence[str]],
    original_headers: Sequence[str],
    unified_headers: Sequence[str],
) -> List[List[str]]:
    mapping = column_mapping(original_headers, unified_headers)
    out: List[List[str]] = []
    for row in rows:
        new_row = [""] * len(unified_headers)
        for i, target in enumerate(mapping):
            if target is None or i >= len(row):
                continue
            value = "" if row[i] is None else str(row[i])
            # Duplicate headers within one file: the first filled column wins.
            if not new_row[target]:
                new_row[target] = value
        out.append(new_row)
    return out
