"""
Record Differ - Key-based comparison of tables across 2..N files

Pipeline:
1. Per file: merge all tables under the widest header set
2. Unify headers across files (first spelling wins) and re-project rows
3. Key map per file (normalized key -> first row with that key)
4. Fuzzy rescue: keys seen in only one file are aliased onto the most similar
   key from other files (bigram Dice, union-find)
5. Per record: presence, per-column cells, status
6. Sort (missing, modified, identical) and summarize
"""

from __future__ import annotations

import math
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from extraction.heuristics import load_heuristics, merge_cfg
from extraction.models import LogicalTable

from .alias_resolver import AliasResolver
from .models import (
    STATUS_IDENTICAL,
    STATUS_MISSING,
    STATUS_MODIFIED,
    STATUS_ORDER,
    ComparedCell,
    ComparedRecord,
    ComparisonResult,
    ComparisonSummary,
)
from .similarity import best_match, normalize_key
from .table_normalizer import header_key, merge_tables, normalize_rows, unify_headers


_REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_MATCH_HEURISTICS_PATH = _REPO_ROOT / "user_inputs" / "match_heuristics.json"

_KEY_HINTS = ("item", "part", "part number", "part no", "sku", "code", "id", "name", "product", "material")


_DEFAULT_CFG: dict[str, Any] = {
    "version": 1,
    "fuzzy": {
        "enabled": True,
        "min_similarity": 0.6,
    },
}


def default_heuristics_path() -> Path:
    env = str(os.environ.get("COMPARE_MATCH_HEURISTICS", "") or "").strip()
    return Path(env) if env else DEFAULT_MATCH_HEURISTICS_PATH


def load_match_heuristics(path: Optional[Path] = None) -> dict[str, Any]:
    """Record matching heuristics from `path` (default: user_inputs file); {} on missing/invalid."""
    return load_heuristics(path if path is not None else default_heuristics_path())


def _cfg(cfg: dict[str, Any] | None) -> dict[str, Any]:
    return merge_cfg(_DEFAULT_CFG, cfg)


# =============================================================================
# Key column helpers
# =============================================================================

def suggest_key_column(headers: Sequence[str]) -> int:
    """Index of the first header that names a record identifier (default 0)."""
    for idx, h in enumerate(headers):
        k = header_key(h)
        if any(hint in k for hint in _KEY_HINTS):
            return idx
    return 0


def resolve_key_column(headers: Sequence[str], wanted: Any) -> int:
    """
    Resolve a key column given as a header name or an index.

    Raises ValueError when a name matches no header.
    """
    if wanted is None or str(wanted).strip() == "":
        return suggest_key_column(headers)
    if isinstance(wanted, int):
        return wanted
    text = str(wanted).strip()
    if text.lstrip("-").isdigit():
        return int(text)
    want = header_key(text)
    for idx, h in enumerate(headers):
        if header_key(h) == want:
            return idx
    raise ValueError(f"Key column not found: {text!r} (headers: {', '.join(headers)})")


def _clamp(index: int, width: int) -> int:
    return max(0, min(int(index), width - 1))


# =============================================================================
# Summary
# =============================================================================

def calculate_summary(rows: Sequence[ComparedRecord], file_count: int) -> ComparisonSummary:
    total = len(rows)
    identical = sum(1 for r in rows if r.status == STATUS_IDENTICAL)
    modified = sum(1 for r in rows if r.status == STATUS_MODIFIED)
    missing = sum(1 for r in rows if r.status == STATUS_MISSING)
    missing_per_file = [0] * file_count
    for r in rows:
        for f in r.missing_from:
            if 0 <= f < file_count:
                missing_per_file[f] += 1
    # Half-up rounding of the identical percentage.
    score = int(math.floor(100.0 * identical / total + 0.5)) if total else 100
    return ComparisonSummary(
        total_items=total,
        identical=identical,
        modified=modified,
        missing=missing,
        match_score=score,
        missing_per_file=missing_per_file,
    )


# =============================================================================
# Comparison
# =============================================================================

def _key_map(rows: Sequence[Sequence[str]], key_idx: int) -> Dict[str, int]:
    out: Dict[str, int] = {}
    for idx, row in enumerate(rows):
        key = normalize_key(row[key_idx] if key_idx < len(row) else "")
        if not key:
            continue
        out.setdefault(key, idx)
    return out


def _resolve_aliases(
    all_keys: List[str],
    files_by_key: Dict[str, set[int]],
    min_similarity: float,
    *,
    verbose: bool = False,
) -> AliasResolver:
    resolver = AliasResolver(all_keys, files_by_key)
    for key in all_keys:
        if len(files_by_key[key]) != 1:
            continue
        own = resolver.files_of(key)
        candidates = [k for k in all_keys if k != key and not (resolver.files_of(k) & own)]
        match, sim = best_match(key, candidates, min_similarity=min_similarity)
        if match is not None and resolver.union(key, match):
            if verbose:
                print(f"  - Fuzzy match: '{key}' ~ '{match}' ({sim:.2f})")
    return resolver


def compare_across_files(
    tables_per_file: Sequence[Sequence[LogicalTable]],
    key_column_index: int = 0,
    cfg: dict[str, Any] | None = None,
    *,
    verbose: bool = False,
) -> ComparisonResult:
    """
    Compare the tables of 2..N files record by record.

    Args:
        tables_per_file: One list of LogicalTables per file
        key_column_index: Column (in unified headers) that identifies a record;
            clamped into range
        cfg: Match heuristics (see load_match_heuristics)
        verbose: Print progress

    Returns:
        ComparisonResult(headers, rows, summary)
    """
    cfg2 = _cfg(cfg)
    file_count = len(tables_per_file)

    per_file = [merge_tables(list(tables or [])) for tables in tables_per_file]
    headers = unify_headers([h for h, _ in per_file])
    if not headers:
        return ComparisonResult([], [], calculate_summary([], file_count))

    normalized = [normalize_rows(rows, h, headers) for h, rows in per_file]
    key_idx = _clamp(key_column_index, len(headers))

    key_maps = [_key_map(rows, key_idx) for rows in normalized]
    all_keys: List[str] = []
    files_by_key: Dict[str, set[int]] = {}
    for f, km in enumerate(key_maps):
        for k in km:
            if k not in files_by_key:
                files_by_key[k] = set()
                all_keys.append(k)
            files_by_key[k].add(f)

    if verbose:
        skipped = [len(rows) - len(km) for rows, km in zip(normalized, key_maps)]
        print(f"[INFO] {len(headers)} columns, key column '{headers[key_idx]}', {len(all_keys)} distinct keys")
        if any(skipped):
            print(f"  - Rows skipped (empty or duplicate key) per file: {skipped}")

    fuzzy = cfg2.get("fuzzy") or {}
    if bool(fuzzy.get("enabled", True)) and file_count > 1:
        resolver = _resolve_aliases(
            all_keys, files_by_key, float(fuzzy.get("min_similarity", 0.6)), verbose=verbose
        )
    else:
        resolver = AliasResolver(all_keys, files_by_key)

    records: List[ComparedRecord] = []
    for canonical, members in resolver.groups():
        file_rows: List[Optional[List[str]]] = []
        for f in range(file_count):
            row_idx = next((key_maps[f][m] for m in members if m in key_maps[f]), None)
            file_rows.append(None if row_idx is None else normalized[f][row_idx])
        present_in = [f for f, row in enumerate(file_rows) if row is not None]
        missing_from = [f for f, row in enumerate(file_rows) if row is None]

        cells: List[ComparedCell] = []
        any_diff = False
        for col, header in enumerate(headers):
            values: List[Optional[str]] = []
            for f, row in enumerate(file_rows):
                if row is None:
                    values.append(None)
                else:
                    values.append(str(row[col]).strip())
            differs = len({v for v in values if v is not None}) > 1
            any_diff = any_diff or differs
            cells.append(ComparedCell(header=header, values=values, changed=differs or bool(missing_from)))

        if missing_from:
            status = STATUS_MISSING
        elif any_diff:
            status = STATUS_MODIFIED
        else:
            status = STATUS_IDENTICAL
        records.append(
            ComparedRecord(
                status=status,
                key_value=canonical,
                present_in=present_in,
                missing_from=missing_from,
                cells=cells,
            )
        )

    records.sort(key=lambda r: STATUS_ORDER[r.status])
    summary = calculate_summary(records, file_count)
    if verbose:
        print(
            f"[DONE] {summary.total_items} records: {summary.identical} identical, "
            f"{summary.modified} modified, {summary.missing} missing (score {summary.match_score}%)"
        )
    return ComparisonResult(headers, records, summary)


def compare_tables(
    tables_a: Sequence[LogicalTable],
    tables_b: Sequence[LogicalTable],
    key_column_index: int = 0,
    cfg: dict[str, Any] | None = None,
) -> ComparisonResult:
    """Two-file form of compare_across_files."""
    return compare_across_files([tables_a, tables_b], key_column_index, cfg)
