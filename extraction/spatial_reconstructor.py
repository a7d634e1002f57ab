"""
Spatial Table Reconstructor - Rebuild one logical table from positioned text.

Works on the text runs of a page-based document (PDF spans) and produces a
single LogicalTable per document:

1. Column discovery: cluster fragment x positions into column anchors
2. Row grouping: group fragments into visual rows by y position (per page)
3. Column assignment: nearest anchor per fragment
4. Header identification: keyword scoring, multi-word merge, wrapped titles
5. Suppression: repeated header bands, page banners and footers
6. Multi-line records: continuation rows are folded into the numbered row above
7. Sub-fields: "Label: value" attributes pulled out of the description column

This is best-effort. It always returns a table and never raises for bad input.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from . import subfields
from .heuristics import load_heuristics, merge_cfg
from .models import LogicalTable, PositionedFragment, coerce_fragments, empty_table, pad_row


_REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_RECONSTRUCT_HEURISTICS_PATH = _REPO_ROOT / "user_inputs" / "reconstruct_heuristics.json"

_PHONE_RE = re.compile(r"\(?\b\d{3}\)?[\s.\-]?\d{3}[\s.\-]\d{4}\b")
_PAGE_FOOTER_RE = re.compile(r"^\s*page\s+\d+(?:\s*(?:of|/)\s*\d+)?\s*$", re.IGNORECASE)
_INT_RE = re.compile(r"^\d+$")


_DEFAULT_CFG: dict[str, Any] = {
    "version": 1,
    "columns": {
        "tolerance": 8.0,
        "min_cluster_size": 3,
        "fallback_cluster_size": 2,
    },
    "rows": {
        "tolerance": 4.0,
    },
    "header": {
        "scan_rows": 15,
        "min_score": 2,
        "merge_gap": 15.0,
        "lookback_rows": 3,
        "wrap_max_gap": 14.0,
        "keywords": [
            "line", "item", "part", "number", "description", "desc", "qty", "quantity",
            "price", "unit", "total", "amount", "uom", "weight", "length", "material",
            "size", "cost", "ext", "extended", "code", "mark", "each", "ea",
        ],
    },
    "suppression": {
        "repeat_word_ratio": 0.6,
        "banner_scan_rows": 5,
        "banner_min_keywords": 3,
        "banner_max_chars": 10,
    },
    "records": {
        "enabled": True,
        "number_headers": ["line", "line#", "line no", "ln", "no", "#"],
        "number_min_ratio": 0.5,
        "joiner": " | ",
    },
    "subfields": {
        "enabled": True,
        "catalog": subfields.DEFAULT_CATALOG,
    },
}


def default_heuristics_path() -> Path:
    env = str(os.environ.get("COMPARE_RECONSTRUCT_HEURISTICS", "") or "").strip()
    return Path(env) if env else DEFAULT_RECONSTRUCT_HEURISTICS_PATH


def load_reconstruct_heuristics(path: Optional[Path] = None) -> dict[str, Any]:
    """Reconstruction heuristics from `path` (default: user_inputs file); {} on missing/invalid."""
    return load_heuristics(path if path is not None else default_heuristics_path())


def _cfg(cfg: dict[str, Any] | None) -> dict[str, Any]:
    return merge_cfg(_DEFAULT_CFG, cfg)


@dataclass
class _VisualRow:
    page: int
    y: float
    fragments: List[PositionedFragment]
    index_on_page: int = 0
    cells: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(f.text.strip() for f in sorted(self.fragments, key=lambda f: f.x))


# =============================================================================
# Geometry
# =============================================================================

def discover_columns(
    xs: Iterable[float],
    *,
    tolerance: float = 8.0,
    min_cluster_size: int = 3,
    fallback_cluster_size: int = 2,
) -> List[float]:
    """Cluster x positions; return the centroid of each retained cluster."""
    values = sorted(float(x) for x in xs)
    if not values:
        return []
    clusters: List[List[float]] = [[values[0]]]
    for x in values[1:]:
        if (x - clusters[-1][-1]) <= tolerance:
            clusters[-1].append(x)
        else:
            clusters.append([x])

    kept = [c for c in clusters if len(c) >= int(min_cluster_size)]
    if not kept:
        kept = [c for c in clusters if len(c) >= int(fallback_cluster_size)]
    if not kept:
        return [values[0]]
    return [sum(c) / float(len(c)) for c in kept]


def group_rows(fragments: Sequence[PositionedFragment], *, tolerance: float = 4.0) -> List[_VisualRow]:
    """Group fragments into visual rows, page by page, in reading order."""
    by_page: Dict[int, List[PositionedFragment]] = {}
    for frag in fragments:
        by_page.setdefault(int(frag.page), []).append(frag)

    rows: List[_VisualRow] = []
    for page in sorted(by_page):
        frags = sorted(by_page[page], key=lambda f: (f.y, f.x))
        current = [frags[0]]
        page_rows: List[List[PositionedFragment]] = []
        for frag in frags[1:]:
            if abs(frag.y - current[-1].y) <= tolerance:
                current.append(frag)
            else:
                page_rows.append(current)
                current = [frag]
        page_rows.append(current)
        for idx, members in enumerate(page_rows):
            rows.append(
                _VisualRow(
                    page=page,
                    y=min(f.y for f in members),
                    fragments=sorted(members, key=lambda f: f.x),
                    index_on_page=idx,
                )
            )
    return rows


def nearest_column(x: float, anchors: Sequence[float]) -> int:
    return min(range(len(anchors)), key=lambda i: (abs(float(x) - anchors[i]), i))


def assign_cells(fragments: Sequence[PositionedFragment], anchors: Sequence[float]) -> List[str]:
    buckets: List[List[str]] = [[] for _ in anchors]
    for frag in sorted(fragments, key=lambda f: f.x):
        buckets[nearest_column(frag.x, anchors)].append(frag.text.strip())
    return [" ".join(t for t in bucket if t) for bucket in buckets]


# =============================================================================
# Text heuristics
# =============================================================================

def _words(text: str) -> List[str]:
    return re.findall(r"[a-z]+", str(text or "").lower())


def _keyword_score(text: str, keywords: set[str]) -> int:
    return sum(1 for w in _words(text) if w in keywords)


def _fingerprint(text: str) -> str:
    return re.sub(r"\s+", " ", str(text or "").lower()).strip()


def _significant_words(text: str) -> set[str]:
    return {
        w for w in re.findall(r"[a-z0-9#]+", str(text or "").lower())
        if len(w) >= 2 and not w.isdigit()
    }


def _norm_header_name(text: str) -> str:
    return re.sub(r"[\s.:]+", "", str(text or "").lower())


def _is_repeat_header(row: _VisualRow, header_fp: str, header_words: set[str], ratio: float) -> bool:
    text = row.text
    if _fingerprint(text) == header_fp:
        return True
    if not header_words:
        return False
    shared = len(header_words & _significant_words(text))
    return (shared / float(len(header_words))) >= ratio


def _is_banner(row: _VisualRow, first_page: int, keywords: set[str], sup: dict[str, Any]) -> bool:
    if row.page == first_page:
        return False
    if row.index_on_page >= int(sup.get("banner_scan_rows", 5)):
        return False
    text = row.text.strip()
    if _PHONE_RE.search(text):
        return True
    if _keyword_score(text, keywords) >= int(sup.get("banner_min_keywords", 3)):
        return True
    return len(text) < int(sup.get("banner_max_chars", 10))


def find_header_row(rows: Sequence[_VisualRow], keywords: set[str], *, scan_rows: int = 15, min_score: int = 2) -> int:
    """Index of the header row among the first rows of the first page (defaults to 0)."""
    if not rows:
        return 0
    first_page = rows[0].page
    best_idx = 0
    best_score = -1
    for idx, row in enumerate(rows[: max(1, int(scan_rows))]):
        if row.page != first_page:
            break
        score = _keyword_score(row.text, keywords)
        if score > best_score:
            best_idx, best_score = idx, score
    if best_score < int(min_score):
        return 0
    return best_idx


def _header_labels(
    rows: Sequence[_VisualRow],
    header_idx: int,
    anchors: Sequence[float],
    support: Sequence[int],
    hdr: dict[str, Any],
) -> List[str]:
    header_row = rows[header_idx]
    merge_gap = float(hdr.get("merge_gap", 15.0))

    groups: List[Dict[str, Any]] = []
    for frag in sorted(header_row.fragments, key=lambda f: f.x):
        col = nearest_column(frag.x, anchors)
        if groups:
            last = groups[-1]
            gap = frag.x - float(last["x1"])
            # Never swallow the title of a column that carries data of its own.
            if gap < merge_gap and (col == last["col"] or support[col] == 0):
                last["parts"].append((frag.y, frag.x, frag.text.strip()))
                last["x1"] = max(float(last["x1"]), frag.x1)
                continue
        groups.append({"col": col, "x0": frag.x, "x1": frag.x1, "parts": [(frag.y, frag.x, frag.text.strip())]})

    # Wrapped column titles sit on the rows directly above the header band.
    prev_y = header_row.y
    for k in range(1, int(hdr.get("lookback_rows", 3)) + 1):
        idx = header_idx - k
        if idx < 0:
            break
        above = rows[idx]
        if above.page != header_row.page or (prev_y - above.y) > float(hdr.get("wrap_max_gap", 14.0)):
            break
        for frag in above.fragments:
            best = None
            best_ov = 0.0
            for g in groups:
                ov = min(frag.x + max(frag.width, 1.0), float(g["x1"])) - max(frag.x, float(g["x0"]))
                if ov > best_ov:
                    best, best_ov = g, ov
            if best is not None:
                best["parts"].append((frag.y, frag.x, frag.text.strip()))
        prev_y = above.y

    labels_by_col: Dict[int, List[str]] = {}
    for g in groups:
        text = " ".join(t for _, _, t in sorted(g["parts"]) if t)
        labels_by_col.setdefault(int(g["col"]), []).append(text)
    return [" ".join(labels_by_col.get(i, [])).strip() for i in range(len(anchors))]


def detect_number_column(headers: Sequence[str], rows: Sequence[Sequence[str]], rec: dict[str, Any]) -> Optional[int]:
    names = {_norm_header_name(n) for n in rec.get("number_headers") or []}
    for idx, h in enumerate(headers):
        if _norm_header_name(h) in names:
            return idx
    ratio = float(rec.get("number_min_ratio", 0.5))
    for idx in range(len(headers)):
        values = [str(r[idx]).strip() for r in rows if idx < len(r) and str(r[idx]).strip()]
        if not values:
            continue
        ints = sum(1 for v in values if _INT_RE.match(v))
        if (ints / float(len(values))) >= ratio:
            return idx
    return None


def merge_continuation_rows(
    rows: Sequence[Sequence[str]],
    number_col: Optional[int],
    *,
    joiner: str = " | ",
) -> Tuple[List[List[str]], int]:
    """Fold rows without a record number into the record above. Returns (rows, merged_count)."""
    if number_col is None:
        return [list(r) for r in rows], 0
    records: List[List[str]] = []
    merged = 0
    for row in rows:
        num = str(row[number_col]).strip() if number_col < len(row) else ""
        if _INT_RE.match(num) or not records:
            records.append(list(row))
            continue
        target = records[-1]
        for idx, value in enumerate(row):
            val = str(value).strip()
            if idx == number_col or not val or idx >= len(target):
                continue
            target[idx] = f"{target[idx]}{joiner}{val}" if target[idx] else val
        merged += 1
    return records, merged


# =============================================================================
# Pipeline
# =============================================================================

def _flatten_pages(pages: Any) -> List[PositionedFragment]:
    flat: List[Any] = []
    for page_idx, item in enumerate(pages or [], start=1):
        if isinstance(item, (PositionedFragment, dict)):
            flat.append(item)
            continue
        try:
            for frag in item:
                if isinstance(frag, dict) and "page" not in frag:
                    frag = dict(frag, page=page_idx)
                flat.append(frag)
        except TypeError:
            continue
    return coerce_fragments(flat)


def _content_fallback(fragments: Sequence[PositionedFragment], cfg: dict[str, Any], section: str) -> LogicalTable:
    try:
        rows = group_rows(fragments, tolerance=float(cfg["rows"]["tolerance"]))
        return LogicalTable(section=section, headers=["Content"], rows=[[r.text] for r in rows if r.text])
    except Exception:
        return LogicalTable(section=section, headers=["Content"], rows=[[f.text] for f in fragments])


def _reconstruct(fragments: List[PositionedFragment], cfg: dict[str, Any], *, section: str, stats: dict[str, int]) -> LogicalTable:
    col_cfg = cfg["columns"]
    hdr = cfg["header"]
    sup = cfg["suppression"]
    rec = cfg["records"]
    keywords = {str(k).strip().lower() for k in hdr.get("keywords") or [] if str(k).strip()}

    anchors = discover_columns(
        (f.x for f in fragments),
        tolerance=float(col_cfg["tolerance"]),
        min_cluster_size=int(col_cfg["min_cluster_size"]),
        fallback_cluster_size=int(col_cfg["fallback_cluster_size"]),
    )
    rows = group_rows(fragments, tolerance=float(cfg["rows"]["tolerance"]))
    if not anchors or not rows:
        return empty_table(section)
    for row in rows:
        row.cells = assign_cells(row.fragments, anchors)

    first_page = rows[0].page
    header_idx = find_header_row(rows, keywords, scan_rows=int(hdr["scan_rows"]), min_score=int(hdr["min_score"]))
    header_row = rows[header_idx]
    header_fp = _fingerprint(header_row.text)
    header_words = _significant_words(header_row.text)
    stats["preamble_rows"] = header_idx
    # Letterhead lines above the first header tend to repeat on every page.
    preamble_fps = {_fingerprint(r.text) for r in rows[:header_idx]}

    data_rows: List[_VisualRow] = []
    for row in rows[header_idx + 1:]:
        if _is_repeat_header(row, header_fp, header_words, float(sup["repeat_word_ratio"])):
            stats["header_bands_dropped"] += 1
            continue
        repeated_preamble = row.page != first_page and _fingerprint(row.text) in preamble_fps
        if repeated_preamble or _PAGE_FOOTER_RE.match(row.text) or _is_banner(row, first_page, keywords, sup):
            stats["banners_dropped"] += 1
            continue
        data_rows.append(row)

    support = [0] * len(anchors)
    for row in data_rows:
        for frag in row.fragments:
            support[nearest_column(frag.x, anchors)] += 1

    labels = _header_labels(rows, header_idx, anchors, support, hdr)
    body = [list(r.cells) for r in data_rows]

    keep = [i for i in range(len(anchors)) if labels[i] or any(r[i] for r in body)]
    if not keep:
        keep = [0]
    headers = []
    for pos, i in enumerate(keep, start=1):
        headers.append(labels[i] or f"Column {pos}")
    body = [[r[i] for i in keep] for r in body]
    stats["columns"] = len(headers)

    if bool(rec.get("enabled", True)):
        number_col = detect_number_column(headers, body, rec)
        body, merged = merge_continuation_rows(body, number_col, joiner=str(rec.get("joiner", " | ")))
        stats["rows_merged"] = merged

    sf = cfg["subfields"]
    if bool(sf.get("enabled", True)):
        headers, body, added = subfields.extract_subfields(headers, body, sf.get("catalog"))
        stats["subfield_columns"] = len(added)

    stats["rows"] = len(body)
    return LogicalTable(section=section, headers=headers, rows=[pad_row(r, len(headers)) for r in body])


def reconstruct_table_with_stats(
    pages: Any,
    cfg: dict[str, Any] | None = None,
    *,
    section: str = "Document",
    verbose: bool = False,
) -> Tuple[LogicalTable, dict[str, int]]:
    cfg2 = _cfg(cfg)
    stats: dict[str, int] = {
        "fragments": 0,
        "columns": 0,
        "rows": 0,
        "preamble_rows": 0,
        "header_bands_dropped": 0,
        "banners_dropped": 0,
        "rows_merged": 0,
        "subfield_columns": 0,
    }
    try:
        fragments = _flatten_pages(pages)
    except Exception:
        fragments = []
    stats["fragments"] = len(fragments)
    if not fragments:
        return empty_table(section), stats

    try:
        table = _reconstruct(fragments, cfg2, section=section, stats=stats)
    except Exception as e:
        if verbose:
            print(f"[WARN] Table reconstruction failed ({type(e).__name__}: {e}); using line content")
        return _content_fallback(fragments, cfg2, section), stats

    if verbose:
        print(
            f"  - Reconstructed {stats['rows']} rows x {len(table.headers)} cols "
            f"(header bands dropped={stats['header_bands_dropped']}, banners dropped={stats['banners_dropped']}, "
            f"continuations merged={stats['rows_merged']}, sub-field cols={stats['subfield_columns']})"
        )
    return table, stats


def reconstruct_table(
    pages: Any,
    cfg: dict[str, Any] | None = None,
    *,
    section: str = "Document",
    verbose: bool = False,
) -> LogicalTable:
    """
    Reconstruct a single table from per-page fragment sequences.

    `pages` is a sequence of per-page fragment lists (PositionedFragment or
    dicts); a flat fragment sequence also works since every fragment carries
    its page. Empty input yields an empty one-column "Content" table.
    """
    table, _ = reconstruct_table_with_stats(pages, cfg, section=section, verbose=verbose)
    return table
