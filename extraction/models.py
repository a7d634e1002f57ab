"""
Data model shared by the extractors and the comparison layer.

- PositionedFragment: one run of text with a page position (PDF-like sources)
- LogicalTable: headers + positional rows for one document/sheet/section
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Sequence


@dataclass(frozen=True)
class PositionedFragment:
    """Atomic text run. Coordinates are top-down (y grows down the page)."""
    x: float
    y: float
    width: float
    text: str
    page: int = 1

    @property
    def x1(self) -> float:
        return self.x + max(0.0, self.width)


@dataclass
class LogicalTable:
    section: str
    headers: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)


def pad_row(row: Sequence[Any], width: int) -> List[str]:
    out = ["" if v is None else str(v) for v in list(row)[:width]]
    while len(out) < width:
        out.append("")
    return out


def empty_table(section: str = "Document") -> LogicalTable:
    return LogicalTable(section=section, headers=["Content"], rows=[])


def _finite(v: Any) -> bool:
    try:
        return math.isfinite(float(v))
    except (TypeError, ValueError):
        return False


def coerce_fragments(items: Iterable[Any], *, default_page: int = 1) -> List[PositionedFragment]:
    """
    Validate fragments at the ingestion boundary.

    Accepts PositionedFragment instances or dicts with x/y/width/text/page keys.
    Items with blank text or non-finite coordinates are dropped.
    """
    out: List[PositionedFragment] = []
    for item in items or []:
        if isinstance(item, PositionedFragment):
            frag = item
        elif isinstance(item, dict):
            if not all(_finite(item.get(k)) for k in ("x", "y")):
                continue
            width = item.get("width", 0.0)
            try:
                page = int(item.get("page", default_page))
            except (TypeError, ValueError):
                page = default_page
            frag = PositionedFragment(
                x=float(item["x"]),
                y=float(item["y"]),
                width=float(width) if _finite(width) else 0.0,
                text=str(item.get("text") or ""),
                page=page,
            )
        else:
            continue
        if not str(frag.text).strip():
            continue
        if not (_finite(frag.x) and _finite(frag.y)):
            continue
        if not _finite(frag.width):
            frag = PositionedFragment(x=frag.x, y=frag.y, width=0.0, text=frag.text, page=frag.page)
        out.append(frag)
    return out
