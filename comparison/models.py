"""
Comparison result model: compared cells/records, summary and the persisted record.
"""

from __future__ import annotations

import random
import string
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


STATUS_IDENTICAL = "identical"
STATUS_MODIFIED = "modified"
STATUS_MISSING = "missing"
STATUS_ORDER = {STATUS_MISSING: 0, STATUS_MODIFIED: 1, STATUS_IDENTICAL: 2}


@dataclass
class ComparedCell:
    header: str
    values: List[Optional[str]]  # one slot per file; None = absent
    changed: bool = False


@dataclass
class ComparedRecord:
    status: str
    key_value: str
    present_in: List[int]
    missing_from: List[int]
    cells: List[ComparedCell] = field(default_factory=list)

    def cell(self, header: str) -> Optional[ComparedCell]:
        want = " ".join(str(header).lower().split())
        for c in self.cells:
            if " ".join(c.header.lower().split()) == want:
                return c
        return None


@dataclass
class ComparisonSummary:
    total_items: int = 0
    identical: int = 0
    modified: int = 0
    missing: int = 0
    match_score: int = 100
    missing_per_file: List[int] = field(default_factory=list)


@dataclass
class ComparisonResult:
    headers: List[str]
    rows: List[ComparedRecord]
    summary: ComparisonSummary

    def __iter__(self):
        # Allows `headers, rows, summary = compare_across_files(...)`.
        return iter((self.headers, self.rows, self.summary))


def generate_id() -> str:
    alphabet = string.ascii_lowercase + string.digits
    suffix = "".join(random.choice(alphabet) for _ in range(7))
    return f"cmp_{int(time.time() * 1000)}_{suffix}"


@dataclass
class ComparisonRecord:
    """What gets exported and stored in history."""
    id: str
    file_names: List[str]
    file_labels: List[str]
    file_type: str
    date: str
    headers: List[str]
    key_column: str
    summary: ComparisonSummary
    rows: List[ComparedRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ComparisonRecord":
        summary = ComparisonSummary(**dict(data.get("summary") or {}))
        rows = []
        for r in data.get("rows") or []:
            cells = [ComparedCell(**c) for c in r.get("cells") or []]
            rows.append(
                ComparedRecord(
                    status=str(r.get("status", "")),
                    key_value=str(r.get("key_value", "")),
                    present_in=[int(i) for i in r.get("present_in") or []],
                    missing_from=[int(i) for i in r.get("missing_from") or []],
                    cells=cells,
                )
            )
        return cls(
            id=str(data.get("id", "")),
            file_names=[str(n) for n in data.get("file_names") or []],
            file_labels=[str(n) for n in data.get("file_labels") or []],
            file_type=str(data.get("file_type", "")),
            date=str(data.get("date", "")),
            headers=[str(h) for h in data.get("headers") or []],
            key_column=str(data.get("key_column", "")),
            summary=summary,
            rows=rows,
        )
