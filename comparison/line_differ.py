"""
Plain line diff for documents without a usable table.
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass
from typing import List, Optional, Sequence


@dataclass
class LineDiff:
    type: str  # added | removed | unchanged
    line_number: int
    content1: Optional[str] = None
    content2: Optional[str] = None


@dataclass
class LineDiffSummary:
    total_items: int = 0
    added: int = 0
    removed: int = 0
    modified: int = 0  # replaced lines are reported as removed + added
    unchanged: int = 0


def compare_lines(lines1: Sequence[str], lines2: Sequence[str]) -> List[LineDiff]:
    """
    Line-by-line diff of two documents.

    Replaced blocks are reported as removed lines followed by added lines.
    Removed/unchanged lines carry their line number in the first document,
    added lines their line number in the second.
    """
    out: List[LineDiff] = []
    matcher = difflib.SequenceMatcher(None, list(lines1), list(lines2), autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            for offset in range(i2 - i1):
                val = lines1[i1 + offset]
                out.append(LineDiff("unchanged", i1 + offset + 1, val, val))
            continue
        if tag in ("delete", "replace"):
            for i in range(i1, i2):
                out.append(LineDiff("removed", i + 1, content1=lines1[i]))
        if tag in ("insert", "replace"):
            for j in range(j1, j2):
                out.append(LineDiff("added", j + 1, content2=lines2[j]))
    return out


def summarize_line_diff(diffs: Sequence[LineDiff]) -> LineDiffSummary:
    summary = LineDiffSummary(total_items=len(diffs))
    for d in diffs:
        if d.type == "added":
            summary.added += 1
        elif d.type == "removed":
            summary.removed += 1
        elif d.type == "unchanged":
            summary.unchanged += 1
    return summary
