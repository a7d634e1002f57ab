"""
Key similarity for fuzzy record rescue (Dice coefficient over character bigrams).
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, Optional, Tuple


def normalize_key(value: object) -> str:
    return re.sub(r"\s+", " ", str(value or "").strip().lower())


def bigrams(text: str) -> Counter:
    return Counter(text[i:i + 2] for i in range(len(text) - 1))


def bigram_similarity(a: str, b: str) -> float:
    """
    Dice coefficient over bigram multisets.

    Identical strings score 1.0; a string shorter than 2 characters scores 0.0
    against anything else. Symmetric and bounded to [0, 1].
    """
    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0
    ba = bigrams(a)
    bb = bigrams(b)
    shared = sum((ba & bb).values())
    return (2.0 * shared) / float((len(a) - 1) + (len(b) - 1))


def max_possible_similarity(len_a: int, len_b: int) -> float:
    """Upper bound of bigram_similarity for two strings of these lengths."""
    na = max(0, len_a - 1)
    nb = max(0, len_b - 1)
    if na == 0 or nb == 0:
        return 0.0
    return (2.0 * min(na, nb)) / float(na + nb)


def best_match(
    key: str,
    candidates: Iterable[str],
    *,
    min_similarity: float = 0.6,
) -> Tuple[Optional[str], float]:
    """
    Best candidate scoring >= min_similarity, or (None, 0.0).

    Candidates whose length alone rules them out are skipped without scoring.
    Ties keep the earliest candidate.
    """
    best: Optional[str] = None
    best_sim = 0.0
    for cand in candidates:
        if cand == key:
            continue
        if max_possible_similarity(len(key), len(cand)) < min_similarity:
            continue
        sim = bigram_similarity(key, cand)
        if sim >= min_similarity and sim > best_sim:
            best, best_sim = cand, sim
    return best, best_sim
