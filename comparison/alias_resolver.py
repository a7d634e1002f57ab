"""
Disjoint-set over record keys for fuzzy alias resolution.

Each group is one logical record. The canonical key of a group is its member
seen first (lowest first-seen rank). Two groups are only joined when they come
from disjoint sets of files, so a record never takes two rows from one file.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Sequence, Tuple


class AliasResolver:
    def __init__(self, keys: Sequence[str], files_by_key: Mapping[str, Iterable[int]]):
        self._rank: Dict[str, int] = {}
        for k in keys:
            self._rank.setdefault(k, len(self._rank))
        self._parent: Dict[str, str] = {k: k for k in self._rank}
        self._files: Dict[str, set[int]] = {k: set(files_by_key.get(k, ())) for k in self._rank}

    def find(self, key: str) -> str:
        root = key
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[key] != root:
            self._parent[key], key = root, self._parent[key]
        return root

    def files_of(self, key: str) -> set[int]:
        return self._files[self.find(key)]

    def can_union(self, a: str, b: str) -> bool:
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return False
        return not (self._files[ra] & self._files[rb])

    def union(self, a: str, b: str) -> bool:
        if not self.can_union(a, b):
            return False
        ra, rb = self.find(a), self.find(b)
        root, child = (ra, rb) if self._rank[ra] <= self._rank[rb] else (rb, ra)
        self._parent[child] = root
        self._files[root] |= self._files.pop(child)
        return True

    def groups(self) -> List[Tuple[str, List[str]]]:
        """(canonical, members) in first-seen order; members also first-seen ordered."""
        members: Dict[str, List[str]] = {}
        for k in sorted(self._rank, key=self._rank.__getitem__):
            members.setdefault(self.find(k), []).append(k)
        return sorted(members.items(), key=lambda item: self._rank[item[0]])
