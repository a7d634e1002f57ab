"""
Heuristics files (schema v1): best-effort JSON load and deep merge onto defaults.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


SCHEMA_VERSION = 1


def load_heuristics(path: Path) -> dict[str, Any]:
    """
    Best-effort load of a heuristics file.

    Returns {} on missing/invalid or on a schema version other than 1.
    """
    try:
        p = Path(path)
        if not p.exists():
            return {}
        data = json.loads(p.read_text(encoding="utf-8", errors="ignore"))
        if not isinstance(data, dict):
            return {}
        if int(data.get("version") or 0) != SCHEMA_VERSION:
            return {}
        return data
    except Exception:
        return {}


def merge_cfg(defaults: dict[str, Any], cfg: dict[str, Any] | None) -> dict[str, Any]:
    """Deep copy of `defaults` with `cfg` merged on top (None values are ignored)."""
    out: dict[str, Any] = json.loads(json.dumps(defaults))
    if not isinstance(cfg, dict):
        return out

    def _merge(dst: dict, src: dict) -> None:
        for k, v in src.items():
            if v is None:
                continue
            if isinstance(v, dict) and isinstance(dst.get(k), dict):
                _merge(dst[k], v)  # type: ignore[index]
            else:
                dst[k] = v

    _merge(out, cfg)
    return out
