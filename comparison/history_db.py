from __future__ import annotations

import json
import os
import sqlite3
from pathlib import Path
from typing import List, Optional

from .models import ComparisonRecord


_REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_HISTORY_DB = _REPO_ROOT / "user_inputs" / "compare_history.sqlite3"


SCHEMA_SQL = """
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS comparisons (
  id TEXT PRIMARY KEY,
  date TEXT NOT NULL,
  file_type TEXT NOT NULL DEFAULT '',
  file_names TEXT NOT NULL DEFAULT '[]',
  match_score INTEGER NOT NULL DEFAULT 100,
  payload TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_comparisons_date ON comparisons(date);
"""


def default_db_path() -> Path:
    env = str(os.environ.get("COMPARE_HISTORY_DB", "") or "").strip()
    return Path(env) if env else DEFAULT_HISTORY_DB


def connect_db(db_path: Path) -> sqlite3.Connection:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    return conn


def ensure_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)
    _ensure_column(conn, "comparisons", "match_score", "match_score INTEGER NOT NULL DEFAULT 100")
    conn.commit()


def _ensure_column(conn: sqlite3.Connection, table: str, column: str, ddl: str) -> None:
    try:
        rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
        existing = {str(r[1]) for r in rows}
        if column not in existing:
            conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl}")
    except Exception:
        pass


def save_comparison(conn: sqlite3.Connection, record: ComparisonRecord) -> None:
    """Insert or replace a comparison by id."""
    conn.execute(
        """
        INSERT INTO comparisons(id, date, file_type, file_names, match_score, payload)
        VALUES(?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
          date=excluded.date,
          file_type=excluded.file_type,
          file_names=excluded.file_names,
          match_score=excluded.match_score,
          payload=excluded.payload
        """,
        (
            record.id,
            record.date,
            record.file_type,
            json.dumps(list(record.file_names)),
            int(record.summary.match_score),
            json.dumps(record.to_dict()),
        ),
    )
    conn.commit()


def _record_from_row(row: sqlite3.Row) -> Optional[ComparisonRecord]:
    try:
        return ComparisonRecord.from_dict(json.loads(row["payload"]))
    except Exception:
        return None


def list_comparisons(conn: sqlite3.Connection) -> List[ComparisonRecord]:
    """All stored comparisons, newest first. Unreadable payloads are skipped."""
    rows = conn.execute("SELECT payload FROM comparisons ORDER BY date DESC, rowid DESC").fetchall()
    out: List[ComparisonRecord] = []
    for row in rows:
        rec = _record_from_row(row)
        if rec is not None:
            out.append(rec)
    return out


def get_comparison(conn: sqlite3.Connection, comparison_id: str) -> Optional[ComparisonRecord]:
    row = conn.execute("SELECT payload FROM comparisons WHERE id = ?", (comparison_id,)).fetchone()
    if row is None:
        return None
    return _record_from_row(row)


def delete_comparison(conn: sqlite3.Connection, comparison_id: str) -> bool:
    cur = conn.execute("DELETE FROM comparisons WHERE id = ?", (comparison_id,))
    conn.commit()
    return cur.rowcount > 0


def clear_comparisons(conn: sqlite3.Connection) -> int:
    row = conn.execute("SELECT COUNT(*) FROM comparisons").fetchone()
    conn.execute("DELETE FROM comparisons")
    conn.commit()
    return int(row[0] if row else 0)
