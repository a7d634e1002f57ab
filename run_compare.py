#!/usr/bin/env python3
"""
Cross-File Compare - CLI Entry Point

Reconstructs a table from each input document and compares the files record
by record on a key column:
1. Parse each file (PDF spatial reconstruction, Excel, CSV, Word, text)
2. Unify headers across files
3. Match records by key (with fuzzy rescue of near-identical keys)
4. Report identical / modified / missing records

Usage:
    python run_compare.py compare <file> <file> [<file> ...] [options]
    python run_compare.py diff <file1> <file2>
    python run_compare.py history list|show ID|delete ID|clear [--history DB]

Options (compare):
    --key NAME|INDEX            Key column (default: suggested from headers)
    --labels A B ...            Display label per file
    --export PATH               Write report (.html, .csv or .xlsx)
    --history DB                Save the comparison to a history database
    --reconstruct-heuristics F  JSON overrides for PDF table reconstruction
    --match-heuristics F        JSON overrides for record matching
    --verbose                   Verbose output

Environment:
    QUIET=1                     Suppress [INFO] lines
    COMPARE_HISTORY_DB          Default history database path

Examples:
    # Compare a sales order, a shipper and an invoice on "Part Number"
    python run_compare.py compare so.pdf shipper.pdf invoice.xlsx --key "Part Number" --labels SO Shipper Invoice

    # Line diff of two text exports
    python run_compare.py diff old.txt new.txt
"""

import argparse
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from comparison import history_db
from comparison.line_differ import compare_lines, summarize_line_diff
from comparison.models import STATUS_MISSING, STATUS_MODIFIED, ComparisonRecord, generate_id
from comparison.record_differ import compare_across_files, load_match_heuristics, resolve_key_column
from comparison.report_export import file_labels, write_report
from comparison.table_normalizer import merge_tables, unify_headers
from extraction.document_loader import (
    DocumentLoadError,
    UnsupportedFileType,
    accepted_extensions,
    extract_lines,
    get_file_type,
    load_tables,
)
from extraction.spatial_reconstructor import load_reconstruct_heuristics


MIN_FILES = 2
MAX_FILES = 6


def _env_truthy(name: str) -> bool:
    return str(os.environ.get(name, "") or "").strip().lower() in ("1", "true", "yes", "on")


def info(msg: str) -> None:
    if not _env_truthy("QUIET"):
        print(f"[INFO] {msg}")


def _history_path(arg: Optional[str]) -> Path:
    return Path(arg) if arg else history_db.default_db_path()


def _file_type(paths: List[Path]) -> str:
    kinds = {get_file_type(p) or "unknown" for p in paths}
    return kinds.pop() if len(kinds) == 1 else "mixed"


def print_record(record: ComparisonRecord, *, show_identical: bool = False) -> None:
    labels = file_labels(record)
    s = record.summary
    print(f"\n{'=' * 60}")
    print(f"Comparison {record.id}  ({record.file_type}, key: {record.key_column or '-'})")
    for i, name in enumerate(record.file_names):
        print(f"  File {i + 1}: {labels[i]}" + (f" ({name})" if labels[i] != name else ""))
    print("=" * 60)
    print(
        f"Match score: {s.match_score}%  |  total {s.total_items}  |  identical {s.identical}  |  "
        f"modified {s.modified}  |  missing {s.missing}"
    )
    for i, count in enumerate(s.missing_per_file):
        if count and i < len(labels):
            print(f"  - Missing from {labels[i]}: {count}")

    for rec in record.rows:
        if rec.status == STATUS_MISSING:
            missing = ", ".join(labels[i] for i in rec.missing_from)
            print(f"[MISSING ] {rec.key_value}  (missing from: {missing})")
        elif rec.status == STATUS_MODIFIED:
            print(f"[MODIFIED] {rec.key_value}")
            for cell in rec.cells:
                if cell.changed:
                    vals = " | ".join(v if v else "-" for v in cell.values)
                    print(f"    {cell.header}: {vals}")
        elif show_identical:
            print(f"[SAME    ] {rec.key_value}")


def cmd_compare(args: argparse.Namespace) -> int:
    paths = [Path(p) for p in args.files]
    if not (MIN_FILES <= len(paths) <= MAX_FILES):
        print(f"[ERROR] compare needs {MIN_FILES} to {MAX_FILES} files (got {len(paths)})")
        return 1
    labels = list(args.labels or [])
    if labels and len(labels) != len(paths):
        print(f"[ERROR] --labels needs one label per file ({len(paths)})")
        return 1

    recon_cfg = None
    if args.reconstruct_heuristics:
        recon_cfg = load_reconstruct_heuristics(Path(args.reconstruct_heuristics))
    match_cfg = load_match_heuristics(Path(args.match_heuristics) if args.match_heuristics else None)

    tables_per_file = []
    for p in paths:
        info(f"Loading {p.name}")
        tables = load_tables(p, recon_cfg, verbose=args.verbose)
        rows = sum(len(t.rows) for t in tables)
        info(f"  {len(tables)} table(s), {rows} row(s)")
        tables_per_file.append(tables)

    headers = unify_headers([merge_tables(tables)[0] for tables in tables_per_file])
    if not headers:
        print("[WARN] No table content found in any file")
    try:
        key_idx = resolve_key_column(headers, args.key) if headers else 0
    except ValueError as e:
        print(f"[ERROR] {e}")
        return 1

    result = compare_across_files(tables_per_file, key_idx, match_cfg, verbose=args.verbose)
    record = ComparisonRecord(
        id=generate_id(),
        file_names=[p.name for p in paths],
        file_labels=labels or [p.stem for p in paths],
        file_type=_file_type(paths),
        date=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        headers=result.headers,
        key_column=result.headers[min(max(key_idx, 0), len(result.headers) - 1)] if result.headers else "",
        summary=result.summary,
        rows=result.rows,
    )
    print_record(record, show_identical=args.verbose)

    if args.export:
        out = write_report(record, Path(args.export))
        print(f"[DONE] Report written: {out}")
    if args.history is not None:
        db_path = _history_path(args.history or None)
        conn = history_db.connect_db(db_path)
        try:
            history_db.ensure_schema(conn)
            history_db.save_comparison(conn, record)
        finally:
            conn.close()
        print(f"[DONE] Saved to history: {db_path} ({record.id})")
    return 0


def cmd_diff(args: argparse.Namespace) -> int:
    p1, p2 = Path(args.file1), Path(args.file2)
    info(f"Line diff: {p1.name} vs {p2.name}")
    diffs = compare_lines(extract_lines(p1), extract_lines(p2))
    for d in diffs:
        if d.type == "added":
            print(f"+ {d.line_number:>5}  {d.content2}")
        elif d.type == "removed":
            print(f"- {d.line_number:>5}  {d.content1}")
        elif args.verbose:
            print(f"  {d.line_number:>5}  {d.content1}")
    s = summarize_line_diff(diffs)
    print(f"\n{s.total_items} lines: {s.added} added, {s.removed} removed, {s.unchanged} unchanged")
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    db_path = _history_path(args.history)
    conn = history_db.connect_db(db_path)
    try:
        history_db.ensure_schema(conn)
        if args.action == "list":
            records = history_db.list_comparisons(conn)
            if not records:
                print("No saved comparisons.")
            for rec in records:
                names = " vs ".join(file_labels(rec))
                print(f"{rec.id}  {rec.date}  {rec.summary.match_score:>3}%  {names}")
            return 0
        if args.action == "clear":
            n = history_db.clear_comparisons(conn)
            print(f"[DONE] Removed {n} comparison(s)")
            return 0
        if not args.id:
            print(f"[ERROR] history {args.action} needs a comparison ID")
            return 1
        if args.action == "show":
            rec = history_db.get_comparison(conn, args.id)
            if rec is None:
                print(f"[ERROR] Comparison not found: {args.id}")
                return 1
            print_record(rec, show_identical=True)
            return 0
        if history_db.delete_comparison(conn, args.id):
            print(f"[DONE] Deleted {args.id}")
            return 0
        print(f"[ERROR] Comparison not found: {args.id}")
        return 1
    finally:
        conn.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Cross-File Compare',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    sub = parser.add_subparsers(dest='command', required=True)

    p_cmp = sub.add_parser('compare', help='Compare 2-6 files record by record')
    p_cmp.add_argument('files', nargs='+',
                       help=f'Input files ({accepted_extensions()})')
    p_cmp.add_argument('--key', type=str, default=None,
                       help='Key column name or index (default: suggested)')
    p_cmp.add_argument('--labels', nargs='+', default=None,
                       help='Display label per file')
    p_cmp.add_argument('--export', type=str, default=None,
                       help='Report path (.html, .csv or .xlsx)')
    p_cmp.add_argument('--history', type=str, nargs='?', const='', default=None,
                       help='Save to history DB (default path when no value given)')
    p_cmp.add_argument('--reconstruct-heuristics', type=str, default=None,
                       help='JSON file with PDF reconstruction overrides')
    p_cmp.add_argument('--match-heuristics', type=str, default=None,
                       help='JSON file with record matching overrides')
    p_cmp.add_argument('--verbose', '-v', action='store_true',
                       help='Verbose output')
    p_cmp.set_defaults(func=cmd_compare)

    p_diff = sub.add_parser('diff', help='Line-by-line diff of two files')
    p_diff.add_argument('file1', type=str)
    p_diff.add_argument('file2', type=str)
    p_diff.add_argument('--verbose', '-v', action='store_true',
                        help='Also print unchanged lines')
    p_diff.set_defaults(func=cmd_diff)

    p_hist = sub.add_parser('history', help='Saved comparisons')
    p_hist.add_argument('action', choices=['list', 'show', 'delete', 'clear'])
    p_hist.add_argument('id', nargs='?', default=None)
    p_hist.add_argument('--history', type=str, default=None,
                        help='History DB path')
    p_hist.set_defaults(func=cmd_history)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return int(args.func(args))
    except (UnsupportedFileType, DocumentLoadError, ValueError) as e:
        print(f"[ERROR] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
