"""
Export a ComparisonRecord as HTML, CSV or an Excel workbook.
"""

from __future__ import annotations

import csv
import html
import io
from pathlib import Path
from typing import List, Optional, Sequence

from .models import STATUS_IDENTICAL, STATUS_MISSING, STATUS_MODIFIED, ComparedRecord, ComparisonRecord


EMPTY_MARK = "—"

STATUS_COLORS = {
    STATUS_MISSING: "FFEBE9",
    STATUS_MODIFIED: "FFF8C5",
    STATUS_IDENTICAL: "E6FFEC",
}

_CSS = """
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; color: #333; max-width: 1200px; margin: 40px auto; }
    h1 { font-size: 24px; margin-bottom: 4px; }
    .meta { color: #666; margin-bottom: 24px; font-size: 14px; }
    .summary { display: flex; flex-wrap: wrap; gap: 16px; margin-bottom: 32px; }
    .stat { padding: 16px 24px; border-radius: 12px; text-align: center; min-width: 100px; }
    .stat-identical { background: #e6ffec; color: #1a7f37; }
    .stat-modified { background: #fff8c5; color: #9a6700; }
    .stat-missing { background: #ffebe9; color: #cf222e; }
    .stat strong { display: block; font-size: 28px; margin-bottom: 4px; }
    .stat span { font-size: 12px; text-transform: uppercase; letter-spacing: 0.5px; }
    .files { display: flex; flex-wrap: wrap; gap: 16px; margin-bottom: 24px; padding: 16px; background: #f6f8fa; border-radius: 8px; }
    .files p { margin: 0; font-size: 13px; }
    .files .label { color: #666; font-size: 11px; text-transform: uppercase; letter-spacing: 0.5px; margin-bottom: 4px; }
    .section { margin-bottom: 32px; }
    .section-title { font-size: 18px; margin-bottom: 12px; padding-bottom: 8px; border-bottom: 2px solid #eee; }
    table { width: 100%; border-collapse: collapse; font-size: 13px; margin-bottom: 8px; }
    .cell { padding: 8px 12px; border: 1px solid #e1e4e8; text-align: left; }
    th.cell { background: #f6f8fa; font-weight: 600; }
    .note { color: #666; font-style: italic; }
"""


def file_labels(record: ComparisonRecord) -> List[str]:
    """Display label per file: the given label, else the file name, else 'File N'."""
    out: List[str] = []
    for i, name in enumerate(record.file_names):
        label = record.file_labels[i] if i < len(record.file_labels) else ""
        out.append(str(label or name or f"File {i + 1}"))
    return out


def _esc(value: Optional[str]) -> str:
    return html.escape(value if value else EMPTY_MARK, quote=True)


def _first_value(values: Sequence[Optional[str]]) -> Optional[str]:
    for v in values:
        if v is not None:
            return v
    return None


def _score_color(score: int) -> str:
    if score >= 80:
        return "#e6ffec"
    if score >= 50:
        return "#fff8c5"
    return "#ffebe9"


def _modified_section(rows: Sequence[ComparedRecord], labels: Sequence[str]) -> str:
    if not rows:
        return ""
    colspan = len(labels) + 1
    head = "".join(f'<th class="cell">{_esc(lbl)}</th>' for lbl in labels)
    body: List[str] = []
    for rec in rows:
        body.append(f'<tr><th class="cell" colspan="{colspan}">{_esc(rec.key_value)}</th></tr>')
        unchanged = []
        for cell in rec.cells:
            if not cell.changed:
                unchanged.append(cell.header)
                continue
            vals = "".join(f'<td class="cell">{_esc(v)}</td>' for v in cell.values)
            body.append(f'<tr style="background:#fff8c5"><td class="cell">{_esc(cell.header)}</td>{vals}</tr>')
        if unchanged:
            plural = "s" if len(unchanged) != 1 else ""
            body.append(
                f'<tr><td class="cell note" colspan="{colspan}">+ {len(unchanged)} matching field{plural}: '
                f"{html.escape(', '.join(unchanged))}</td></tr>"
            )
    return (
        '<div class="section">'
        f'<h2 class="section-title" style="color:#9a6700">Differences ({len(rows)})</h2>'
        f'<table><thead><tr><th class="cell">Field</th>{head}</tr></thead>'
        f"<tbody>{''.join(body)}</tbody></table></div>"
    )


def _simple_section(
    title: str,
    color: str,
    rows: Sequence[ComparedRecord],
    headers: Sequence[str],
    labels: Sequence[str],
    *,
    with_presence: bool,
) -> str:
    if not rows:
        return ""
    head = "".join(f'<th class="cell">{_esc(h)}</th>' for h in headers)
    if with_presence:
        head = '<th class="cell">Present In</th><th class="cell">Missing From</th>' + head
    body: List[str] = []
    for rec in rows:
        cells = "".join(f'<td class="cell">{_esc(_first_value(c.values))}</td>' for c in rec.cells)
        if with_presence:
            present = ", ".join(labels[i] for i in rec.present_in if i < len(labels))
            missing = ", ".join(labels[i] for i in rec.missing_from if i < len(labels))
            cells = f'<td class="cell">{_esc(present)}</td><td class="cell">{_esc(missing)}</td>' + cells
        body.append(f"<tr>{cells}</tr>")
    return (
        '<div class="section">'
        f'<h2 class="section-title" style="color:{color}">{html.escape(title)} ({len(rows)})</h2>'
        f"<table><thead><tr>{head}</tr></thead><tbody>{''.join(body)}</tbody></table></div>"
    )


def export_html(record: ComparisonRecord) -> str:
    labels = file_labels(record)
    summary = record.summary
    rows = record.rows
    modified = [r for r in rows if r.status == STATUS_MODIFIED]
    missing = [r for r in rows if r.status == STATUS_MISSING]
    identical = [r for r in rows if r.status == STATUS_IDENTICAL]

    files = "".join(
        f'<div><p class="label">File {i + 1}</p><p><strong>{_esc(labels[i])}</strong></p>'
        + (f"<p>{_esc(name)}</p>" if labels[i] != name else "")
        + "</div>"
        for i, name in enumerate(record.file_names)
    )
    stats = [
        f'<div class="stat" style="background:{_score_color(summary.match_score)}">'
        f"<strong>{summary.match_score}%</strong><span>Match</span></div>",
        f'<div class="stat stat-identical"><strong>{summary.identical}</strong><span>Identical</span></div>',
        f'<div class="stat stat-modified"><strong>{summary.modified}</strong><span>Modified</span></div>',
        f'<div class="stat stat-missing"><strong>{summary.missing}</strong><span>Missing</span></div>',
    ]
    for i, count in enumerate(summary.missing_per_file):
        if i < len(labels):
            stats.append(
                f'<div class="stat stat-missing"><strong>{count}</strong>'
                f"<span>Missing from {_esc(labels[i])}</span></div>"
            )
    sections = "\n".join(
        s
        for s in (
            _modified_section(modified, labels),
            _simple_section("Missing Records", "#cf222e", missing, record.headers, labels, with_presence=True),
            _simple_section("Matching Data", "#333", identical, record.headers, labels, with_presence=False),
        )
        if s
    )
    title = " vs ".join(labels)
    key_note = f" &middot; key: {_esc(record.key_column)}" if record.key_column else ""
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Comparison Report - {html.escape(title)}</title>
  <style>{_CSS}</style>
</head>
<body>
  <h1>Comparison Report</h1>
  <div class="meta"><p>{html.escape(record.file_type.upper())} comparison &middot; {html.escape(record.date)}{key_note}</p></div>
  <div class="files">{files}</div>
  <div class="summary">{''.join(stats)}</div>
  {sections}
</body>
</html>
"""


def export_csv(record: ComparisonRecord) -> str:
    """One line per record: Status, Key, then '<header> (<label>)' for every file."""
    labels = file_labels(record)
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(["Status", "Key"] + [f"{h} ({lbl})" for h in record.headers for lbl in labels])
    for rec in record.rows:
        line = [rec.status, rec.key_value]
        for cell in rec.cells:
            line.extend(v if v is not None else "" for v in cell.values)
        writer.writerow(line)
    return buf.getvalue()


def export_xlsx(record: ComparisonRecord, out_path: Path) -> Path:
    """Write the comparison as a styled workbook (Summary + Comparison sheets)."""
    import openpyxl
    from openpyxl.styles import Alignment, Font, PatternFill
    from openpyxl.utils import get_column_letter

    header_font = Font(bold=True)
    header_fill = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")
    labels = file_labels(record)

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Comparison"
    columns = ["Status", "Key"] + [f"{h} ({lbl})" for h in record.headers for lbl in labels]
    for col_idx, name in enumerate(columns, start=1):
        cell = ws.cell(row=1, column=col_idx, value=name)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center")

    for row_idx, rec in enumerate(record.rows, start=2):
        fill = PatternFill(
            start_color=STATUS_COLORS.get(rec.status, "FFFFFF"),
            end_color=STATUS_COLORS.get(rec.status, "FFFFFF"),
            fill_type="solid",
        )
        ws.cell(row=row_idx, column=1, value=rec.status).fill = fill
        ws.cell(row=row_idx, column=2, value=rec.key_value)
        col_idx = 3
        for c in rec.cells:
            for v in c.values:
                cell = ws.cell(row=row_idx, column=col_idx, value=v)
                if c.changed:
                    cell.fill = fill
                col_idx += 1

    # Auto-fit column widths (approximate)
    for col_idx in range(1, len(columns) + 1):
        max_len = len(str(columns[col_idx - 1]))
        for row_idx in range(2, len(record.rows) + 2):
            val = ws.cell(row=row_idx, column=col_idx).value
            if val is not None:
                max_len = max(max_len, min(60, len(str(val))))
        ws.column_dimensions[get_column_letter(col_idx)].width = max_len + 3
    ws.freeze_panes = "A2"

    ws_sum = wb.create_sheet("Summary")
    s = record.summary
    summary_rows = [
        ("Date", record.date),
        ("File Type", record.file_type),
        ("Key Column", record.key_column),
        ("Total Items", s.total_items),
        ("Identical", s.identical),
        ("Modified", s.modified),
        ("Missing", s.missing),
        ("Match Score", f"{s.match_score}%"),
    ]
    for i, name in enumerate(record.file_names):
        summary_rows.append((f"File {i + 1}", f"{labels[i]} ({name})" if labels[i] != name else name))
        if i < len(s.missing_per_file):
            summary_rows.append((f"Missing from {labels[i]}", s.missing_per_file[i]))
    for row_idx, (name, value) in enumerate(summary_rows, start=1):
        ws_sum.cell(row=row_idx, column=1, value=name).font = header_font
        ws_sum.cell(row=row_idx, column=2, value=value)
    ws_sum.column_dimensions["A"].width = max(len(str(n)) for n, _ in summary_rows) + 3
    ws_sum.column_dimensions["B"].width = 40

    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    wb.save(str(out))
    return out


def write_report(record: ComparisonRecord, out_path: Path) -> Path:
    """Write by extension: .html/.htm, .csv or .xlsx."""
    out = Path(out_path)
    suffix = out.suffix.lower()
    if suffix == ".xlsx":
        return export_xlsx(record, out)
    if suffix in (".html", ".htm"):
        text = export_html(record)
    elif suffix == ".csv":
        text = export_csv(record)
    else:
        raise ValueError(f"Unsupported export format: {out.suffix or out.name} (use .html, .csv or .xlsx)")
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(text, encoding="utf-8")
    return out
