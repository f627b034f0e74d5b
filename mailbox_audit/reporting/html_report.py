"""
HTML Mailbox Report — Single-file HTML output.

Generates a self-contained HTML report with inline CSS: a summary of the
run followed by one card per audited mailbox with its statistics,
delegated permissions, and most recently read messages.
"""

from __future__ import annotations

import html
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from ..models import MessageSummary, PermissionSet, ReportRecord, summarize


DATE_FORMAT = "%Y-%m-%d %H:%M"
GENERATED_FORMAT = "%Y-%m-%d %H:%M:%S"
MISSING_DATE = "N/A"

# (label, PermissionSet attribute)
_PERMISSION_CATEGORIES = [
    ("Full Access", "full_access"),
    ("Send As", "send_as"),
    ("Send on Behalf", "send_on_behalf"),
]

# ---------------------------------------------------------------------------
# Utility helpers
# ---------------------------------------------------------------------------

def _esc(val: Any) -> str:
    if val is None:
        return ""
    return html.escape(str(val))


def _fmt_date(value: Optional[datetime]) -> str:
    return value.strftime(DATE_FORMAT) if value else MISSING_DATE


def _stat(label: str, value: Any) -> str:
    return (
        f'<div class="stat"><div class="stat-label">{_esc(label)}</div>'
        f'<div class="stat-value">{_esc(value)}</div></div>'
    )


def _render_permissions(permissions: PermissionSet) -> str:
    """Non-empty categories only; a single notice when nothing is delegated."""
    if permissions.is_empty:
        return '<div class="perm-none">No additional permissions</div>'

    blocks = []
    for label, attr in _PERMISSION_CATEGORIES:
        entries = getattr(permissions, attr)
        if not entries:
            continue
        items = "".join(f"<li>{_esc(e)}</li>" for e in entries)
        blocks.append(
            f'<div class="perm-group"><div class="perm-title">{_esc(label)} ({len(entries)})</div>'
            f"<ul>{items}</ul></div>"
        )
    return "\n".join(blocks)


def _render_messages(messages: tuple[MessageSummary, ...]) -> str:
    if not messages:
        return ""
    rows = "".join(
        f"<tr><td>{_esc(m.subject)}</td><td>{_esc(m.sender)}</td>"
        f"<td class='nowrap'>{_esc(_fmt_date(m.received_at))}</td></tr>"
        for m in messages
    )
    return f"""
      <div class="section-title">Last Read Messages</div>
      <table class="msg-table">
        <thead><tr><th>Subject</th><th>From</th><th>Received</th></tr></thead>
        <tbody>{rows}</tbody>
      </table>"""


def _render_card(record: ReportRecord) -> str:
    if record.error:
        return f"""
    <div class="card card-error">
      <div class="card-title">{_esc(record.address)}</div>
      <div class="error-msg">Error: {_esc(record.error)}</div>
    </div>"""

    stats = "".join([
        _stat("Total Messages", record.total),
        _stat("Read", record.read),
        _stat("Unread", record.unread),
        _stat("Last Received", _fmt_date(record.last_received)),
        _stat("Last Sent", _fmt_date(record.last_sent)),
    ])
    return f"""
    <div class="card">
      <div class="card-title">{_esc(record.address)}</div>
      <div class="stat-grid">{stats}</div>
      <div class="section-title">Permissions</div>
      {_render_permissions(record.permissions)}
      {_render_messages(record.recent_read)}
    </div>"""


# ---------------------------------------------------------------------------
# Main renderer
# ---------------------------------------------------------------------------

def render_html(records: list[ReportRecord], generated_at: datetime) -> str:
    """Build the full HTML string. Same records and timestamp, same bytes."""
    counts = summarize(records)
    cards_html = "\n".join(_render_card(r) for r in records)
    generated = generated_at.strftime(GENERATED_FORMAT)

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Mailbox Analysis Report</title>
<style>
*, *::before, *::after {{ box-sizing: border-box; margin: 0; padding: 0; }}
html {{ font-size: 15px; }}
body {{
  font-family: "Segoe UI", -apple-system, BlinkMacSystemFont, Roboto, "Helvetica Neue", sans-serif;
  background: #f8fafc; color: #1e293b; line-height: 1.55;
}}
.page {{ max-width: 1100px; margin: 0 auto; padding: 2rem 1.5rem; }}

/* ---------- Header ---------- */
.report-header {{
  background: linear-gradient(135deg, #0f172a 0%, #1e3a5f 100%);
  color: #f1f5f9; padding: 2rem 2.5rem; border-radius: 12px; margin-bottom: 2rem;
}}
.report-header h1 {{ font-size: 1.6rem; font-weight: 700; margin-bottom: .3rem; }}
.report-header .subtitle {{ font-size: .85rem; opacity: .75; }}

/* ---------- Summary ---------- */
.summary {{ display: flex; gap: 1rem; margin-bottom: 2rem; flex-wrap: wrap; }}
.summary-item {{
  flex: 1; min-width: 180px; background: #fff; border-radius: 10px;
  padding: 1.2rem 1.4rem; box-shadow: 0 1px 3px rgba(0,0,0,.06);
}}
.summary-item .num {{ font-size: 1.8rem; font-weight: 800; line-height: 1.1; }}
.summary-item .lbl {{ font-size: .8rem; color: #64748b; text-transform: uppercase; letter-spacing: .04em; }}
.num.ok {{ color: #16a34a; }}
.num.fail {{ color: #dc2626; }}

/* ---------- Cards ---------- */
.card {{
  background: #fff; border-radius: 10px; padding: 1.4rem 1.6rem; margin-bottom: 1.2rem;
  box-shadow: 0 1px 3px rgba(0,0,0,.06); border-left: 4px solid #2563eb;
}}
.card-error {{ border-left-color: #dc2626; }}
.card-title {{ font-weight: 700; font-size: 1.05rem; margin-bottom: .8rem; }}
.error-msg {{ color: #dc2626; font-size: .9rem; }}
.stat-grid {{
  display: grid; grid-template-columns: repeat(auto-fill, minmax(160px, 1fr));
  gap: .8rem; margin-bottom: 1rem;
}}
.stat {{ background: #f8fafc; border-radius: 6px; padding: .6rem .8rem; }}
.stat-label {{ font-size: .72rem; text-transform: uppercase; color: #64748b; letter-spacing: .03em; }}
.stat-value {{ font-weight: 700; font-size: 1.05rem; }}
.section-title {{
  font-weight: 600; font-size: .85rem; color: #475569; margin: .8rem 0 .4rem;
  padding-bottom: .2rem; border-bottom: 1px solid #e2e8f0;
}}
.perm-group {{ margin-bottom: .5rem; }}
.perm-title {{ font-size: .82rem; font-weight: 600; }}
.perm-group ul {{ margin-left: 1.2rem; font-size: .82rem; color: #334155; }}
.perm-none {{ font-size: .85rem; color: #94a3b8; font-style: italic; }}
.msg-table {{ width: 100%; border-collapse: collapse; font-size: .8rem; }}
.msg-table th {{
  text-align: left; font-size: .7rem; text-transform: uppercase; color: #64748b;
  padding: .35rem .5rem; background: #eef2f7; border-bottom: 1px solid #e2e8f0;
}}
.msg-table td {{ padding: .35rem .5rem; border-bottom: 1px solid #f1f5f9; vertical-align: top; word-break: break-word; }}
.nowrap {{ white-space: nowrap; }}
.footer {{ text-align: center; font-size: .75rem; color: #94a3b8; margin-top: 3rem; padding-top: 1.5rem; border-top: 1px solid #e2e8f0; }}

@media print {{
  body {{ background: #fff; }}
  .card {{ break-inside: avoid; }}
}}
</style>
</head>
<body>
<div class="page">

  <div class="report-header">
    <h1>Mailbox Analysis Report</h1>
    <div class="subtitle">Generated: {_esc(generated)}</div>
  </div>

  <div class="summary">
    <div class="summary-item"><div class="num">{counts["total"]}</div><div class="lbl">Mailboxes Processed</div></div>
    <div class="summary-item"><div class="num ok">{counts["succeeded"]}</div><div class="lbl">Successful</div></div>
    <div class="summary-item"><div class="num fail">{counts["failed"]}</div><div class="lbl">Failed</div></div>
  </div>

  {cards_html}

  <div class="footer">
    Exchange Mailbox Audit &middot; Read-Only &middot; {_esc(generated)}
  </div>

</div>
</body>
</html>"""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def export_html(
    records: list[ReportRecord],
    filepath: Path,
    generated_at: datetime,
) -> Path:
    """
    Write the self-contained HTML report.

    Returns the Path to the written file.
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    filepath.write_text(render_html(records, generated_at), encoding="utf-8")
    return filepath
