"""
CSV exporter — One flat row per audited mailbox.
"""

from __future__ import annotations

import csv
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..models import ReportRecord

CSV_FIELDS = [
    "EmailAddress",
    "TotalMessages",
    "ReadMessages",
    "UnreadMessages",
    "LastReceivedDate",
    "LastSentDate",
    "FullAccessPermissions",
    "SendAsPermissions",
    "SendOnBehalfPermissions",
    "LastReadMessagesCount",
    "Error",
]

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LIST_SEPARATOR = "; "


def _fmt_date(value: Optional[datetime]) -> str:
    return value.strftime(DATE_FORMAT) if value else ""


def build_csv_rows(records: list[ReportRecord]) -> list[dict]:
    """Flatten records into CSV rows, preserving record order."""
    return [
        {
            "EmailAddress": r.address,
            "TotalMessages": r.total,
            "ReadMessages": r.read,
            "UnreadMessages": r.unread,
            "LastReceivedDate": _fmt_date(r.last_received),
            "LastSentDate": _fmt_date(r.last_sent),
            "FullAccessPermissions": LIST_SEPARATOR.join(r.permissions.full_access),
            "SendAsPermissions": LIST_SEPARATOR.join(r.permissions.send_as),
            "SendOnBehalfPermissions": LIST_SEPARATOR.join(r.permissions.send_on_behalf),
            "LastReadMessagesCount": len(r.recent_read),
            "Error": r.error or "",
        }
        for r in records
    ]


def export_csv(records: list[ReportRecord], filepath: Path) -> Path:
    """
    Write the CSV export.

    Returns:
        Path to the created CSV file.
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w", newline="", encoding="utf-8-sig") as fh:
        writer = csv.DictWriter(fh, fieldnames=CSV_FIELDS)
        writer.writeheader()
        writer.writerows(build_csv_rows(records))

    return filepath
