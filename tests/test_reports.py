"""
Tests for the HTML report and CSV export.
"""
import csv
from datetime import datetime

import pytest

from mailbox_audit.models import MessageSummary, PermissionSet, ReportRecord
from mailbox_audit.reporting import CSV_FIELDS, build_csv_rows, export_csv, export_html, render_html

GENERATED = datetime(2024, 3, 1, 12, 0, 5)


@pytest.fixture
def records():
    return [
        ReportRecord(
            address="shared.mbx@co.example",
            total=120,
            read=117,
            unread=3,
            last_received=datetime(2024, 3, 1, 9, 30, 15),
            last_sent=None,
            recent_read=(
                MessageSummary("Budget <Q1>", "cfo@co.example", datetime(2024, 3, 1, 9, 30)),
                MessageSummary("Lunch", "Unknown", datetime(2024, 2, 29, 12, 0)),
            ),
        ),
        ReportRecord(
            address="team@co.example",
            total=10,
            read=10,
            unread=0,
            permissions=PermissionSet(
                full_access=("CO\\alice (FullAccess)", "CO\\bob (FullAccess)"),
                send_as=("CO\\carol",),
            ),
        ),
        ReportRecord.failed("ghost@co.example", "Mailbox not found: ghost@co.example"),
    ]


# ─── HTML ───────────────────────────────────────────────────────────────────

class TestRenderHtml:
    def test_summary_counts(self, records):
        output = render_html(records, GENERATED)
        assert "Mailboxes Processed" in output
        assert '<div class="num">3</div>' in output
        assert '<div class="num ok">2</div>' in output
        assert '<div class="num fail">1</div>' in output
        assert "Generated: 2024-03-01 12:00:05" in output

    def test_cards_follow_record_order(self, records):
        output = render_html(records, GENERATED)
        positions = [output.index(r.address) for r in records]
        assert positions == sorted(positions)

    def test_missing_dates_render_na(self, records):
        output = render_html(records[:1], GENERATED)
        assert "2024-03-01 09:30" in output
        assert "N/A" in output

    def test_no_permissions_notice(self, records):
        output = render_html(records[:1], GENERATED)
        assert "No additional permissions" in output

    def test_only_non_empty_categories(self, records):
        output = render_html(records[1:2], GENERATED)
        assert "Full Access (2)" in output
        assert "Send As (1)" in output
        assert "Send on Behalf" not in output
        assert "No additional permissions" not in output

    def test_messages_table_only_when_present(self, records):
        assert "Last Read Messages" in render_html(records[:1], GENERATED)
        assert "Last Read Messages" not in render_html(records[1:2], GENERATED)

    def test_error_card(self, records):
        output = render_html(records[2:], GENERATED)
        assert "Error: Mailbox not found: ghost@co.example" in output
        assert "card-error" in output
        assert "Total Messages" not in output

    def test_values_are_escaped(self, records):
        output = render_html(records[:1], GENERATED)
        assert "Budget &lt;Q1&gt;" in output
        assert "Budget <Q1>" not in output

    def test_deterministic(self, records):
        assert render_html(records, GENERATED) == render_html(records, GENERATED)

    def test_empty_run(self):
        output = render_html([], GENERATED)
        assert '<div class="num">0</div>' in output

    def test_export_writes_file(self, records, tmp_path):
        path = export_html(records, tmp_path / "out" / "report.html", GENERATED)
        assert path.exists()
        assert path.read_text(encoding="utf-8") == render_html(records, GENERATED)


# ─── CSV ────────────────────────────────────────────────────────────────────

class TestCsvExport:
    def test_header_order(self, records, tmp_path):
        path = export_csv(records, tmp_path / "report.csv")
        with open(path, newline="", encoding="utf-8-sig") as fh:
            header = next(csv.reader(fh))
        assert header == CSV_FIELDS

    def test_row_values(self, records):
        row = build_csv_rows(records)[0]
        assert row["EmailAddress"] == "shared.mbx@co.example"
        assert (row["TotalMessages"], row["ReadMessages"], row["UnreadMessages"]) == (120, 117, 3)
        assert row["LastReceivedDate"] == "2024-03-01 09:30:15"
        assert row["LastSentDate"] == ""
        assert row["FullAccessPermissions"] == ""
        assert row["SendAsPermissions"] == ""
        assert row["SendOnBehalfPermissions"] == ""
        assert row["LastReadMessagesCount"] == 2
        assert row["Error"] == ""

    def test_permissions_are_joined(self, records):
        row = build_csv_rows(records)[1]
        assert row["FullAccessPermissions"] == "CO\\alice (FullAccess); CO\\bob (FullAccess)"
        assert row["SendAsPermissions"] == "CO\\carol"

    def test_failed_record_row(self, records):
        row = build_csv_rows(records)[2]
        assert row["EmailAddress"] == "ghost@co.example"
        assert row["TotalMessages"] == 0
        assert row["Error"] == "Mailbox not found: ghost@co.example"

    def test_written_rows(self, records, tmp_path):
        path = export_csv(records, tmp_path / "report.csv")
        raw = path.read_bytes()
        assert raw.startswith(b"\xef\xbb\xbf")

        with open(path, newline="", encoding="utf-8-sig") as fh:
            lines = list(csv.reader(fh))
        assert len(lines) == 1 + len(records)
        assert lines[1] == [
            "shared.mbx@co.example", "120", "117", "3",
            "2024-03-01 09:30:15", "", "", "", "", "2", "",
        ]
