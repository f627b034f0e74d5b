"""
Activity Collector
Inbox counts, last received / last sent timestamps, and the most recent
read messages for one mailbox.
"""

from __future__ import annotations

import logging

from ..config import RECENT_ITEM_WINDOW, RECENT_READ_LIMIT
from ..exchange.base import InboxItem, MailClient
from ..models import ActivitySnapshot, MessageSummary
from .base import BaseCollector

logger = logging.getLogger("mailbox_audit.collectors.activity")

UNKNOWN_SENDER = "Unknown"


class ActivityCollector(BaseCollector):
    name = "activity"
    description = "Mailbox activity: inbox counts, recent items, last sent"

    def __init__(
        self,
        mail: MailClient,
        item_window: int = RECENT_ITEM_WINDOW,
        read_limit: int = RECENT_READ_LIMIT,
    ):
        self.mail = mail
        self.item_window = item_window
        self.read_limit = read_limit

    def collect(self, address: str) -> ActivitySnapshot:
        """Never raises; failures become ``error`` or ``warnings`` on the snapshot."""
        counts, error = self.safe_call("Inbox counts", address, self.mail.get_inbox_counts, address)
        if error:
            return ActivitySnapshot.failed(error)

        items, error = self.safe_call(
            "Recent inbox items", address,
            self.mail.get_recent_inbox_items, address, self.item_window,
        )
        if error:
            return ActivitySnapshot.failed(error)

        items = list(items or [])
        last_received = items[0].received_at if items else None
        recent_read = tuple(
            _summarize(item) for item in items if item.is_read
        )[: self.read_limit]

        # Sent items are looked up independently of the inbox.
        warnings: tuple[str, ...] = ()
        last_sent = None
        sent, error = self.safe_call("Last sent lookup", address, self.mail.get_most_recent_sent_item, address)
        if error:
            warnings = (f"Last sent date unavailable: {error}",)
        elif sent is not None:
            last_sent = sent.sent_at

        return ActivitySnapshot(
            total=counts.total,
            read=counts.total - counts.unread,
            unread=counts.unread,
            last_received=last_received,
            last_sent=last_sent,
            recent_read=recent_read,
            warnings=warnings,
        )


def _summarize(item: InboxItem) -> MessageSummary:
    return MessageSummary(
        subject=item.subject or "",
        sender=item.sender or UNKNOWN_SENDER,
        received_at=item.received_at,
    )
