"""
Shared fixtures and fake Exchange collaborators.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

import pytest

from mailbox_audit.exchange.base import (
    AccountNotFoundError,
    DirectoryClient,
    InboxCounts,
    InboxItem,
    MailboxIdentity,
    MailClient,
    PermissionGrant,
    SentItem,
)


class FakeMailClient(MailClient):
    """In-memory mail client. Set an attribute to an Exception to make that call fail."""

    def __init__(
        self,
        counts: InboxCounts | Exception = InboxCounts(total=0, unread=0),
        items: list[InboxItem] | Exception | None = None,
        sent: Optional[SentItem] | Exception = None,
    ):
        self.counts = counts
        self.items = items or []
        self.sent = sent
        self.calls: list[tuple] = []

    def get_inbox_counts(self, address):
        self.calls.append(("counts", address))
        if isinstance(self.counts, Exception):
            raise self.counts
        return self.counts

    def get_recent_inbox_items(self, address, max_items):
        self.calls.append(("items", address, max_items))
        if isinstance(self.items, Exception):
            raise self.items
        return self.items[:max_items]

    def get_most_recent_sent_item(self, address):
        self.calls.append(("sent", address))
        if isinstance(self.sent, Exception):
            raise self.sent
        return self.sent


class FakeDirectory(DirectoryClient):
    """In-memory directory keyed by identity."""

    def __init__(
        self,
        mailboxes: dict[str, MailboxIdentity] | None = None,
        full_access: list[PermissionGrant] | Exception | None = None,
        send_as: list[PermissionGrant] | Exception | None = None,
        delegates: list[str] | Exception | None = None,
    ):
        self.mailboxes = mailboxes or {}
        self.full_access = full_access or []
        self.send_as = send_as or []
        self.delegates = delegates or []
        self.calls: list[tuple] = []

    def resolve_account(self, identity):
        self.calls.append(("resolve", identity))
        if identity not in self.mailboxes:
            raise AccountNotFoundError(f"Mailbox not found: {identity}")
        return self.mailboxes[identity]

    def _answer(self, name, identity, value):
        self.calls.append((name, identity))
        if isinstance(value, Exception):
            raise value
        return value

    def get_full_access_grants(self, identity):
        return self._answer("full_access", identity, self.full_access)

    def get_send_as_grants(self, identity):
        return self._answer("send_as", identity, self.send_as)

    def get_configured_delegates(self, identity):
        return self._answer("delegates", identity, self.delegates)


def make_item(
    subject: str = "Hello",
    sender: Optional[str] = "sender@co.example",
    received_at: Optional[datetime] = None,
    is_read: bool = True,
) -> InboxItem:
    return InboxItem(
        subject=subject,
        sender=sender,
        received_at=received_at or datetime(2024, 3, 1, 9, 30),
        is_read=is_read,
    )


@pytest.fixture
def shared_mailbox():
    return MailboxIdentity(
        primary_smtp_address="shared.mbx@co.example",
        identity="co.example/Users/Shared Mailbox",
        distinguished_name="CN=Shared Mailbox,CN=Users,DC=co,DC=example",
    )


@pytest.fixture
def write_csv(tmp_path):
    """Write text to a CSV file under tmp_path and return its path."""
    def _write(content: str, name: str = "accounts.csv"):
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path
    return _write
