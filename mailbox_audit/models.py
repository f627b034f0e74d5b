"""
Audit data models — Immutable per-account results produced by the collectors
and consumed by the report renderers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class AccountHandle:
    """A resolved mailbox: primary SMTP address plus directory identity."""
    address: str
    identity: str


@dataclass(frozen=True)
class MessageSummary:
    """Point-in-time copy of one received message."""
    subject: str
    sender: str                          # Sender address or "Unknown"
    received_at: Optional[datetime] = None


@dataclass(frozen=True)
class ActivitySnapshot:
    """
    Inbox statistics and activity timestamps for one mailbox.

    A snapshot with ``error`` set always carries zero counts, no dates and
    no messages. ``warnings`` holds field-level failures that did not
    invalidate the snapshot (e.g. the sent-items lookup).
    """
    total: int = 0
    read: int = 0
    unread: int = 0
    last_received: Optional[datetime] = None
    last_sent: Optional[datetime] = None
    recent_read: tuple[MessageSummary, ...] = ()
    error: Optional[str] = None
    warnings: tuple[str, ...] = ()

    @classmethod
    def failed(cls, error: str) -> "ActivitySnapshot":
        return cls(error=error)


@dataclass(frozen=True)
class PermissionSet:
    """Delegated access grants on a mailbox, one tuple per category."""
    full_access: tuple[str, ...] = ()
    send_as: tuple[str, ...] = ()
    send_on_behalf: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.full_access or self.send_as or self.send_on_behalf)


@dataclass(frozen=True)
class ReportRecord:
    """One output row per input account."""
    address: str                         # Resolved address, or the raw identity on failure
    total: int = 0
    read: int = 0
    unread: int = 0
    last_received: Optional[datetime] = None
    last_sent: Optional[datetime] = None
    recent_read: tuple[MessageSummary, ...] = ()
    permissions: PermissionSet = field(default_factory=PermissionSet)
    error: Optional[str] = None
    warnings: tuple[str, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, address: str, error: str) -> "ReportRecord":
        """Zero-valued record for an account that could not be processed."""
        return cls(address=address, error=error)

    @classmethod
    def from_parts(
        cls,
        handle: AccountHandle,
        activity: ActivitySnapshot,
        permissions: PermissionSet,
    ) -> "ReportRecord":
        return cls(
            address=handle.address,
            total=activity.total,
            read=activity.read,
            unread=activity.unread,
            last_received=activity.last_received,
            last_sent=activity.last_sent,
            recent_read=activity.recent_read,
            permissions=permissions,
            error=activity.error,
            warnings=activity.warnings + permissions.warnings,
        )


def summarize(records: list[ReportRecord]) -> dict[str, int]:
    """Total / succeeded / failed counts for a record sequence."""
    succeeded = sum(1 for r in records if r.succeeded)
    return {
        "total": len(records),
        "succeeded": succeeded,
        "failed": len(records) - succeeded,
    }
