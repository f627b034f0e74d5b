"""
Collaborator interfaces — what the audit core needs from Exchange.

The mail client answers mailbox content questions (EWS); the directory
client answers identity and permission questions (Exchange Management
Shell). Each call may fail independently and raises on failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


class CollaboratorUnavailable(Exception):
    """Raised when a backing Exchange capability cannot be set up."""
    pass


class AccountNotFoundError(Exception):
    """Raised when the directory cannot locate an identity."""
    pass


# ─── Wire-side values ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class InboxCounts:
    total: int
    unread: int


@dataclass(frozen=True)
class InboxItem:
    subject: str
    sender: Optional[str]
    received_at: Optional[datetime]
    is_read: bool


@dataclass(frozen=True)
class SentItem:
    sent_at: Optional[datetime]


@dataclass(frozen=True)
class MailboxIdentity:
    primary_smtp_address: str
    identity: str
    distinguished_name: str = ""


@dataclass(frozen=True)
class PermissionGrant:
    """A single ACE as reported by Get-MailboxPermission / Get-ADPermission."""
    user: str
    rights: tuple[str, ...]
    is_inherited: bool = False
    deny: bool = False


# ─── Interfaces ─────────────────────────────────────────────────────────────

class MailClient(ABC):
    """Read access to mailbox folders."""

    @abstractmethod
    def get_inbox_counts(self, address: str) -> InboxCounts:
        raise NotImplementedError

    @abstractmethod
    def get_recent_inbox_items(self, address: str, max_items: int) -> list[InboxItem]:
        """Most recently received items first."""
        raise NotImplementedError

    @abstractmethod
    def get_most_recent_sent_item(self, address: str) -> Optional[SentItem]:
        raise NotImplementedError

    def get_stats(self) -> dict:
        """Request counters for the run summary."""
        return {}


class DirectoryClient(ABC):
    """Identity resolution and permission lookups."""

    @abstractmethod
    def resolve_account(self, identity: str) -> MailboxIdentity:
        """Raises AccountNotFoundError when the identity does not exist."""
        raise NotImplementedError

    @abstractmethod
    def get_full_access_grants(self, identity: str) -> list[PermissionGrant]:
        raise NotImplementedError

    @abstractmethod
    def get_send_as_grants(self, identity: str) -> list[PermissionGrant]:
        raise NotImplementedError

    @abstractmethod
    def get_configured_delegates(self, identity: str) -> list[str]:
        raise NotImplementedError

    def get_stats(self) -> dict:
        return {}
