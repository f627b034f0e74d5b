"""
EWS mail client — inbox statistics and recent items via exchangelib.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from exchangelib import DELEGATE, IMPERSONATION, Account, Configuration
from exchangelib.protocol import BaseProtocol, NoVerifyHTTPAdapter

from ..config import ExchangeConfig
from .base import CollaboratorUnavailable, InboxCounts, InboxItem, MailClient, SentItem

logger = logging.getLogger("mailbox_audit.exchange.ews")

_ACCESS_TYPES = {
    "delegate": DELEGATE,
    "impersonation": IMPERSONATION,
}

_INBOX_FIELDS = ("subject", "sender", "datetime_received", "is_read")


class EwsMailClient(MailClient):
    """
    Mail client backed by Exchange Web Services.

    Features:
      - Explicit server / endpoint or autodiscover
      - Delegate or impersonation access
      - Optional TLS verification bypass for self-signed on-premise certificates
    """

    def __init__(self, config: ExchangeConfig, credentials: Any, auth_type: Optional[str] = None):
        self.config = config
        self.credentials = credentials
        self.auth_type = auth_type

        access_type = _ACCESS_TYPES.get(config.access_type.lower())
        if access_type is None:
            raise CollaboratorUnavailable(f"Unknown EWS access type: {config.access_type}")
        self.access_type = access_type

        if not config.verify_ssl:
            logger.warning("TLS certificate verification is disabled for EWS.")
            BaseProtocol.HTTP_ADAPTER_CLS = NoVerifyHTTPAdapter

        self._configuration: Optional[Configuration] = None
        if not config.autodiscover:
            if not (config.server or config.ews_url):
                raise CollaboratorUnavailable(
                    "No Exchange server configured. Use --server, --ews-url, or --autodiscover."
                )
            try:
                self._configuration = Configuration(
                    server=None if config.ews_url else config.server,
                    service_endpoint=config.ews_url or None,
                    credentials=credentials,
                    auth_type=auth_type,
                )
            except (TypeError, ValueError) as e:
                raise CollaboratorUnavailable(f"Invalid EWS configuration: {e}") from e

        self._current: Optional[tuple[str, Account]] = None
        self._request_count = 0

    def _account(self, address: str) -> Account:
        """Account for *address*, reused only while the same address is queried."""
        if self._current and self._current[0] == address:
            return self._current[1]

        if self._configuration is not None:
            account = Account(
                primary_smtp_address=address,
                config=self._configuration,
                autodiscover=False,
                access_type=self.access_type,
            )
        else:
            account = Account(
                primary_smtp_address=address,
                credentials=self.credentials,
                autodiscover=True,
                access_type=self.access_type,
            )
        self._current = (address, account)
        return account

    def get_inbox_counts(self, address: str) -> InboxCounts:
        account = self._account(address)
        inbox = account.inbox
        inbox.refresh()
        self._request_count += 1
        return InboxCounts(
            total=inbox.total_count or 0,
            unread=inbox.unread_count or 0,
        )

    def get_recent_inbox_items(self, address: str, max_items: int) -> list[InboxItem]:
        account = self._account(address)
        tz = account.default_timezone
        qs = account.inbox.all().only(*_INBOX_FIELDS).order_by("-datetime_received")
        items = []
        for item in qs[:max_items]:
            sender = getattr(item, "sender", None)
            items.append(InboxItem(
                subject=item.subject or "",
                sender=sender.email_address if sender and sender.email_address else None,
                received_at=_localize(item.datetime_received, tz),
                is_read=bool(item.is_read),
            ))
        self._request_count += 1
        return items

    def get_most_recent_sent_item(self, address: str) -> Optional[SentItem]:
        account = self._account(address)
        qs = account.sent.all().only("datetime_sent").order_by("-datetime_sent")
        self._request_count += 1
        for item in qs[:1]:
            return SentItem(sent_at=_localize(item.datetime_sent, account.default_timezone))
        return None

    def get_stats(self) -> dict:
        return {"ews_requests": self._request_count}


def _localize(value: Optional[datetime], tz: Any) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return value.astimezone(tz)
    except (TypeError, ValueError):
        return value
