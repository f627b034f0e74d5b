"""
Aggregator — Builds one ReportRecord per input identity.

Resolution failure is record-fatal and skips the collectors. Once an
account resolves, activity and permissions are both collected; only an
activity error marks the record as failed, permission problems stay
field-level warnings.
"""

from __future__ import annotations

import logging

from .collectors import AccountResolver, ActivityCollector, PermissionCollector, describe_error
from .exchange.base import AccountNotFoundError
from .exchange.shell import ShellCommandError
from .models import ReportRecord

logger = logging.getLogger("mailbox_audit.aggregator")


class MailboxAggregator:

    def __init__(
        self,
        resolver: AccountResolver,
        activity: ActivityCollector,
        permissions: PermissionCollector,
    ):
        self.resolver = resolver
        self.activity = activity
        self.permissions = permissions

    def aggregate(self, raw_identity: str) -> ReportRecord:
        try:
            handle = self.resolver.resolve(raw_identity)
        except (AccountNotFoundError, ShellCommandError) as e:
            message = describe_error(e)
            logger.error(f"Could not resolve '{raw_identity}': {message}")
            return ReportRecord.failed(raw_identity, message)

        snapshot = self.activity.collect(handle.address)
        if snapshot.error:
            logger.error(f"Activity collection failed for {handle.address}: {snapshot.error}")

        permissions = self.permissions.collect(handle.identity)
        return ReportRecord.from_parts(handle, snapshot, permissions)

    def get_stats(self) -> dict:
        """Combined request counters of the mail and directory clients."""
        stats = dict(self.activity.mail.get_stats())
        stats.update(self.permissions.directory.get_stats())
        return stats
