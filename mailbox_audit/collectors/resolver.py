"""
Account Resolver — Maps a raw identity from the input file to a mailbox.
"""

from __future__ import annotations

import logging

from ..exchange.base import AccountNotFoundError, DirectoryClient
from ..models import AccountHandle

logger = logging.getLogger("mailbox_audit.collectors.resolver")


class AccountResolver:
    name = "resolver"
    description = "Identity resolution: raw identity -> primary SMTP address"

    def __init__(self, directory: DirectoryClient):
        self.directory = directory

    def resolve(self, raw_identity: str) -> AccountHandle:
        """
        Resolve *raw_identity* through the directory.

        Raises:
            AccountNotFoundError: the directory has no matching mailbox.
        """
        identity = raw_identity.strip()
        if not identity:
            raise AccountNotFoundError("Empty identity value")

        mailbox = self.directory.resolve_account(identity)
        handle = AccountHandle(
            address=mailbox.primary_smtp_address or identity,
            identity=mailbox.identity or identity,
        )
        logger.debug(f"[{self.name}] {identity} -> {handle.address} ({handle.identity})")
        return handle
