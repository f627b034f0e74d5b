"""
Permission Collector
Full-access, send-as, and send-on-behalf delegates for one mailbox.
Each category is queried independently; a failed query leaves that
category empty and is reported as a warning.
"""

from __future__ import annotations

import logging

from ..config import FULL_ACCESS_RIGHT, SELF_PRINCIPAL, SEND_AS_RIGHT
from ..exchange.base import DirectoryClient, PermissionGrant
from ..models import PermissionSet
from .base import BaseCollector

logger = logging.getLogger("mailbox_audit.collectors.permissions")


def _is_explicit_grant(grant: PermissionGrant, right: str) -> bool:
    """Non-inherited allow entry for *right* held by someone other than SELF."""
    if grant.is_inherited or grant.deny:
        return False
    if grant.user.strip().upper() == SELF_PRINCIPAL.upper():
        return False
    return any(r.lower() == right.lower() for r in grant.rights)


def format_full_access(grant: PermissionGrant) -> str:
    return f"{grant.user} ({', '.join(grant.rights)})"


class PermissionCollector(BaseCollector):
    name = "permissions"
    description = "Mailbox delegation: FullAccess, Send-As, Send-on-Behalf"

    def __init__(self, directory: DirectoryClient):
        self.directory = directory

    def collect(self, identity: str) -> PermissionSet:
        """Never raises; failed categories are empty and listed in ``warnings``."""
        warnings: list[str] = []

        full_access: tuple[str, ...] = ()
        grants, error = self.safe_call(
            "FullAccess query", identity, self.directory.get_full_access_grants, identity,
        )
        if error:
            warnings.append(f"FullAccess permissions unavailable: {error}")
        else:
            full_access = tuple(
                format_full_access(g) for g in grants or [] if _is_explicit_grant(g, FULL_ACCESS_RIGHT)
            )

        send_as: tuple[str, ...] = ()
        grants, error = self.safe_call(
            "Send-As query", identity, self.directory.get_send_as_grants, identity,
        )
        if error:
            warnings.append(f"Send-As permissions unavailable: {error}")
        else:
            send_as = tuple(
                g.user for g in grants or [] if _is_explicit_grant(g, SEND_AS_RIGHT)
            )

        send_on_behalf: tuple[str, ...] = ()
        delegates, error = self.safe_call(
            "Send-on-Behalf query", identity, self.directory.get_configured_delegates, identity,
        )
        if error:
            warnings.append(f"Send-on-Behalf delegates unavailable: {error}")
        else:
            send_on_behalf = tuple(str(d) for d in delegates or [])

        logger.debug(
            f"[{self.name}] {identity}: {len(full_access)} FullAccess, "
            f"{len(send_as)} Send-As, {len(send_on_behalf)} Send-on-Behalf"
        )
        return PermissionSet(
            full_access=full_access,
            send_as=send_as,
            send_on_behalf=send_on_behalf,
            warnings=tuple(warnings),
        )
