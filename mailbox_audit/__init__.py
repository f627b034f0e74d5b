"""
Exchange Mailbox Audit
======================
A read-only audit of on-premise Exchange mailboxes.
Collects message volume, recent activity and delegated permissions for a
list of accounts and produces an HTML report plus a CSV export.

WARNING: This tool operates in STRICT READ-ONLY mode.
         Only Get-* cmdlets and EWS read operations are issued.
"""

__version__ = "1.0.0"
__author__ = "Exchange Mailbox Audit"
__mode__ = "READ-ONLY"
