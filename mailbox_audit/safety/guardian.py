"""
Safety Guardian — Enforces strict read-only operation.
Validates every cmdlet pipeline sent to the Exchange Management Shell,
blocks anything that is not a read verb, and logs safety events.
"""

from __future__ import annotations

import logging
import re
import sys
from datetime import datetime, timezone

logger = logging.getLogger("mailbox_audit.safety")

# ─── Allowed Verbs ───────────────────────────────────────────────────────────

READ_VERBS = {"Get", "Select", "Where", "ForEach", "Sort", "ConvertTo"}
_READ_VERBS_LOWER = {v.lower() for v in READ_VERBS}

# PowerShell accepts typographic single quotes as string delimiters too
SINGLE_QUOTE_CHARS = "'‘’‚‛"

# Verb-Noun tokens outside of quoted strings
_CMDLET_PATTERN = re.compile(r"(?<![\w$.-])([A-Za-z]+)-([A-Za-z]+)\b")
_QUOTED_PATTERN = re.compile(
    rf"[{SINGLE_QUOTE_CHARS}](?:[{SINGLE_QUOTE_CHARS}]{{2}}|[^{SINGLE_QUOTE_CHARS}])*[{SINGLE_QUOTE_CHARS}]"
    r"|\"(?:[^\"`]|`.)*\""
)


class SafetyViolation(Exception):
    """Raised when a write operation is attempted."""
    pass


class SafetyGuardian:
    """
    Validates every outbound shell command to ensure read-only operation.
    Maintains an audit log of all safety checks and violations.
    """

    def __init__(self):
        self.violations: list[dict] = []
        self.checks_performed: int = 0
        self.started_at: str = datetime.now(timezone.utc).isoformat()

    def validate_command(self, command: str) -> bool:
        """
        Validate that a cmdlet pipeline only reads.
        Returns True if safe, raises SafetyViolation if not.
        """
        self.checks_performed += 1
        unquoted = _QUOTED_PATTERN.sub("''", command)
        cmdlets = _CMDLET_PATTERN.findall(unquoted)
        if not cmdlets:
            self._record_violation(command, "No cmdlet found")
            raise SafetyViolation(f"SAFETY VIOLATION: Unrecognized command: {command}")

        for verb, noun in cmdlets:
            if verb.lower() not in _READ_VERBS_LOWER:
                self._record_violation(command, f"Write verb blocked: {verb}-{noun}")
                raise SafetyViolation(
                    f"SAFETY VIOLATION: Write cmdlet blocked: {verb}-{noun}"
                )
        return True

    def _record_violation(self, command: str, reason: str):
        self.violations.append({
            "at": datetime.now(timezone.utc).isoformat(),
            "reason": reason,
            "command": command,
        })
        logger.critical(f"Blocked shell command ({reason}): {command}")

    def get_audit_summary(self) -> dict:
        return {
            "started_at": self.started_at,
            "checks_performed": self.checks_performed,
            "violations": len(self.violations),
        }

    @staticmethod
    def print_banner():
        """Read-only notice shown before any connection is made."""
        lines = [
            "READ-ONLY MAILBOX AUDIT: mailboxes are inspected, never changed",
            "Shell pipelines are limited to: " + ", ".join(sorted(READ_VERBS)),
            "Inbox and Sent Items are queried without marking items as read",
        ]
        width = max(len(line) for line in lines) + 4

        encoding = (getattr(sys.stdout, "encoding", "") or "").lower().replace("-", "")
        if sys.stdout.isatty() and encoding.startswith("utf"):
            top, side, bottom = "┌" + "─" * width + "┐", "│", "└" + "─" * width + "┘"
        else:
            top = bottom = "+" + "-" * width + "+"
            side = "|"

        print()
        print(top)
        for line in lines:
            print(f"{side}  {line.ljust(width - 2)}{side}")
        print(bottom)
        print()
