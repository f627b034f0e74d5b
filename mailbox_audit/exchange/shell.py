"""
Exchange Management Shell client — identity and permission lookups.

Each lookup runs one read-only cmdlet pipeline in a PowerShell subprocess,
after loading either the local Exchange snap-in or a remote Exchange
session, and parses the ConvertTo-Json output.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
import sys
from typing import Any, Optional

from ..config import EXCHANGE_SNAPIN, SEND_AS_RIGHT, ShellConfig
from ..safety.guardian import SINGLE_QUOTE_CHARS, SafetyGuardian
from .base import (
    AccountNotFoundError,
    CollaboratorUnavailable,
    DirectoryClient,
    MailboxIdentity,
    PermissionGrant,
)

logger = logging.getLogger("mailbox_audit.exchange.shell")

# Suppress the console window on Windows
_CREATE_NO_WINDOW = 0x08000000

_NOT_FOUND_MARKERS = ("couldn't be found", "could not be found", "ManagementObjectNotFoundException")


class ShellCommandError(Exception):
    """Raised when a shell command exits with a non-zero status."""
    def __init__(self, command: str, stderr: str, returncode: int):
        self.command = command
        self.stderr = stderr
        self.returncode = returncode
        message = stderr.strip().splitlines()[0] if stderr.strip() else f"exit code {returncode}"
        super().__init__(f"Exchange shell error: {message}")


def ps_quote(value: str) -> str:
    """Single-quote a value for safe interpolation into PowerShell."""
    escaped = "".join(ch * 2 if ch in SINGLE_QUOTE_CHARS else ch for ch in value)
    return "'" + escaped + "'"


def _as_list(data: Any) -> list:
    """ConvertTo-Json emits a bare object for single results."""
    if data is None:
        return []
    if isinstance(data, list):
        return data
    return [data]


def _as_strings(value: Any) -> tuple[str, ...]:
    return tuple(str(v) for v in _as_list(value) if v is not None and str(v) != "")


class ExchangeShell(DirectoryClient):
    """
    Directory client backed by the Exchange Management Shell.

    Features:
      - Local snap-in or remote PowerShell session bootstrap
      - Read-only enforcement through the SafetyGuardian
      - JSON parsing of cmdlet output
    """

    def __init__(self, config: ShellConfig, guardian: SafetyGuardian):
        self.config = config
        self.guardian = guardian
        name = find_powershell(config.executable)
        self.executable = shutil.which(name) if name else None
        if not self.executable:
            raise CollaboratorUnavailable(
                f"PowerShell executable not found: {config.executable}. "
                "Run from a host with the Exchange Management Tools installed."
            )
        self._command_count = 0

    def _session_preamble(self) -> str:
        if self.config.connection_uri:
            return (
                "$session = New-PSSession -ConfigurationName Microsoft.Exchange "
                f"-ConnectionUri {ps_quote(self.config.connection_uri)} "
                f"-Authentication {self.config.authentication}\n"
                "Import-PSSession $session -DisableNameChecking -AllowClobber | Out-Null"
            )
        return f"Add-PSSnapin {EXCHANGE_SNAPIN}"

    def run_json(self, command: str) -> list:
        """
        Execute a read-only cmdlet pipeline and return its JSON output as a list.
        """
        self.guardian.validate_command(command)

        script = (
            "$ErrorActionPreference = 'Stop'\n"
            "$ProgressPreference = 'SilentlyContinue'\n"
            f"{self._session_preamble()}\n"
            f"{command} | ConvertTo-Json -Depth 4 -Compress\n"
        )
        argv = [self.executable, "-NoProfile", "-NonInteractive", "-ExecutionPolicy", "Bypass", "-Command", script]
        creation_flags = _CREATE_NO_WINDOW if sys.platform == "win32" else 0

        logger.debug(f"Executing: {command}")
        process = subprocess.run(argv, capture_output=True, text=True, creationflags=creation_flags)
        self._command_count += 1

        if process.returncode != 0:
            raise ShellCommandError(command, process.stderr or "", process.returncode)

        output = (process.stdout or "").strip()
        if not output:
            return []
        try:
            return _as_list(json.loads(output))
        except json.JSONDecodeError as e:
            raise ShellCommandError(command, f"Unparseable output: {e}", process.returncode) from e

    # ── Identity ────────────────────────────────────────────────────────────

    def resolve_account(self, identity: str) -> MailboxIdentity:
        command = (
            f"Get-Mailbox -Identity {ps_quote(identity)} | Select-Object "
            "@{n='PrimarySmtpAddress';e={$_.PrimarySmtpAddress.ToString()}}, "
            "@{n='Identity';e={$_.Identity.ToString()}}, "
            "@{n='DistinguishedName';e={$_.DistinguishedName.ToString()}}"
        )
        try:
            results = self.run_json(command)
        except ShellCommandError as e:
            if any(marker in e.stderr for marker in _NOT_FOUND_MARKERS):
                raise AccountNotFoundError(f"Mailbox not found: {identity}") from e
            raise

        if not results:
            raise AccountNotFoundError(f"Mailbox not found: {identity}")
        if len(results) > 1:
            logger.warning(f"Identity '{identity}' matched {len(results)} mailboxes; using the first.")

        mbx = results[0]
        return MailboxIdentity(
            primary_smtp_address=mbx.get("PrimarySmtpAddress") or identity,
            identity=mbx.get("Identity") or identity,
            distinguished_name=mbx.get("DistinguishedName") or "",
        )

    # ── Permissions ─────────────────────────────────────────────────────────

    def get_full_access_grants(self, identity: str) -> list[PermissionGrant]:
        command = (
            f"Get-MailboxPermission -Identity {ps_quote(identity)} | Select-Object "
            "@{n='User';e={$_.User.ToString()}}, "
            "@{n='AccessRights';e={@($_.AccessRights | ForEach-Object { $_.ToString() })}}, "
            "IsInherited, Deny"
        )
        return [
            PermissionGrant(
                user=str(entry.get("User", "")),
                rights=_split_rights(entry.get("AccessRights")),
                is_inherited=bool(entry.get("IsInherited")),
                deny=bool(entry.get("Deny")),
            )
            for entry in self.run_json(command)
        ]

    def get_send_as_grants(self, identity: str) -> list[PermissionGrant]:
        command = (
            f"Get-ADPermission -Identity {ps_quote(identity)} | "
            f"Where-Object {{ $_.ExtendedRights -like {ps_quote('*' + SEND_AS_RIGHT + '*')} }} | Select-Object "
            "@{n='User';e={$_.User.ToString()}}, "
            "@{n='ExtendedRights';e={@($_.ExtendedRights | ForEach-Object { $_.ToString() })}}, "
            "IsInherited, Deny"
        )
        return [
            PermissionGrant(
                user=str(entry.get("User", "")),
                rights=_as_strings(entry.get("ExtendedRights")),
                is_inherited=bool(entry.get("IsInherited")),
                deny=bool(entry.get("Deny")),
            )
            for entry in self.run_json(command)
        ]

    def get_configured_delegates(self, identity: str) -> list[str]:
        command = (
            f"Get-Mailbox -Identity {ps_quote(identity)} | "
            "Select-Object -ExpandProperty GrantSendOnBehalfTo | "
            "ForEach-Object { $_.ToString() }"
        )
        return list(_as_strings(self.run_json(command)))

    def get_stats(self) -> dict:
        return {"shell_commands": self._command_count}


def _split_rights(value: Any) -> tuple[str, ...]:
    """AccessRights may arrive as a list or as one comma-separated string."""
    rights: list[str] = []
    for item in _as_strings(value):
        rights.extend(part.strip() for part in item.split(",") if part.strip())
    return tuple(rights)


def find_powershell(preferred: Optional[str] = None) -> Optional[str]:
    """Locate a PowerShell executable, preferring the configured one."""
    for candidate in (preferred, "powershell", "pwsh"):
        if candidate and shutil.which(candidate):
            return candidate
    return None
