"""
Configuration module for Exchange Mailbox Audit.
Defines connection settings, credentials, collection windows, and output naming.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Optional


# ─── Collection Windows ─────────────────────────────────────────────────────

RECENT_ITEM_WINDOW = 50           # Inbox items scanned for activity
RECENT_READ_LIMIT = 5             # Read messages captured per mailbox

# ─── Directory Conventions ──────────────────────────────────────────────────

SELF_PRINCIPAL = "NT AUTHORITY\\SELF"
FULL_ACCESS_RIGHT = "FullAccess"
SEND_AS_RIGHT = "Send-As"

EXCHANGE_SNAPIN = "Microsoft.Exchange.Management.PowerShell.SnapIn"

# ─── Output ─────────────────────────────────────────────────────────────────

REPORT_PREFIX = "MailboxAnalysis"
RUN_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

# Environment variables consulted before prompting
PASSWORD_ENV_VAR = "MAILBOX_AUDIT_PASSWORD"
CERT_PASSWORD_ENV_VAR = "MAILBOX_AUDIT_CERT_PASSWORD"


class ConfigError(Exception):
    """Raised when a configuration file cannot be used."""
    pass


# ─── Authentication ─────────────────────────────────────────────────────────

@dataclass
class CertificateAuth:
    """Certificate-based app-only authentication (hybrid modern auth)."""
    tenant_id: str
    client_id: str
    certificate_path: str          # Path to base64-encoded PFX
    certificate_password: str = "" # Will be prompted if empty
    resource: str = ""             # On-premise EWS resource, e.g. https://mail.contoso.com


@dataclass
class AuthConfig:
    """Authentication configuration — ntlm, basic, or certificate."""
    mode: str = "ntlm"
    username: str = ""             # DOMAIN\\user or UPN
    password: str = ""             # Will be prompted if empty
    certificate: Optional[CertificateAuth] = None


# ─── Collaborators ──────────────────────────────────────────────────────────

@dataclass
class ExchangeConfig:
    """EWS connection settings."""
    server: str = ""               # e.g. mail.contoso.com
    ews_url: str = ""              # Full service endpoint, overrides server
    autodiscover: bool = False
    access_type: str = "delegate"  # "delegate" or "impersonation"
    verify_ssl: bool = True


@dataclass
class ShellConfig:
    """Exchange Management Shell settings."""
    executable: str = "powershell"
    connection_uri: str = ""       # Empty = load the local snap-in
    authentication: str = "Kerberos"


# ─── Audit Settings ─────────────────────────────────────────────────────────

@dataclass
class AuditSettings:
    """Controls for collection and report output."""
    recent_item_window: int = RECENT_ITEM_WINDOW
    recent_read_limit: int = RECENT_READ_LIMIT
    input_delimiter: str = ","
    report_prefix: str = REPORT_PREFIX


# ─── Master Configuration ───────────────────────────────────────────────────

@dataclass
class AuditConfig:
    """Top-level configuration for the audit run."""
    auth: AuthConfig = field(default_factory=AuthConfig)
    exchange: ExchangeConfig = field(default_factory=ExchangeConfig)
    shell: ShellConfig = field(default_factory=ShellConfig)
    settings: AuditSettings = field(default_factory=AuditSettings)
    verbose: bool = False
    log_file: str = ""

    @classmethod
    def from_file(cls, path: str) -> "AuditConfig":
        """
        Load configuration from a JSON file. Unknown keys are ignored.

        Raises:
            ConfigError: the file is unreadable, not a JSON object, or
                a certificate section lacks tenant_id / client_id.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigError(f"Cannot load config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object.")

        config = cls()
        if "auth" in data:
            auth_data = data["auth"]
            config.auth.mode = auth_data.get("mode", "ntlm")
            config.auth.username = auth_data.get("username", "")
            config.auth.password = auth_data.get("password", "")
            if "certificate" in auth_data:
                c = auth_data["certificate"]
                missing = [k for k in ("tenant_id", "client_id") if not c.get(k)]
                if missing:
                    raise ConfigError(f"auth.certificate is missing: {', '.join(missing)}")
                config.auth.certificate = CertificateAuth(
                    tenant_id=c["tenant_id"],
                    client_id=c["client_id"],
                    certificate_path=c.get("certificate_path", "./base64.txt"),
                    certificate_password=c.get("certificate_password", ""),
                    resource=c.get("resource", ""),
                )
        for section in ("exchange", "shell", "settings"):
            if section in data:
                target = getattr(config, section)
                for k, v in data[section].items():
                    if hasattr(target, k):
                        setattr(target, k, v)
        config.verbose = data.get("verbose", False)
        config.log_file = data.get("log_file", "")
        return config
