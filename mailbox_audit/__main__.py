"""
Exchange Mailbox Audit — Main Orchestrator

Usage:
    python -m mailbox_audit accounts.csv --server mail.contoso.com --username CONTOSO\\svc-audit
    python -m mailbox_audit accounts.csv --config audit.json
    python -m mailbox_audit --autodiscover --username svc-audit@contoso.com   # file dialog
    python -m mailbox_audit accounts.csv --shell-uri http://exch01.contoso.com/PowerShell/

The input file needs one of the columns EmailAddress, UserPrincipalName,
SamAccountName, Identity, or Mailbox. Reports are written beside it as
MailboxAnalysis_<timestamp>.html and MailboxAnalysis_<timestamp>.csv.

This tool is STRICTLY READ-ONLY. It will NEVER modify a mailbox.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, NoReturn, Optional

from . import __version__
from .aggregator import MailboxAggregator
from .auth.authenticator import AuthenticationError, Authenticator
from .collectors import AccountResolver, ActivityCollector, PermissionCollector, describe_error
from .config import RUN_TIMESTAMP_FORMAT, AuditConfig, CertificateAuth, ConfigError
from .exchange.base import CollaboratorUnavailable
from .exchange.ews_client import EwsMailClient
from .exchange.shell import ExchangeShell
from .loader import InputError, load_accounts
from .models import ReportRecord, summarize
from .reporting import export_csv, export_html
from .safety.guardian import SafetyGuardian

logger = logging.getLogger("mailbox_audit")


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

def setup_logging(verbose: bool = False, log_file: str = "") -> None:
    """Console logging on stderr, plus an optional log file."""
    level = logging.DEBUG if verbose else logging.WARNING
    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if (verbose or log_file) else logging.WARNING)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mailbox_audit",
        description="Exchange Mailbox Audit (READ-ONLY)",
    )
    parser.add_argument(
        "input",
        nargs="?",
        type=Path,
        default=None,
        help="CSV file listing the accounts to audit (a file dialog opens if omitted)",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Path to JSON configuration file",
    )

    # --- EWS connection ---
    parser.add_argument("--server", help="Exchange server host name for EWS")
    parser.add_argument("--ews-url", help="Full EWS endpoint URL (overrides --server)")
    parser.add_argument("--autodiscover", action="store_true", help="Locate EWS through autodiscover")
    parser.add_argument(
        "--access-type",
        choices=["delegate", "impersonation"],
        default=None,
        help="How the audit account opens other mailboxes (default: delegate)",
    )
    parser.add_argument(
        "--no-verify-ssl",
        action="store_true",
        help="Skip TLS certificate verification (self-signed on-premise certificates)",
    )

    # --- Credentials ---
    parser.add_argument(
        "--auth",
        choices=["ntlm", "basic", "certificate"],
        default=None,
        help="EWS authentication mode (default: ntlm)",
    )
    parser.add_argument("--username", "-u", help="Audit account, DOMAIN\\user or UPN")
    parser.add_argument("--tenant-id", help="Tenant ID for certificate (hybrid modern) auth")
    parser.add_argument("--client-id", help="App registration client ID for certificate auth")
    parser.add_argument("--cert-path", type=Path, help="Path to base64-encoded PFX for certificate auth")
    parser.add_argument("--resource", help="EWS resource URL registered for hybrid modern auth")

    # --- Exchange Management Shell ---
    parser.add_argument(
        "--shell",
        dest="shell_executable",
        default=None,
        help="PowerShell executable (default: powershell)",
    )
    parser.add_argument(
        "--shell-uri",
        default=None,
        help="Remote Exchange PowerShell URI (default: load the local snap-in)",
    )

    # --- Input / output ---
    parser.add_argument("--delimiter", default=None, help="Input file delimiter (default: ,)")
    parser.add_argument("--log-file", default=None, help="Write a debug log to this file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging on the console")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> AuditConfig:
    """Build the configuration from the config file, then apply CLI overrides."""
    if args.config and args.config.exists():
        config = AuditConfig.from_file(args.config)
    else:
        if args.config:
            print(f"  ⚠  Config file not found: {args.config} (using defaults)")
        config = AuditConfig()

    if args.server:
        config.exchange.server = args.server
    if args.ews_url:
        config.exchange.ews_url = args.ews_url
    if args.autodiscover:
        config.exchange.autodiscover = True
    if args.access_type:
        config.exchange.access_type = args.access_type
    if args.no_verify_ssl:
        config.exchange.verify_ssl = False

    if args.auth:
        config.auth.mode = args.auth
    if args.username:
        config.auth.username = args.username
    if config.auth.mode == "certificate" and (args.tenant_id or args.client_id or args.cert_path or args.resource):
        current = config.auth.certificate
        config.auth.certificate = CertificateAuth(
            tenant_id=args.tenant_id or (current.tenant_id if current else ""),
            client_id=args.client_id or (current.client_id if current else ""),
            certificate_path=str(args.cert_path) if args.cert_path else (
                current.certificate_path if current else "./base64.txt"
            ),
            certificate_password=current.certificate_password if current else "",
            resource=args.resource or (current.resource if current else ""),
        )

    if args.shell_executable:
        config.shell.executable = args.shell_executable
    if args.shell_uri:
        config.shell.connection_uri = args.shell_uri

    if args.delimiter:
        config.settings.input_delimiter = args.delimiter
    if args.log_file:
        config.log_file = args.log_file
    if args.verbose:
        config.verbose = True

    return config


def select_input_file(path: Optional[Path]) -> Optional[Path]:
    """Use the given path, or ask the operator for one."""
    if path:
        return path

    try:
        import tkinter
        from tkinter import filedialog
    except ImportError:
        tkinter = None

    if tkinter is not None:
        try:
            root = tkinter.Tk()
            root.withdraw()
            chosen = filedialog.askopenfilename(
                title="Select the mailbox list",
                filetypes=[("CSV files", "*.csv"), ("All files", "*.*")],
            )
            root.destroy()
            return Path(chosen) if chosen else None
        except tkinter.TclError as e:
            logger.debug(f"File dialog unavailable: {e}")

    # No Tk or no display: ask on the console.
    try:
        entered = input("Path to the mailbox list (CSV): ").strip().strip('"')
    except EOFError:
        return None
    return Path(entered) if entered else None


def build_aggregator(config: AuditConfig, guardian: SafetyGuardian) -> MailboxAggregator:
    """Authenticate and wire the collaborators into the collectors."""
    credentials, auth_type = Authenticator(config.auth).build_credentials()
    mail = EwsMailClient(config.exchange, credentials, auth_type)
    directory = ExchangeShell(config.shell, guardian)

    return MailboxAggregator(
        resolver=AccountResolver(directory),
        activity=ActivityCollector(
            mail,
            item_window=config.settings.recent_item_window,
            read_limit=config.settings.recent_read_limit,
        ),
        permissions=PermissionCollector(directory),
    )


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def process_accounts(
    rows: list[dict[str, str]],
    identity_column: str,
    aggregate: Callable[[str], ReportRecord],
) -> list[ReportRecord]:
    """Aggregate every row in order. Always one record per row."""
    records: list[ReportRecord] = []
    total = len(rows)

    for index, row in enumerate(rows, 1):
        raw_identity = (row.get(identity_column) or "").strip()
        print(f"\n[{index}/{total}] Processing: {raw_identity}")

        try:
            record = aggregate(raw_identity)
        except Exception as e:
            logger.exception(f"Unexpected failure while processing '{raw_identity}'")
            record = ReportRecord.failed(raw_identity, describe_error(e))

        records.append(record)

        if record.succeeded:
            print(f"  ✅ {record.address}: {record.total} messages "
                  f"({record.unread} unread)")
        else:
            print(f"  ❌ {record.address}: {record.error}")
        for w in record.warnings:
            print(f"      ⚠  {w}")

    return records


def report_paths(input_path: Path, run_stamp: datetime, prefix: str) -> tuple[Path, Path]:
    """HTML and CSV paths beside the input file, sharing one run timestamp."""
    folder = input_path.resolve().parent
    stem = f"{prefix}_{run_stamp.strftime(RUN_TIMESTAMP_FORMAT)}"
    return folder / f"{stem}.html", folder / f"{stem}.csv"


def write_reports(
    records: list[ReportRecord],
    input_path: Path,
    run_stamp: datetime,
    prefix: str,
    generated_at: Optional[datetime] = None,
) -> tuple[Path, Path]:
    """Render both reports and write them beside the input file."""
    html_path, csv_path = report_paths(input_path, run_stamp, prefix)
    export_html(records, html_path, generated_at or datetime.now())
    export_csv(records, csv_path)
    return html_path, csv_path


def _fatal(message: str) -> NoReturn:
    print(f"\n❌ {message}")
    sys.exit(1)


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for `python -m mailbox_audit` and the mailbox-audit script."""
    args = parse_args(argv)
    try:
        config = build_config(args)
    except ConfigError as e:
        _fatal(str(e))
    setup_logging(config.verbose, config.log_file)

    guardian = SafetyGuardian()
    guardian.print_banner()

    print("=" * 70)
    print(f" Exchange Mailbox Audit v{__version__}")
    print(" Mode: READ-ONLY — No mailbox modifications will be made")
    print("=" * 70)

    # --- Input ---
    input_path = select_input_file(args.input)
    if not input_path:
        _fatal("No input file selected. Exiting.")

    try:
        rows, identity_column = load_accounts(input_path, config.settings.input_delimiter)
    except InputError as e:
        _fatal(str(e))

    run_stamp = datetime.now()
    print(f"\n📋 Input:    {input_path}")
    print(f"🔑 Column:   {identity_column}")
    print(f"📬 Accounts: {len(rows)}")

    # --- Collaborators ---
    print("\n🔐 Connecting to Exchange...")
    try:
        aggregator = build_aggregator(config, guardian)
    except (AuthenticationError, CollaboratorUnavailable) as e:
        _fatal(str(e))
    print("✅ Connected.")

    # --- Collection ---
    print("\n" + "=" * 70)
    print(" MAILBOX ANALYSIS")
    print("=" * 70)
    records = process_accounts(rows, identity_column, aggregator.aggregate)

    # --- Reporting ---
    html_path, csv_path = write_reports(
        records, input_path, run_stamp, config.settings.report_prefix
    )

    counts = summarize(records)
    print("\n" + "=" * 70)
    print(" AUDIT COMPLETE")
    print("=" * 70)
    print(f"\n  Processed:  {counts['total']}")
    print(f"  Succeeded:  {counts['succeeded']}")
    print(f"  Failed:     {counts['failed']}")
    print(f"\n  🌐 HTML:    {html_path}")
    print(f"  📊 CSV:     {csv_path}")
    for name, count in aggregator.get_stats().items():
        print(f"  {name.replace('_', ' ').capitalize()}: {count}")
    safety = guardian.get_audit_summary()
    print(f"  🛡  Safety checks: {safety['checks_performed']} "
          f"({safety['violations']} violations) since {safety['started_at']}")
    print()


if __name__ == "__main__":
    main()
