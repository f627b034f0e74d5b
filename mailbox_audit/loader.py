"""
Input loader — Reads the account list and picks the identity column.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path

logger = logging.getLogger("mailbox_audit.loader")

# Documented priority order. Selection itself follows header order.
IDENTITY_COLUMNS = (
    "EmailAddress",
    "UserPrincipalName",
    "SamAccountName",
    "Identity",
    "Mailbox",
)


class InputError(Exception):
    """Raised when the input file cannot be used."""
    pass


class EmptyInputError(InputError):
    """Raised when the input file has no data rows."""
    pass


class MissingColumnError(InputError):
    """Raised when no recognized identity column is present."""
    pass


def load_accounts(path: Path | str, delimiter: str = ",") -> tuple[list[dict[str, str]], str]:
    """
    Read a delimited account list.

    Returns:
        (rows, identity_column) where identity_column is the first
        recognized header in left-to-right header order.
    """
    path = Path(path)
    try:
        with open(path, "r", newline="", encoding="utf-8-sig") as fh:
            reader = csv.DictReader(fh, delimiter=delimiter)
            rows = list(reader)
            headers = reader.fieldnames or []
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise InputError(f"Cannot read input file {path}: {e}") from e

    if not rows:
        raise EmptyInputError(f"Input file contains no accounts: {path}")

    recognized = [h for h in headers if h in IDENTITY_COLUMNS]
    if not recognized:
        raise MissingColumnError(
            f"Input file has none of the expected columns: {', '.join(IDENTITY_COLUMNS)}"
        )

    identity_column = recognized[0]
    logger.info(f"Loaded {len(rows)} rows from {path} (identity column: {identity_column})")
    return rows, identity_column
