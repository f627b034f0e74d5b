"""
Base collector class — Shared failure handling for per-account collectors.
Each remote call is attempted in isolation; a failure is logged and
returned as a message instead of propagating.
"""

from __future__ import annotations

import logging
from abc import ABC
from typing import Any, Callable, Optional

logger = logging.getLogger("mailbox_audit.collectors")


def describe_error(exc: BaseException) -> str:
    """Operator-facing message for an exception."""
    message = str(exc).strip()
    return message if message else type(exc).__name__


class BaseCollector(ABC):
    """
    Abstract base class for all collectors.

    The base class provides:
      - Safe execution of a single remote call
      - Consistent, collector-tagged logging of failures
    """

    name: str = "base"
    description: str = "Base collector"

    def safe_call(
        self,
        label: str,
        subject: str,
        func: Callable[..., Any],
        *args: Any,
        **kwargs: Any,
    ) -> tuple[Any, Optional[str]]:
        """
        Run one remote call.

        Returns:
            (value, None) on success, (None, error message) on failure.
        """
        try:
            return func(*args, **kwargs), None
        except Exception as e:
            message = describe_error(e)
            logger.warning(f"[{self.name}] {label} failed for {subject}: {type(e).__name__}: {message}")
            return None, message
