"""Transaction helpers shared by the engine services."""

import functools
import logging

from django.db import InterfaceError, OperationalError, transaction

from .exceptions import InfrastructureError

logger = logging.getLogger("jewelpos.db")


def atomic_operation(func):
    """Run ``func`` in one database transaction.

    Business errors propagate unchanged (and roll the transaction back). Storage
    failures are surfaced as ``InfrastructureError`` so callers can tell them
    apart from the business taxonomy.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            with transaction.atomic():
                return func(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            logger.error(
                "db.transaction_failed",
                extra={"event": "db.transaction_failed", "operation": func.__qualname__, "error": str(exc)},
            )
            raise InfrastructureError("Storage unavailable; operation aborted") from exc

    return wrapper


def lock_rows(queryset):
    """Lock the rows of ``queryset`` in primary-key order and return them."""
    return list(queryset.select_for_update().order_by("pk"))
