import hashlib
import json
import logging
from datetime import timedelta
from typing import Any, Callable, Optional

from common.db import atomic_operation
from common.exceptions import InvalidInput, KeyConflict
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import IntegrityError
from django.utils import timezone

from .models import IdempotencyRecord

logger = logging.getLogger("jewelpos.idempotency")


def json_safe(value: Any) -> Any:
    """Normalize ``value`` to plain JSON types (Decimal and datetimes become strings)."""
    return json.loads(json.dumps(value, cls=DjangoJSONEncoder))


def compute_request_hash(data: Optional[dict]) -> Optional[str]:
    """Compute a canonical SHA256 hash of the request payload.

    Uses sorted keys JSON representation to stabilize the hash across equivalent payloads.
    Returns None when data is falsy.
    """
    if not data:
        return None
    payload = json.dumps(data, sort_keys=True, separators=(",", ":"), cls=DjangoJSONEncoder)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _replay(record: IdempotencyRecord, request_hash: Optional[str]):
    # Guard against key reuse with different fingerprints
    if record.request_hash and request_hash and record.request_hash != request_hash:
        raise KeyConflict(
            f"Idempotency key '{record.key}' was already used for a different {record.operation} request",
            key=record.key,
            operation=record.operation,
        )
    logger.info(
        "idempotency.replayed",
        extra={"event": "idempotency.replayed", "key": record.key, "operation": record.operation},
    )
    return record.result


@atomic_operation
def _execute(key: str, operation: str, handler: Callable[[], Any], request_hash: Optional[str], actor: str):
    record = IdempotencyRecord.objects.select_for_update().filter(key=key, operation=operation).first()
    if record is not None:
        return _replay(record, request_hash)

    retention = timedelta(hours=getattr(settings, "IDEMPOTENCY_RETENTION_HOURS", 24))
    # Claimed before the handler runs; a concurrent caller with the same key waits on
    # the unique index until this transaction ends
    record = IdempotencyRecord.objects.create(
        key=key,
        operation=operation,
        actor=str(actor or ""),
        request_hash=request_hash,
        result=None,
        expires_at=timezone.now() + retention,
    )
    result = json_safe(handler())
    record.result = result
    record.save(update_fields=["result"])
    return result


def execute_once(
    *,
    key: str,
    operation: str,
    handler: Callable[[], Any],
    request_hash: Optional[str] = None,
    actor: str = "",
):
    """Run ``handler`` at most once for ``(key, operation)`` and return its result.

    - A stored result for the pair is replayed without calling ``handler``.
    - A stored ``request_hash`` that differs from the provided one raises ``KeyConflict``.
    - If ``handler`` raises, nothing is recorded and the caller may retry with the same key.
    - The key is claimed before ``handler`` runs. A concurrent first call with the same
      key waits on the unique constraint, then replays the winner's result (or runs
      itself if the winner failed and rolled back).
    """

    key = str(key or "").strip()
    if not key:
        raise InvalidInput("Idempotency key is required")
    try:
        return _execute(key, operation, handler, request_hash, actor)
    except IntegrityError:
        record = IdempotencyRecord.objects.filter(key=key, operation=operation).first()
        if record is None:
            raise
        return _replay(record, request_hash)


def prune_expired(now=None) -> int:
    """Delete records past their retention window. Returns the number removed."""
    now = now or timezone.now()
    qs = IdempotencyRecord.objects.filter(expires_at__lt=now)
    count = qs.count()
    qs.delete()
    if count:
        logger.info("idempotency.pruned", extra={"event": "idempotency.pruned", "count": count})
    return count
