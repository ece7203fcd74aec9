"""Cycle count workflow: pending -> in_progress -> completed, then apply adjustments once.

Counting never touches the ledger. Only ``apply_adjustments`` writes, one
``adjustment`` entry per item whose variance falls outside the tolerance.
"""

import logging
from decimal import Decimal

from catalog.models import Branch, Product
from common.choices import CycleCountType
from common.db import atomic_operation
from common.exceptions import InsufficientStock, InvalidInput, InvalidState, NotFound
from django.db.models import Sum
from django.utils import timezone
from idempotency.services import execute_once
from inventory.models import StockLedgerEntry
from inventory.selectors import ledger_balance
from inventory.services import append_entry, lock_products

from .models import CycleCount, CycleCountItem

logger = logging.getLogger("jewelpos.cyclecounts")


def _get_count(cycle_count_id: int, *, lock: bool = False) -> CycleCount:
    qs = CycleCount.objects.all()
    if lock:
        qs = qs.select_for_update()
    count = qs.filter(pk=cycle_count_id).first()
    if count is None:
        raise NotFound(f"Cycle count {cycle_count_id} not found", cycle_count_id=cycle_count_id)
    return count


def _require_status(count: CycleCount, allowed, action: str) -> None:
    if count.status not in allowed:
        raise InvalidState(
            f"Cannot {action} a cycle count that is {count.status}",
            cycle_count_id=count.id,
            status=count.status,
        )


def _count_payload(count: CycleCount) -> dict:
    from .serializers import CycleCountSerializer

    return dict(CycleCountSerializer(count).data)


def within_tolerance(expected_qty: int, variance_qty: int, tolerance_pct) -> bool:
    """True when the variance is small enough to leave the ledger alone.

    With no tolerance, or nothing expected, every non-zero variance is adjusted.
    """
    if tolerance_pct is None or expected_qty <= 0:
        return False
    pct = Decimal(abs(variance_qty)) * Decimal(100) / Decimal(expected_qty)
    return pct <= Decimal(tolerance_pct)


@atomic_operation
def create_cycle_count(
    *,
    branch_id: int | None = None,
    count_type: str = CycleCountType.CYCLIC,
    tolerance_pct=None,
    note: str = "",
    created_by: str = "",
) -> dict:
    if count_type not in CycleCountType.values:
        raise InvalidInput(f"Unknown count type '{count_type}'")
    if tolerance_pct is not None:
        tolerance_pct = Decimal(str(tolerance_pct))
        if tolerance_pct < 0 or tolerance_pct > 100:
            raise InvalidInput("tolerance_pct must be between 0 and 100")
    if branch_id is not None and not Branch.objects.filter(pk=branch_id).exists():
        raise NotFound(f"Branch {branch_id} not found", branch_id=branch_id)
    count = CycleCount.objects.create(
        branch_id=branch_id,
        count_type=count_type,
        tolerance_pct=tolerance_pct,
        note=note or "",
        created_by=str(created_by or ""),
    )
    logger.info(
        "cyclecount.created",
        extra={"event": "cyclecount.created", "cycle_count_id": count.id, "branch_id": branch_id},
    )
    return _count_payload(count)


@atomic_operation
def preload_items(*, cycle_count_id: int, branch_id: int | None = None, product_ids=None) -> dict:
    """Snapshot the ledger balance of every in-scope active product as ``expected_qty``.

    Runs once per count; a second preload raises ``InvalidState`` so recorded
    counts are never overwritten by a fresh snapshot.
    """
    count = _get_count(cycle_count_id, lock=True)
    _require_status(count, (CycleCount.STATUS_PENDING, CycleCount.STATUS_IN_PROGRESS), "preload")
    if count.preloaded_at is not None or count.items.exists():
        raise InvalidState("Cycle count items were already preloaded", cycle_count_id=count.id)

    if branch_id is not None:
        if count.branch_id is not None and int(branch_id) != count.branch_id:
            raise InvalidInput("branch_id does not match the cycle count's branch", branch_id=branch_id)
        if not Branch.objects.filter(pk=branch_id).exists():
            raise NotFound(f"Branch {branch_id} not found", branch_id=branch_id)
        count.branch_id = int(branch_id)

    products = Product.objects.filter(is_active=True)
    if product_ids:
        products = products.filter(pk__in=product_ids)
    product_ids = list(products.order_by("name", "pk").values_list("pk", flat=True))

    entries = StockLedgerEntry.objects.filter(product_id__in=product_ids)
    if count.branch_id is not None:
        entries = entries.filter(branch_id=count.branch_id)
    balances = dict(
        entries.order_by().values("product_id").annotate(total=Sum("quantity")).values_list("product_id", "total")
    )

    CycleCountItem.objects.bulk_create(
        [
            CycleCountItem(cycle_count=count, product_id=pid, expected_qty=int(balances.get(pid) or 0))
            for pid in product_ids
        ]
    )
    count.preloaded_at = timezone.now()
    count.save(update_fields=["branch", "preloaded_at", "updated_at"])
    logger.info(
        "cyclecount.preloaded",
        extra={"event": "cyclecount.preloaded", "cycle_count_id": count.id, "items": len(product_ids)},
    )
    return {"cycle_count_id": count.id, "created": len(product_ids)}


@atomic_operation
def start_cycle_count(*, cycle_count_id: int, actor: str = "") -> dict:
    count = _get_count(cycle_count_id, lock=True)
    _require_status(count, (CycleCount.STATUS_PENDING,), "start")
    count.status = CycleCount.STATUS_IN_PROGRESS
    count.started_at = timezone.now()
    count.save(update_fields=["status", "started_at", "updated_at"])
    logger.info("cyclecount.started", extra={"event": "cyclecount.started", "cycle_count_id": count.id, "actor": actor})
    return _count_payload(count)


@atomic_operation
def set_item_count(
    *, cycle_count_id: int, item_id: int, counted_qty: int, counted_by: str = "", reason: str = ""
) -> dict:
    """Record a physical count for one item. The ledger is not touched."""
    from .serializers import CycleCountItemSerializer

    count = _get_count(cycle_count_id, lock=True)
    _require_status(count, (CycleCount.STATUS_IN_PROGRESS,), "record counts on")
    counted_qty = int(counted_qty)
    if counted_qty < 0:
        raise InvalidInput("counted_qty must be zero or greater")
    item = CycleCountItem.objects.select_for_update().filter(pk=item_id, cycle_count=count).first()
    if item is None:
        raise NotFound(f"Cycle count item {item_id} not found", item_id=item_id)
    item.counted_qty = counted_qty
    item.variance_qty = counted_qty - item.expected_qty
    item.counted_by = str(counted_by or "")
    item.reason = reason or ""
    item.save(update_fields=["counted_qty", "variance_qty", "counted_by", "reason", "updated_at"])
    return dict(CycleCountItemSerializer(item).data)


@atomic_operation
def complete_cycle_count(*, cycle_count_id: int, actor: str = "") -> dict:
    """Freeze the count for review. Does not change stock."""
    count = _get_count(cycle_count_id, lock=True)
    _require_status(count, (CycleCount.STATUS_IN_PROGRESS,), "complete")
    if not count.items.exists():
        raise InvalidState("Cycle count has no items", cycle_count_id=count.id)
    pending = count.items.filter(counted_qty__isnull=True).count()
    if pending:
        raise InvalidState(f"{pending} item(s) have not been counted", cycle_count_id=count.id, uncounted=pending)
    count.status = CycleCount.STATUS_COMPLETED
    count.completed_at = timezone.now()
    count.save(update_fields=["status", "completed_at", "updated_at"])
    logger.info(
        "cyclecount.completed", extra={"event": "cyclecount.completed", "cycle_count_id": count.id, "actor": actor}
    )
    return _count_payload(count)


@atomic_operation
def cancel_cycle_count(*, cycle_count_id: int, actor: str = "") -> dict:
    count = _get_count(cycle_count_id, lock=True)
    _require_status(count, (CycleCount.STATUS_PENDING, CycleCount.STATUS_IN_PROGRESS), "cancel")
    count.status = CycleCount.STATUS_CANCELED
    count.canceled_at = timezone.now()
    count.save(update_fields=["status", "canceled_at", "updated_at"])
    logger.info(
        "cyclecount.canceled", extra={"event": "cyclecount.canceled", "cycle_count_id": count.id, "actor": actor}
    )
    return _count_payload(count)


def _applied_summary(count: CycleCount) -> dict:
    items = list(count.items.all())
    adjusted = [it for it in items if it.adjustment_entry_id]
    skipped = [
        it
        for it in items
        if it.variance_qty
        and not it.adjustment_entry_id
        and within_tolerance(it.expected_qty, it.variance_qty, count.tolerance_pct)
    ]
    return {
        "cycle_count_id": count.id,
        "adjusted": len(adjusted),
        "skipped_within_tolerance": len(skipped),
        "entry_ids": [it.adjustment_entry_id for it in adjusted],
        "applied_at": count.adjustments_applied_at,
        "applied_by": count.applied_by,
    }


def apply_adjustments(*, cycle_count_id: int, actor: str = "") -> dict:
    """Write one ``adjustment`` entry per out-of-tolerance variance, at most once per count."""
    _require_status(_get_count(cycle_count_id), (CycleCount.STATUS_COMPLETED,), "apply adjustments to")

    def handler():
        count = _get_count(cycle_count_id, lock=True)
        if count.adjustments_applied_at is not None:
            return _applied_summary(count)
        items = list(count.items.select_for_update().filter(variance_qty__isnull=False).exclude(variance_qty=0))
        to_adjust = [
            it for it in items if not within_tolerance(it.expected_qty, it.variance_qty, count.tolerance_pct)
        ]
        lock_products(it.product_id for it in to_adjust)
        for item in to_adjust:
            balance = ledger_balance(item.product_id, count.branch_id)
            if balance + item.variance_qty < 0:
                raise InsufficientStock(item.product_id, -item.variance_qty, max(balance, 0))
            item.adjustment_entry = append_entry(
                product_id=item.product_id,
                entry_type=StockLedgerEntry.TYPE_ADJUSTMENT,
                quantity=item.variance_qty,
                branch_id=count.branch_id,
                reason=item.reason or "cycle count",
                reference=f"cycle_count:{count.id}",
                created_by=actor,
            )
            item.save(update_fields=["adjustment_entry", "updated_at"])
        count.adjustments_applied_at = timezone.now()
        count.applied_by = str(actor or "")
        count.save(update_fields=["adjustments_applied_at", "applied_by", "updated_at"])
        logger.info(
            "cyclecount.adjusted",
            extra={
                "event": "cyclecount.adjusted",
                "cycle_count_id": count.id,
                "adjusted": len(to_adjust),
                "skipped": len(items) - len(to_adjust),
            },
        )
        return _applied_summary(count)

    return execute_once(key=str(cycle_count_id), operation="cycle_count_apply", handler=handler, actor=actor)


# EOF
