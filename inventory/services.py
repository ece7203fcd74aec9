"""Inventory services: ledger appends, stock updates, reservations and reconciliation.

Every mutating operation runs in one transaction and locks the affected product
rows (in primary-key order) before checking availability, so the check and the
ledger write cannot interleave with a concurrent writer.
"""

import logging
from collections import OrderedDict
from datetime import timedelta

from catalog.models import Branch, Product
from common.choices import LedgerEntryType
from common.db import atomic_operation, lock_rows
from common.exceptions import InsufficientStock, InvalidInput, InvalidState, KeyConflict, NotFound
from django.conf import settings
from django.utils import timezone
from idempotency.services import compute_request_hash, execute_once

from .models import NEGATIVE_TYPES, POSITIVE_TYPES, StockLedgerEntry, StockReservation, StockReservationItem
from .selectors import available_stock, ledger_balance

logger = logging.getLogger("jewelpos.inventory")

UPDATE_TYPES = (StockLedgerEntry.TYPE_IN, StockLedgerEntry.TYPE_OUT, StockLedgerEntry.TYPE_ADJUSTMENT)


def signed_quantity(entry_type: str, quantity: int) -> int:
    """Apply the sign convention of ``entry_type`` to ``quantity``.

    Directional types take a positive magnitude; ``adjustment`` takes a signed delta.
    """
    if entry_type not in LedgerEntryType.values:
        raise InvalidInput(f"Unknown entry type '{entry_type}'")
    quantity = int(quantity)
    if entry_type == StockLedgerEntry.TYPE_ADJUSTMENT:
        if quantity == 0:
            raise InvalidInput("Adjustment quantity must be non-zero")
        return quantity
    if quantity <= 0:
        raise InvalidInput(f"Quantity for '{entry_type}' must be positive")
    if entry_type in NEGATIVE_TYPES:
        return -quantity
    if entry_type in POSITIVE_TYPES:
        return quantity
    raise InvalidInput(f"Unknown entry type '{entry_type}'")


def refresh_cached_stock(product_id: int) -> int:
    balance = ledger_balance(product_id)
    Product.objects.filter(pk=product_id).update(stock=balance, updated_at=timezone.now())
    return balance


@atomic_operation
def append_entry(
    *,
    product_id: int,
    entry_type: str,
    quantity: int,
    branch_id: int | None = None,
    reason: str = "",
    reference: str = "",
    idempotency_key: str | None = None,
    created_by: str = "",
) -> StockLedgerEntry:
    """Append one ledger entry and refresh the product's cached stock.

    Only checks that the entry is well formed; business rules (availability,
    transitions) belong to the caller, which must hold the product lock.
    """
    signed = signed_quantity(entry_type, quantity)
    entry = StockLedgerEntry.objects.create(
        product_id=product_id,
        branch_id=branch_id,
        entry_type=entry_type,
        quantity=signed,
        reason=reason or "",
        reference=reference or "",
        idempotency_key=idempotency_key,
        created_by=str(created_by or ""),
    )
    refresh_cached_stock(product_id)
    logger.info(
        "ledger.appended",
        extra={
            "event": "ledger.appended",
            "product_id": product_id,
            "branch_id": branch_id,
            "entry_type": entry_type,
            "quantity": signed,
            "reference": reference,
        },
    )
    return entry


def lock_products(product_ids) -> dict:
    """Lock the given products and return them by id. Missing ids raise ``NotFound``."""
    ids = sorted({int(pk) for pk in product_ids})
    products = {p.id: p for p in lock_rows(Product.objects.filter(pk__in=ids))}
    missing = [pk for pk in ids if pk not in products]
    if missing:
        raise NotFound(f"Product {missing[0]} not found", product_id=missing[0])
    return products


def get_branch(branch_id) -> Branch:
    try:
        return Branch.objects.get(pk=branch_id)
    except Branch.DoesNotExist:
        raise NotFound(f"Branch {branch_id} not found", branch_id=branch_id)


def _entry_payload(entry: StockLedgerEntry) -> dict:
    from .serializers import StockLedgerEntrySerializer

    return dict(StockLedgerEntrySerializer(entry).data)


# Stock updates
def update_stock(
    *,
    product_id: int,
    entry_type: str,
    quantity: int,
    reason: str = "",
    idempotency_key: str,
    actor: str = "",
    branch_id: int | None = None,
    reference: str = "",
) -> dict:
    """Apply one manual stock movement (``in``, ``out`` or signed ``adjustment``)."""
    if entry_type not in UPDATE_TYPES:
        raise InvalidInput(f"Entry type must be one of {', '.join(UPDATE_TYPES)}")
    signed = signed_quantity(entry_type, quantity)
    request_hash = compute_request_hash(
        {
            "product_id": product_id,
            "entry_type": entry_type,
            "quantity": quantity,
            "reason": reason,
            "branch_id": branch_id,
            "reference": reference,
        }
    )

    def handler():
        lock_products([product_id])
        if branch_id is not None:
            get_branch(branch_id)
        previous = ledger_balance(product_id)
        if signed < 0:
            available = available_stock(product_id)
            if branch_id is not None:
                available = min(available, ledger_balance(product_id, branch_id))
            if -signed > available:
                raise InsufficientStock(product_id, -signed, max(available, 0))
        entry = append_entry(
            product_id=product_id,
            entry_type=entry_type,
            quantity=quantity,
            branch_id=branch_id,
            reason=reason,
            reference=reference,
            idempotency_key=idempotency_key,
            created_by=actor,
        )
        return {
            "product_id": product_id,
            "previous_balance": previous,
            "new_balance": previous + signed,
            "entry": _entry_payload(entry),
        }

    return execute_once(
        key=idempotency_key,
        operation="stock_update",
        handler=handler,
        request_hash=request_hash,
        actor=actor,
    )


def bulk_update_stock(*, updates: list[dict], actor: str = "", idempotency_key: str) -> dict:
    """Set absolute stock targets for many products in one transaction.

    Each target becomes an ``adjustment`` entry for the difference against the
    current ledger balance; products already at target are reported unchanged.
    """
    if not updates:
        raise InvalidInput("At least one update is required")
    seen = set()
    for update in updates:
        pid = int(update["product_id"])
        if pid in seen:
            raise InvalidInput(f"Product {pid} appears more than once", product_id=pid)
        if int(update["new_stock"]) < 0:
            raise InvalidInput("new_stock must be zero or greater", product_id=pid)
        seen.add(pid)
    request_hash = compute_request_hash({"updates": updates})

    def handler():
        lock_products(seen)
        results = []
        for update in sorted(updates, key=lambda u: int(u["product_id"])):
            pid = int(update["product_id"])
            previous = ledger_balance(pid)
            delta = int(update["new_stock"]) - previous
            entry = None
            if delta:
                entry = append_entry(
                    product_id=pid,
                    entry_type=StockLedgerEntry.TYPE_ADJUSTMENT,
                    quantity=delta,
                    reason=update.get("reason") or "bulk update",
                    reference=f"bulk:{idempotency_key}",
                    idempotency_key=idempotency_key,
                    created_by=actor,
                )
            results.append(
                {
                    "product_id": pid,
                    "previous_balance": previous,
                    "new_balance": previous + delta,
                    "delta": delta,
                    "entry_id": entry.id if entry else None,
                }
            )
        logger.info(
            "stock.bulk_updated",
            extra={"event": "stock.bulk_updated", "count": len(results), "actor": actor},
        )
        return {"updated": sum(1 for r in results if r["delta"]), "results": results}

    return execute_once(
        key=idempotency_key,
        operation="stock_bulk_update",
        handler=handler,
        request_hash=request_hash,
        actor=actor,
    )


# Reservation services
def _normalize_items(items) -> list[dict]:
    if not items:
        raise InvalidInput("At least one item is required")
    merged: "OrderedDict[int, int]" = OrderedDict()
    for item in items:
        pid = int(item["product_id"])
        qty = int(item["quantity"])
        if qty <= 0:
            raise InvalidInput("Quantity must be positive", product_id=pid)
        merged[pid] = merged.get(pid, 0) + qty
    return [{"product_id": pid, "quantity": qty} for pid, qty in sorted(merged.items())]


def _reservation_payload(reservation: StockReservation) -> dict:
    from .serializers import StockReservationSerializer

    return dict(StockReservationSerializer(reservation).data)


def _reservation_items(reservation: StockReservation) -> list[dict]:
    return [
        {"product_id": item.product_id, "quantity": item.quantity}
        for item in reservation.items.order_by("product_id")
    ]


def reserve_stock(
    *,
    items,
    reservation_id: str,
    requested_by: str = "",
    expiration_minutes: int | None = None,
    reference: str = "",
) -> dict:
    """Hold stock for a checkout in progress. All items succeed or none do.

    Idempotent on ``reservation_id``: the same items return the existing
    reservation, different items raise ``KeyConflict``. No ledger entry is written.
    """
    normalized = _normalize_items(items)
    if expiration_minutes is None:
        expiration_minutes = getattr(settings, "INVENTORY_RESERVATION_TTL_MINUTES", 30)
    if int(expiration_minutes) <= 0:
        raise InvalidInput("expiration_minutes must be positive")

    def handler():
        existing = StockReservation.objects.filter(reservation_id=reservation_id).first()
        if existing is not None:
            if _reservation_items(existing) != normalized:
                raise KeyConflict(
                    f"Reservation '{reservation_id}' already exists with different items",
                    key=reservation_id,
                    operation="stock_reservation",
                )
            return _reservation_payload(existing)

        lock_products(item["product_id"] for item in normalized)
        now = timezone.now()
        for item in normalized:
            available = available_stock(item["product_id"], now=now)
            if item["quantity"] > available:
                raise InsufficientStock(item["product_id"], item["quantity"], max(available, 0))

        reservation = StockReservation.objects.create(
            reservation_id=reservation_id,
            requested_by=str(requested_by or ""),
            expires_at=now + timedelta(minutes=int(expiration_minutes)),
            reference=reference or "",
        )
        StockReservationItem.objects.bulk_create(
            [
                StockReservationItem(reservation=reservation, product_id=item["product_id"], quantity=item["quantity"])
                for item in normalized
            ]
        )
        logger.info(
            "reservation.created",
            extra={
                "event": "reservation.created",
                "reservation_id": reservation_id,
                "items": normalized,
                "expires_at": reservation.expires_at.isoformat(),
            },
        )
        return _reservation_payload(reservation)

    execute_once(
        key=reservation_id,
        operation="stock_reservation",
        handler=handler,
        request_hash=compute_request_hash({"items": normalized}),
        actor=requested_by,
    )
    # A replay reports the reservation as it stands now, not the creation snapshot
    return _reservation_payload(StockReservation.objects.get(reservation_id=reservation_id))


def _lock_reservation(reservation_id: str) -> StockReservation:
    reservation = StockReservation.objects.select_for_update().filter(reservation_id=reservation_id).first()
    if reservation is None:
        raise NotFound(f"Reservation '{reservation_id}' not found", reservation_id=reservation_id)
    return reservation


@atomic_operation
def release_reservation(*, reservation_id: str, actor: str = "") -> dict:
    """Release an active reservation. Releasing twice, or after expiry, is a no-op."""
    reservation = _lock_reservation(reservation_id)
    now = timezone.now()
    if reservation.status == StockReservation.STATUS_CONSUMED:
        raise InvalidState(f"Reservation '{reservation_id}' was already consumed", reservation_id=reservation_id)
    if reservation.status == StockReservation.STATUS_ACTIVE and not reservation.is_live(now):
        reservation.status = StockReservation.STATUS_EXPIRED
        reservation.expired_at = now
        reservation.save(update_fields=["status", "expired_at", "updated_at"])
    elif reservation.status == StockReservation.STATUS_ACTIVE:
        reservation.status = StockReservation.STATUS_RELEASED
        reservation.released_at = now
        reservation.save(update_fields=["status", "released_at", "updated_at"])
        logger.info(
            "reservation.released",
            extra={"event": "reservation.released", "reservation_id": reservation_id, "actor": actor},
        )
    return _reservation_payload(reservation)


def consume_reservation(*, reservation_id: str, reference: str = "") -> StockReservation:
    """Mark a reservation consumed by a completed sale. Caller owns the transaction."""
    reservation = _lock_reservation(reservation_id)
    if reservation.status in (StockReservation.STATUS_CONSUMED, StockReservation.STATUS_RELEASED):
        raise InvalidState(
            f"Reservation '{reservation_id}' is {reservation.status}",
            reservation_id=reservation_id,
            status=reservation.status,
        )
    reservation.status = StockReservation.STATUS_CONSUMED
    reservation.consumed_at = timezone.now()
    if reference:
        reservation.reference = reference
    reservation.save(update_fields=["status", "consumed_at", "reference", "updated_at"])
    logger.info(
        "reservation.consumed",
        extra={"event": "reservation.consumed", "reservation_id": reservation_id, "reference": reference},
    )
    return reservation


@atomic_operation
def expire_reservations(now=None) -> int:
    """Mark active reservations past ``expires_at`` as expired.

    Availability never depends on this sweep; it only tidies statuses.
    """
    now = now or timezone.now()
    count = StockReservation.objects.filter(
        status=StockReservation.STATUS_ACTIVE, expires_at__lte=now
    ).update(status=StockReservation.STATUS_EXPIRED, expired_at=now, updated_at=now)
    if count:
        logger.info("reservation.expired", extra={"event": "reservation.expired", "count": count})
    return count


# Reconciliation
@atomic_operation
def reconcile_product(*, product_id: int, actor: str = "") -> dict:
    """Set the cached ``Product.stock`` to the ledger balance and report any drift."""
    product = Product.objects.select_for_update().filter(pk=product_id).first()
    if product is None:
        raise NotFound(f"Product {product_id} not found", product_id=product_id)
    balance = ledger_balance(product.id)
    cached = int(product.stock)
    drift = cached - balance
    if drift:
        product.stock = balance
        product.save(update_fields=["stock", "updated_at"])
        logger.warning(
            "stock.drift_corrected",
            extra={
                "event": "stock.drift_corrected",
                "product_id": product.id,
                "cached": cached,
                "balance": balance,
                "drift": drift,
                "actor": actor,
            },
        )
    return {
        "product_id": product.id,
        "previous_stock": cached,
        "balance": balance,
        "drift": drift,
        "updated": bool(drift),
    }


def reconcile_all_products(*, actor: str = "") -> dict:
    """Reconcile every product; each product is corrected in its own transaction."""
    findings = []
    checked = 0
    for product_id in Product.objects.order_by("pk").values_list("pk", flat=True):
        checked += 1
        result = reconcile_product(product_id=product_id, actor=actor)
        if result["updated"]:
            findings.append(result)
    logger.info(
        "stock.reconciled",
        extra={"event": "stock.reconciled", "checked": checked, "corrected": len(findings), "actor": actor},
    )
    return {"checked": checked, "corrected": len(findings), "findings": findings}


# EOF
