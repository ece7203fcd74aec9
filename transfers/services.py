"""Transfer workflow: requested -> shipped -> received, or requested -> canceled.

Each transition is guarded on ``(transfer id, transition)`` so a retried ship or
receive replays the first result instead of moving stock twice.
"""

import logging

from catalog.models import Branch
from common.exceptions import InsufficientStock, InvalidInput, InvalidState, NotFound
from django.utils import timezone
from idempotency.services import compute_request_hash, execute_once
from inventory.models import StockLedgerEntry
from inventory.selectors import available_stock, ledger_balance
from inventory.services import append_entry, lock_products

from .models import StockTransfer

logger = logging.getLogger("jewelpos.transfers")


def _payload(transfer: StockTransfer) -> dict:
    from .serializers import StockTransferSerializer

    return dict(StockTransferSerializer(transfer).data)


def _get_transfer(transfer_id: int, *, lock: bool = False) -> StockTransfer:
    qs = StockTransfer.objects.all()
    if lock:
        qs = qs.select_for_update()
    transfer = qs.filter(pk=transfer_id).first()
    if transfer is None:
        raise NotFound(f"Transfer {transfer_id} not found", transfer_id=transfer_id)
    return transfer


def _require_status(transfer: StockTransfer, allowed, action: str) -> None:
    if transfer.status not in allowed:
        raise InvalidState(
            f"Cannot {action} a transfer that is {transfer.status}",
            transfer_id=transfer.id,
            status=transfer.status,
        )


def _check_source_balance(fields) -> None:
    """The source branch must hold the quantity without breaking a live reservation."""
    product_id = fields["product_id"]
    branch_id = fields["from_branch_id"]
    quantity = fields["quantity"]
    available = min(ledger_balance(product_id, branch_id), available_stock(product_id))
    if quantity > available:
        raise InsufficientStock(
            product_id,
            quantity,
            max(available, 0),
            message=(
                f"Insufficient stock for product {product_id} at branch {branch_id}: "
                f"requested {quantity}, available {max(available, 0)}"
            ),
        )


def request_transfer(
    *,
    product_id: int,
    quantity: int,
    from_branch_id: int,
    to_branch_id: int,
    requested_by: str = "",
    idempotency_key: str,
    reference: str = "",
) -> dict:
    """Create a transfer in ``requested``. No stock moves until it ships."""
    quantity = int(quantity)
    if quantity <= 0:
        raise InvalidInput("Transfer quantity must be positive")
    if int(from_branch_id) == int(to_branch_id):
        raise InvalidInput("Source and destination branches must differ")
    fields = {
        "product_id": int(product_id),
        "quantity": quantity,
        "from_branch_id": int(from_branch_id),
        "to_branch_id": int(to_branch_id),
        "reference": reference or "",
    }

    def handler():
        lock_products([fields["product_id"]])
        branches = set(
            Branch.objects.filter(pk__in=[fields["from_branch_id"], fields["to_branch_id"]], is_active=True)
            .values_list("pk", flat=True)
        )
        for key in ("from_branch_id", "to_branch_id"):
            if fields[key] not in branches:
                raise NotFound(f"Branch {fields[key]} not found", branch_id=fields[key])
        _check_source_balance(fields)
        transfer = StockTransfer.objects.create(
            **fields,
            idempotency_key=idempotency_key,
            requested_by=str(requested_by or ""),
        )
        logger.info(
            "transfer.requested",
            extra={"event": "transfer.requested", "transfer_id": transfer.id, **fields},
        )
        return _payload(transfer)

    return execute_once(
        key=idempotency_key,
        operation="transfer_request",
        handler=handler,
        request_hash=compute_request_hash(fields),
        actor=requested_by,
    )


def ship_transfer(*, transfer_id: int, actor: str = "") -> dict:
    """Write ``transfer_out`` at the source branch and mark the transfer shipped."""
    # A retry while still shipped replays; once received or canceled, shipping is illegal
    _require_status(_get_transfer(transfer_id), (StockTransfer.STATUS_REQUESTED, StockTransfer.STATUS_SHIPPED), "ship")

    def handler():
        transfer = _get_transfer(transfer_id, lock=True)
        _require_status(transfer, (StockTransfer.STATUS_REQUESTED,), "ship")
        lock_products([transfer.product_id])
        _check_source_balance(
            {"product_id": transfer.product_id, "from_branch_id": transfer.from_branch_id, "quantity": transfer.quantity}
        )
        append_entry(
            product_id=transfer.product_id,
            entry_type=StockLedgerEntry.TYPE_TRANSFER_OUT,
            quantity=transfer.quantity,
            branch_id=transfer.from_branch_id,
            reason="transfer shipped",
            reference=f"transfer:{transfer.id}",
            idempotency_key=transfer.idempotency_key,
            created_by=actor,
        )
        transfer.status = StockTransfer.STATUS_SHIPPED
        transfer.shipped_at = timezone.now()
        transfer.shipped_by = str(actor or "")
        transfer.save(update_fields=["status", "shipped_at", "shipped_by", "updated_at"])
        logger.info("transfer.shipped", extra={"event": "transfer.shipped", "transfer_id": transfer.id})
        return _payload(transfer)

    return execute_once(key=str(transfer_id), operation="transfer_ship", handler=handler, actor=actor)


def receive_transfer(*, transfer_id: int, actor: str = "") -> dict:
    """Write ``transfer_in`` at the destination branch and close the transfer."""
    _require_status(
        _get_transfer(transfer_id), (StockTransfer.STATUS_SHIPPED, StockTransfer.STATUS_RECEIVED), "receive"
    )

    def handler():
        transfer = _get_transfer(transfer_id, lock=True)
        _require_status(transfer, (StockTransfer.STATUS_SHIPPED,), "receive")
        lock_products([transfer.product_id])
        append_entry(
            product_id=transfer.product_id,
            entry_type=StockLedgerEntry.TYPE_TRANSFER_IN,
            quantity=transfer.quantity,
            branch_id=transfer.to_branch_id,
            reason="transfer received",
            reference=f"transfer:{transfer.id}",
            idempotency_key=transfer.idempotency_key,
            created_by=actor,
        )
        transfer.status = StockTransfer.STATUS_RECEIVED
        transfer.received_at = timezone.now()
        transfer.received_by = str(actor or "")
        transfer.save(update_fields=["status", "received_at", "received_by", "updated_at"])
        logger.info("transfer.received", extra={"event": "transfer.received", "transfer_id": transfer.id})
        return _payload(transfer)

    return execute_once(key=str(transfer_id), operation="transfer_receive", handler=handler, actor=actor)


def cancel_transfer(*, transfer_id: int, actor: str = "") -> dict:
    """Cancel a transfer that has not shipped. Shipped transfers cannot be canceled."""
    _require_status(
        _get_transfer(transfer_id), (StockTransfer.STATUS_REQUESTED, StockTransfer.STATUS_CANCELED), "cancel"
    )

    def handler():
        transfer = _get_transfer(transfer_id, lock=True)
        _require_status(transfer, (StockTransfer.STATUS_REQUESTED,), "cancel")
        transfer.status = StockTransfer.STATUS_CANCELED
        transfer.canceled_at = timezone.now()
        transfer.canceled_by = str(actor or "")
        transfer.save(update_fields=["status", "canceled_at", "canceled_by", "updated_at"])
        logger.info("transfer.canceled", extra={"event": "transfer.canceled", "transfer_id": transfer.id})
        return _payload(transfer)

    return execute_once(key=str(transfer_id), operation="transfer_cancel", handler=handler, actor=actor)


# EOF
