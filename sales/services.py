import logging
from decimal import Decimal

from django.utils import timezone

from .models import Sale, SaleItem

logger = logging.getLogger("jewelpos.checkout")


def create_sale(
    *,
    user_id,
    lines: list[dict],
    totals: dict,
    payment_method: str,
    payments: list | None = None,
    client_id: str = "",
    branch_id: int | None = None,
    notes: str = "",
    reservation_id: str = "",
    idempotency_key: str = "",
) -> Sale:
    """Persist a completed sale and its line items. Caller owns the transaction.

    ``lines`` carry ``product``, ``quantity``, ``unit_price``, ``discount_amount``,
    ``subtotal`` and ``total`` as computed by checkout.
    """
    sale = Sale.objects.create(
        user_id=user_id,
        client_id=str(client_id or ""),
        branch_id=branch_id,
        subtotal=totals["subtotal"],
        discount_amount=totals["discount_amount"],
        total=totals["total"],
        payment_method=payment_method,
        payments=payments or [],
        notes=notes or "",
        status=Sale.STATUS_COMPLETED,
        reservation_id=reservation_id or "",
        idempotency_key=idempotency_key or "",
    )
    SaleItem.objects.bulk_create(
        [
            SaleItem(
                sale=sale,
                product=line["product"],
                product_name=line["product"].name,
                quantity=line["quantity"],
                unit_price=line["unit_price"],
                discount_amount=line.get("discount_amount", Decimal("0.00")),
                subtotal=line["subtotal"],
                total=line["total"],
            )
            for line in lines
        ]
    )
    # Human-friendly unique number
    sale.number = f"SALE-{timezone.localdate():%Y%m%d}-{int(sale.id):06d}"
    sale.save(update_fields=["number"])
    logger.info(
        "sale.created",
        extra={"event": "sale.created", "sale_id": sale.id, "number": sale.number, "total": str(sale.total)},
    )
    return sale
