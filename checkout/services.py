"""Checkout orchestration: validate, recheck stock, create the sale and post ledger outs.

``process_checkout`` is guarded end-to-end by the request's idempotency key. Cheap
payload checks run before any row is locked; everything after that happens in a
single transaction so a failure leaves no sale, no ledger entry and no consumed
reservation behind.
"""

import logging
from collections import OrderedDict
from decimal import ROUND_HALF_UP, Decimal

from catalog.models import Product
from common.choices import PaymentMethod
from common.exceptions import InsufficientStock, InvalidInput, ValidationFailed
from common.validation import validate_payload
from django.conf import settings
from idempotency.services import compute_request_hash, execute_once
from inventory.models import StockLedgerEntry
from inventory.selectors import available_stock, ledger_balance
from inventory.services import append_entry, consume_reservation, get_branch, lock_products
from sales.services import create_sale

from .serializers import CheckoutSerializer, StockValidationSerializer

logger = logging.getLogger("jewelpos.checkout")

CENT = Decimal("0.01")


def money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _tolerance() -> Decimal:
    return Decimal(str(getattr(settings, "CHECKOUT_TOTAL_TOLERANCE", "0.01")))


def compute_totals(data: dict) -> dict:
    """Recompute line and sale totals from validated checkout data.

    subtotal = sum(quantity * unit_price - item discount); the sale discount is
    either the percentage of the subtotal or the flat amount.
    """
    lines = []
    subtotal = Decimal("0.00")
    for item in data["items"]:
        gross = money(item["quantity"] * item["unit_price"])
        discount = money(item.get("discount_amount") or 0)
        line_total = money(gross - discount)
        lines.append(
            {
                "product_id": item["product_id"],
                "quantity": item["quantity"],
                "unit_price": money(item["unit_price"]),
                "discount_amount": discount,
                "subtotal": gross,
                "total": line_total,
            }
        )
        subtotal += line_total
    subtotal = money(subtotal)
    pct = data.get("discount_percentage")
    if pct:
        discount_amount = money(subtotal * Decimal(pct) / Decimal("100"))
    else:
        discount_amount = money(data.get("discount_amount") or 0)
    return {
        "lines": lines,
        "subtotal": subtotal,
        "discount_amount": discount_amount,
        "total": money(subtotal - discount_amount),
    }


def check_business_rules(data: dict, totals: dict) -> None:
    """Raise ``ValidationFailed`` listing every rule the payload breaks."""
    errors = []
    max_qty = int(getattr(settings, "CHECKOUT_MAX_ITEM_QUANTITY", 1000))
    max_pct = Decimal(str(getattr(settings, "CHECKOUT_MAX_DISCOUNT_PCT", 50)))
    tolerance = _tolerance()

    for index, line in enumerate(totals["lines"]):
        if line["quantity"] > max_qty:
            errors.append(f"items[{index}].quantity: must not exceed {max_qty}")
        if line["discount_amount"] > line["subtotal"]:
            errors.append(f"items[{index}].discount_amount: exceeds the line subtotal")

    pct = data.get("discount_percentage")
    if pct and Decimal(pct) > max_pct:
        errors.append(f"discount_percentage: must not exceed {max_pct}")
    if totals["discount_amount"] > totals["subtotal"]:
        errors.append("discount_amount: exceeds the subtotal")

    payments = data.get("payments") or []
    if payments:
        paid = money(sum((p["amount"] for p in payments), Decimal("0")))
        if abs(paid - totals["total"]) > tolerance:
            errors.append(f"payments: sum {paid} does not match total {totals['total']}")
        if data["payment_method"] != PaymentMethod.MIXED:
            if any(p["method"] != data["payment_method"] for p in payments):
                errors.append("payments: method differs from payment_method")

    declared = data.get("total")
    if declared is not None and abs(money(declared) - totals["total"]) > tolerance:
        errors.append(f"total: declared {money(declared)} does not match computed {totals['total']}")

    if errors:
        raise ValidationFailed("; ".join(errors), errors=errors)


def validate_stock_availability(payload: dict) -> dict:
    """Report per-item availability without reserving or writing anything.

    Unknown or inactive products are reported as errors rather than raised.
    """
    data = validate_payload(StockValidationSerializer, payload)
    reservation_id = data.get("reservation_id") or None
    products = Product.objects.in_bulk([item["product_id"] for item in data["items"]])
    errors = []
    report = []
    for item in data["items"]:
        product = products.get(item["product_id"])
        if product is None:
            errors.append(f"Product {item['product_id']} not found")
            report.append(
                {
                    "product_id": item["product_id"],
                    "product_name": None,
                    "requested_quantity": item["quantity"],
                    "available_stock": 0,
                    "sufficient": False,
                }
            )
            continue
        available = available_stock(product.id, exclude_reservation_id=reservation_id)
        sufficient = product.is_active and available >= item["quantity"]
        if not product.is_active:
            errors.append(f"Product {product.name} is not active")
        elif not sufficient:
            errors.append(
                f"Insufficient stock for {product.name}: requested {item['quantity']}, available {available}"
            )
        report.append(
            {
                "product_id": product.id,
                "product_name": product.name,
                "requested_quantity": item["quantity"],
                "available_stock": available,
                "sufficient": sufficient,
            }
        )
    return {"valid": not errors, "errors": errors, "items": report}


def _requested_quantities(lines: list[dict]) -> "OrderedDict[int, int]":
    wanted = OrderedDict()
    for line in sorted(lines, key=lambda ln: ln["product_id"]):
        wanted[line["product_id"]] = wanted.get(line["product_id"], 0) + line["quantity"]
    return wanted


def _sale_payload(sale, lines: list[dict]) -> dict:
    return {
        "sale_id": sale.id,
        "sale_number": sale.number,
        "status": sale.status,
        "client_id": sale.client_id,
        "branch_id": sale.branch_id,
        "payment_method": sale.payment_method,
        "subtotal": sale.subtotal,
        "discount_amount": sale.discount_amount,
        "total": sale.total,
        "reservation_id": sale.reservation_id or None,
        "items": [
            {
                "product_id": line["product"].id,
                "product_name": line["product"].name,
                "quantity": line["quantity"],
                "unit_price": line["unit_price"],
                "total": line["total"],
            }
            for line in lines
        ],
        "created_at": sale.created_at,
    }


def process_checkout(user_id, payload: dict) -> dict:
    """Turn a validated cart into a completed sale.

    Raises ``ValidationFailed`` for payload and pricing problems, ``NotFound`` for
    unknown products or reservations, ``InsufficientStock`` when live availability
    no longer covers an item and ``KeyConflict`` when the key was used for a
    different payload. A replay with the same key returns the first result.
    """
    data = validate_payload(CheckoutSerializer, payload, error_class=ValidationFailed)
    totals = compute_totals(data)
    check_business_rules(data, totals)

    key = data["idempotency_key"]
    reservation_id = data.get("reservation_id") or ""
    branch_id = data.get("branch_id")
    tolerance = _tolerance()
    payments = [dict(p) for p in data.get("payments") or []]

    def handler():
        if branch_id is not None:
            get_branch(branch_id)
        products = lock_products(line["product_id"] for line in totals["lines"])

        for line in totals["lines"]:
            product = products[line["product_id"]]
            if not product.is_active:
                raise ValidationFailed(f"Product {product.name} is not active", product_id=product.id)
            if abs(line["unit_price"] - money(product.sale_price)) > tolerance:
                raise ValidationFailed(
                    f"Price for {product.name} changed: sent {line['unit_price']}, current {money(product.sale_price)}",
                    product_id=product.id,
                )

        for product_id, quantity in _requested_quantities(totals["lines"]).items():
            # The referenced reservation is this checkout's own hold
            available = available_stock(product_id, exclude_reservation_id=reservation_id or None)
            if branch_id is not None:
                available = min(available, ledger_balance(product_id, branch_id))
            if available < quantity:
                raise InsufficientStock(product_id, quantity, available)

        lines = [dict(line, product=products[line["product_id"]]) for line in totals["lines"]]
        sale = create_sale(
            user_id=user_id,
            lines=lines,
            totals=totals,
            payment_method=data["payment_method"],
            payments=payments,
            client_id=data.get("client_id", ""),
            branch_id=branch_id,
            notes=data.get("notes", ""),
            reservation_id=reservation_id,
            idempotency_key=key,
        )
        reference = f"sale:{sale.number}"
        for line in lines:
            append_entry(
                product_id=line["product_id"],
                entry_type=StockLedgerEntry.TYPE_OUT,
                quantity=line["quantity"],
                branch_id=branch_id,
                reason="sale",
                reference=reference,
                idempotency_key=key,
                created_by=user_id,
            )
        if reservation_id:
            consume_reservation(reservation_id=reservation_id, reference=reference)

        logger.info(
            "checkout.completed",
            extra={
                "event": "checkout.completed",
                "sale_id": sale.id,
                "user_id": user_id,
                "total": str(sale.total),
                "items": len(lines),
                "reservation_id": reservation_id or None,
            },
        )
        return _sale_payload(sale, lines)

    try:
        return execute_once(
            key=key,
            operation="checkout",
            handler=handler,
            request_hash=compute_request_hash({k: v for k, v in data.items() if k != "idempotency_key"}),
            actor=user_id,
        )
    except InvalidInput as exc:
        logger.warning(
            "checkout.rejected",
            extra={"event": "checkout.rejected", "user_id": user_id, "error": exc.message},
        )
        raise
