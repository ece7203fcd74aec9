"""Read-side queries for the inventory engine.

Balances are always derived by summing ledger entries; nothing here reads the
cached ``Product.stock`` for availability decisions.
"""

from catalog.models import Product
from django.conf import settings
from django.core.paginator import Paginator
from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from .models import StockLedgerEntry, StockReservation, StockReservationItem


def ledger_balance(product_id: int, branch_id: int | None = None) -> int:
    """Sum of signed quantities for a product, optionally scoped to one branch."""
    qs = StockLedgerEntry.objects.filter(product_id=product_id)
    if branch_id is not None:
        qs = qs.filter(branch_id=branch_id)
    total = qs.aggregate(total=Sum("quantity"))["total"]
    return int(total or 0)


def branch_balances(product_id: int) -> list[dict]:
    rows = (
        StockLedgerEntry.objects.filter(product_id=product_id)
        .order_by()
        .values("branch_id")
        .annotate(balance=Sum("quantity"))
        .order_by("branch_id")
    )
    return [{"branch_id": row["branch_id"], "balance": int(row["balance"] or 0)} for row in rows]


def live_reservation_items(now=None, exclude_reservation_id: str | None = None):
    """Items of reservations that still hold stock.

    Expiry is evaluated here, lazily: an active reservation whose ``expires_at``
    has passed holds nothing even if no sweep has marked it expired.
    """
    now = now or timezone.now()
    qs = StockReservationItem.objects.filter(
        reservation__status=StockReservation.STATUS_ACTIVE,
        reservation__expires_at__gt=now,
    )
    if exclude_reservation_id:
        qs = qs.exclude(reservation__reservation_id=exclude_reservation_id)
    return qs


def reserved_quantity(product_id: int, now=None, exclude_reservation_id: str | None = None) -> int:
    total = (
        live_reservation_items(now=now, exclude_reservation_id=exclude_reservation_id)
        .filter(product_id=product_id)
        .aggregate(total=Sum("quantity"))["total"]
    )
    return int(total or 0)


def available_stock(product_id: int, now=None, exclude_reservation_id: str | None = None) -> int:
    """Ledger balance minus live reservations."""
    return ledger_balance(product_id) - reserved_quantity(
        product_id, now=now, exclude_reservation_id=exclude_reservation_id
    )


def get_product_balance(product_id: int) -> dict:
    """Ledger-derived stock picture for one product."""
    balance = ledger_balance(product_id)
    reserved = reserved_quantity(product_id)
    cached = Product.objects.filter(pk=product_id).values_list("stock", flat=True).first()
    return {
        "product_id": product_id,
        "balance": balance,
        "reserved": reserved,
        "available": balance - reserved,
        "cached_stock": cached,
        "drift": None if cached is None else int(cached) - balance,
        "branches": branch_balances(product_id),
    }


def ledger_history(
    product_id: int,
    *,
    branch_id: int | None = None,
    entry_type: str | None = None,
    created_after=None,
    created_before=None,
    page: int = 1,
    page_size: int | None = None,
) -> dict:
    """Paginated ledger entries for a product, newest first."""
    from .serializers import StockLedgerEntrySerializer

    qs = StockLedgerEntry.objects.filter(product_id=product_id).order_by("-created_at", "-id")
    if branch_id is not None:
        qs = qs.filter(branch_id=branch_id)
    if entry_type:
        qs = qs.filter(entry_type=entry_type)
    if created_after:
        qs = qs.filter(created_at__gte=created_after)
    if created_before:
        qs = qs.filter(created_at__lte=created_before)

    page_size = page_size or getattr(settings, "INVENTORY_HISTORY_PAGE_SIZE", 20)
    paginator = Paginator(qs, page_size)
    entries = []
    if page <= paginator.num_pages:
        entries = StockLedgerEntrySerializer(paginator.page(page).object_list, many=True).data
    return {
        "entries": list(entries),
        "pagination": {
            "page": page,
            "page_size": page_size,
            "total": paginator.count,
            "total_pages": paginator.num_pages if paginator.count else 0,
        },
    }


def stock_alerts() -> list[dict]:
    """Active products at or below their minimum, by ledger balance, most severe first."""
    products = Product.objects.filter(is_active=True).annotate(
        balance=Coalesce(Sum("ledger_entries__quantity"), 0)
    )
    alerts = []
    for product in products:
        balance = int(product.balance)
        if balance <= 0:
            alert_type, severity = "out_of_stock", "critical"
        elif balance <= product.min_stock:
            alert_type = "low_stock"
            severity = "high" if balance <= product.min_stock * 0.5 else "medium"
        else:
            continue
        alerts.append(
            {
                "product_id": product.id,
                "product_code": product.code,
                "product_name": product.name,
                "balance": balance,
                "min_stock": product.min_stock,
                "alert_type": alert_type,
                "severity": severity,
            }
        )
    order = {"critical": 0, "high": 1, "medium": 2}
    alerts.sort(key=lambda a: (order[a["severity"]], a["balance"], a["product_id"]))
    return alerts


# EOF
