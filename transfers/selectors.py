from django.db.models import Q, Sum

from .models import StockTransfer


def in_transit_quantity(product_id: int, branch_id: int | None = None) -> int:
    """Quantity shipped but not yet received, optionally only what left ``branch_id``."""
    qs = StockTransfer.objects.filter(product_id=product_id, status=StockTransfer.STATUS_SHIPPED)
    if branch_id is not None:
        qs = qs.filter(from_branch_id=branch_id)
    return int(qs.aggregate(total=Sum("quantity"))["total"] or 0)


def list_transfers(*, status: str | None = None, product_id=None, branch_id=None):
    qs = StockTransfer.objects.select_related("product", "from_branch", "to_branch").order_by("-created_at", "id")
    if status:
        qs = qs.filter(status=status)
    if product_id:
        qs = qs.filter(product_id=product_id)
    if branch_id:
        qs = qs.filter(Q(from_branch_id=branch_id) | Q(to_branch_id=branch_id))
    return qs
