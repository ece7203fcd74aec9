from common.exceptions import NotFound
from django.core.paginator import Paginator
from django.db.models import Sum

from .models import CycleCount


def get_cycle_count(cycle_count_id: int) -> dict:
    """Count header, its items and expected/counted/variance totals."""
    from .serializers import CycleCountItemSerializer, CycleCountSerializer

    count = CycleCount.objects.filter(pk=cycle_count_id).first()
    if count is None:
        raise NotFound(f"Cycle count {cycle_count_id} not found", cycle_count_id=cycle_count_id)
    items = count.items.select_related("product").order_by("id")
    totals = items.aggregate(expected=Sum("expected_qty"), counted=Sum("counted_qty"), variance=Sum("variance_qty"))
    return {
        "count": CycleCountSerializer(count).data,
        "items": CycleCountItemSerializer(items, many=True).data,
        "totals": {key: int(value or 0) for key, value in totals.items()},
    }


def list_cycle_counts(*, branch_id=None, status: str | None = None, page: int = 1, page_size: int = 50) -> dict:
    from .serializers import CycleCountSerializer

    qs = CycleCount.objects.order_by("-created_at", "-id")
    if branch_id:
        qs = qs.filter(branch_id=branch_id)
    if status:
        qs = qs.filter(status=status)
    paginator = Paginator(qs, page_size)
    rows = paginator.page(page).object_list if page <= paginator.num_pages else []
    return {
        "items": CycleCountSerializer(rows, many=True).data,
        "pagination": {"total": paginator.count, "page": page, "page_size": page_size},
    }
