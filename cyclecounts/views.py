"""Cycle count API."""

from common.api import actor_id, error_response, run_operation
from common.exceptions import InvalidInput
from common.validation import validate_payload
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from .selectors import get_cycle_count, list_cycle_counts
from .serializers import (
    CreateCycleCountSerializer,
    CycleCountListQuerySerializer,
    PreloadItemsSerializer,
    SetItemCountSerializer,
)
from .services import (
    apply_adjustments,
    cancel_cycle_count,
    complete_cycle_count,
    create_cycle_count,
    preload_items,
    set_item_count,
    start_cycle_count,
)

TAGS = ["Cycle Count Endpoints"]


class CycleCountListCreateView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "inventory"

    @extend_schema(tags=TAGS, summary="List cycle counts", parameters=[CycleCountListQuerySerializer])
    def get(self, request):
        try:
            params = validate_payload(CycleCountListQuerySerializer, request.query_params)
        except InvalidInput as exc:
            return error_response(exc)
        return run_operation(list_cycle_counts, **params)

    @extend_schema(tags=TAGS, summary="Create cycle count", request=CreateCycleCountSerializer)
    def post(self, request):
        try:
            data = validate_payload(CreateCycleCountSerializer, request.data)
        except InvalidInput as exc:
            return error_response(exc)
        return run_operation(
            create_cycle_count, created_by=actor_id(request), status_code=status.HTTP_201_CREATED, **data
        )


class CycleCountDetailView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "inventory"

    @extend_schema(tags=TAGS, summary="Cycle count detail", description="Count, items and totals.")
    def get(self, request, cycle_count_id: int):
        return run_operation(get_cycle_count, cycle_count_id)


class CycleCountPreloadView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=TAGS,
        summary="Preload items",
        description="Snapshot ledger balances as expected quantities. Allowed once per count.",
        request=PreloadItemsSerializer,
    )
    def post(self, request, cycle_count_id: int):
        try:
            data = validate_payload(PreloadItemsSerializer, request.data)
        except InvalidInput as exc:
            return error_response(exc)
        return run_operation(preload_items, cycle_count_id=cycle_count_id, **data)


class CycleCountItemView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "inventory_write"

    @extend_schema(tags=TAGS, summary="Record item count", request=SetItemCountSerializer)
    def patch(self, request, cycle_count_id: int, item_id: int):
        try:
            data = validate_payload(SetItemCountSerializer, request.data)
        except InvalidInput as exc:
            return error_response(exc)
        return run_operation(
            set_item_count,
            cycle_count_id=cycle_count_id,
            item_id=item_id,
            counted_by=actor_id(request),
            **data,
        )


class CycleCountTransitionView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "inventory_write"
    transition = None

    TRANSITIONS = {
        "start": start_cycle_count,
        "complete": complete_cycle_count,
        "cancel": cancel_cycle_count,
        "apply": apply_adjustments,
    }

    @extend_schema(
        tags=TAGS,
        summary="Advance cycle count",
        description=(
            "start: pending -> in_progress. complete: requires every item counted. "
            "cancel: before completion. apply: write adjustments for a completed count, once."
        ),
        request=None,
    )
    def post(self, request, cycle_count_id: int):
        func = self.TRANSITIONS[self.transition]
        return run_operation(func, cycle_count_id=cycle_count_id, actor=actor_id(request))
