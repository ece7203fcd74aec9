"""Inventory API: ledger reads, stock updates, reservations and reconciliation."""

from common.api import actor_id, error_response, payload_with_idempotency_key, run_operation
from common.choices import ReservationStatus
from common.exceptions import InvalidInput
from common.validation import validate_payload
from django_filters import rest_framework as filters
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from rest_framework import generics, status
from rest_framework import serializers as rf_serializers
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import StockReservation
from .selectors import get_product_balance, ledger_history, stock_alerts
from .serializers import (
    BulkStockUpdateSerializer,
    LedgerHistoryQuerySerializer,
    ReconcileSerializer,
    ReserveStockSerializer,
    StockReservationSerializer,
    StockUpdateSerializer,
)
from .services import (
    bulk_update_stock,
    reconcile_all_products,
    reconcile_product,
    release_reservation,
    reserve_stock,
    update_stock,
)

ErrorSerializer = inline_serializer(
    name="InventoryError",
    fields={"detail": rf_serializers.CharField(), "code": rf_serializers.CharField()},
)


class InventoryHealthView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = []

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Inventory health",
        description="Simple healthcheck endpoint for the inventory app",
        examples=[OpenApiExample("Health OK", value={"status": "ok", "app": "inventory"})],
    )
    def get(self, request):
        return Response({"status": "ok", "app": "inventory"})


class LedgerHistoryView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Ledger history",
        description=(
            "Paginated ledger entries for a product, newest first. "
            "Filters: branch_id, entry_type, created_after / created_before (ISO), page, page_size."
        ),
        parameters=[
            OpenApiParameter(name="product_id", type=int, required=True),
            OpenApiParameter(name="branch_id", type=int, required=False),
            OpenApiParameter(name="entry_type", type=str, required=False),
            OpenApiParameter(name="created_after", type=str, required=False),
            OpenApiParameter(name="created_before", type=str, required=False),
            OpenApiParameter(name="page", type=int, required=False),
            OpenApiParameter(name="page_size", type=int, required=False),
        ],
        responses={200: None, 400: ErrorSerializer},
    )
    def get(self, request):
        try:
            params = validate_payload(LedgerHistoryQuerySerializer, request.query_params)
        except InvalidInput as exc:
            return error_response(exc)
        product_id = params.pop("product_id")
        return Response(ledger_history(product_id, **params))


class ProductBalanceView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Product balance",
        description="Ledger balance, live reservations, availability and cached-stock drift for a product.",
        examples=[
            OpenApiExample(
                "Balance",
                value={
                    "product_id": 7,
                    "balance": 10,
                    "reserved": 4,
                    "available": 6,
                    "cached_stock": 10,
                    "drift": 0,
                    "branches": [{"branch_id": 1, "balance": 10}],
                },
            )
        ],
    )
    def get(self, request, product_id: int):
        return Response(get_product_balance(product_id))


class StockAlertsView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Stock alerts",
        description="Active products at or below their minimum stock, by ledger balance.",
    )
    def get(self, request):
        return Response({"results": stock_alerts()})


class StockUpdateView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Update stock",
        description=(
            "Record an inbound, outbound or adjustment movement. Requires an idempotency key "
            "(body field or Idempotency-Key header); retries replay the first response."
        ),
        request=StockUpdateSerializer,
        responses={200: None, 400: ErrorSerializer, 404: ErrorSerializer, 409: ErrorSerializer},
        examples=[
            OpenApiExample(
                "Inbound",
                value={"product_id": 7, "entry_type": "in", "quantity": 5, "reason": "supplier delivery"},
                request_only=True,
            )
        ],
    )
    def post(self, request):
        try:
            data = validate_payload(StockUpdateSerializer, payload_with_idempotency_key(request))
        except InvalidInput as exc:
            return error_response(exc)
        return run_operation(update_stock, actor=actor_id(request), **data)


class BulkStockUpdateView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Bulk update stock",
        description="Set absolute stock targets for several products; all succeed or none do.",
        request=BulkStockUpdateSerializer,
        responses={200: None, 400: ErrorSerializer, 404: ErrorSerializer, 409: ErrorSerializer},
    )
    def post(self, request):
        try:
            data = validate_payload(BulkStockUpdateSerializer, payload_with_idempotency_key(request))
        except InvalidInput as exc:
            return error_response(exc)
        updates = [dict(u) for u in data["updates"]]
        return run_operation(
            bulk_update_stock,
            updates=updates,
            actor=actor_id(request),
            idempotency_key=data["idempotency_key"],
        )


class ReservationFilterSet(filters.FilterSet):
    status = filters.ChoiceFilter(choices=ReservationStatus.choices)
    product_id = filters.NumberFilter(field_name="items__product_id", distinct=True)

    class Meta:
        model = StockReservation
        fields = ["status", "product_id"]


class ReservationListCreateView(generics.ListAPIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "inventory"
    serializer_class = StockReservationSerializer
    filterset_class = ReservationFilterSet
    filter_backends = [filters.DjangoFilterBackend]

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List stock reservations",
        description="List reservations. Filters: status (active/consumed/released/expired), product_id.",
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        return StockReservation.objects.prefetch_related("items").order_by("-created_at", "id")

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Reserve stock",
        description=(
            "Hold stock for a checkout in progress. Idempotent on reservation_id: the same items "
            "return the existing reservation, different items are rejected with 409."
        ),
        request=ReserveStockSerializer,
        responses={201: StockReservationSerializer, 400: ErrorSerializer, 409: ErrorSerializer},
        examples=[
            OpenApiExample(
                "Reserve",
                value={"reservation_id": "r1", "items": [{"product_id": 7, "quantity": 4}]},
                request_only=True,
            )
        ],
    )
    def post(self, request):
        try:
            data = validate_payload(ReserveStockSerializer, request.data)
        except InvalidInput as exc:
            return error_response(exc)
        return run_operation(
            reserve_stock,
            items=[dict(item) for item in data["items"]],
            reservation_id=data["reservation_id"],
            requested_by=actor_id(request),
            expiration_minutes=data.get("expiration_minutes"),
            reference=data.get("reference", ""),
            status_code=status.HTTP_201_CREATED,
        )


class ReservationReleaseView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Release reservation",
        description="Release an active reservation. Releasing an already released or expired one is a no-op.",
        request=None,
        responses={200: StockReservationSerializer, 404: ErrorSerializer, 409: ErrorSerializer},
    )
    def post(self, request, reservation_id: str):
        return run_operation(release_reservation, reservation_id=reservation_id, actor=actor_id(request))


class ReconcileView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Reconcile cached stock",
        description=(
            "Correct the cached product stock to the ledger balance. Pass product_id for one "
            "product, omit it to reconcile every product. Drift is reported, never an error."
        ),
        request=ReconcileSerializer,
    )
    def post(self, request):
        try:
            data = validate_payload(ReconcileSerializer, request.data)
        except InvalidInput as exc:
            return error_response(exc)
        product_id = data.get("product_id")
        if product_id is None:
            return run_operation(reconcile_all_products, actor=actor_id(request))
        return run_operation(reconcile_product, product_id=product_id, actor=actor_id(request))


# EOF
