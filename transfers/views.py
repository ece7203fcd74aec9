"""Transfer API: request, list, and the ship/receive/cancel transitions."""

from common.api import actor_id, error_response, payload_with_idempotency_key, run_operation
from common.exceptions import InvalidInput
from common.validation import validate_payload
from drf_spectacular.utils import OpenApiExample, extend_schema, inline_serializer
from rest_framework import generics, status
from rest_framework import serializers as rf_serializers
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from .selectors import list_transfers
from .serializers import StockTransferSerializer, TransferRequestSerializer
from .services import cancel_transfer, receive_transfer, request_transfer, ship_transfer

ErrorSerializer = inline_serializer(
    name="TransferError",
    fields={"detail": rf_serializers.CharField(), "code": rf_serializers.CharField()},
)


class TransferListCreateView(generics.ListAPIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "inventory"
    serializer_class = StockTransferSerializer

    @extend_schema(
        tags=["Transfer Endpoints"],
        summary="List transfers",
        description="Filters: status, product_id, branch_id (source or destination).",
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        params = self.request.query_params
        return list_transfers(
            status=params.get("status"),
            product_id=params.get("product_id"),
            branch_id=params.get("branch_id"),
        )

    @extend_schema(
        tags=["Transfer Endpoints"],
        summary="Request transfer",
        description="Create a transfer in requested state. Stock moves only when it ships.",
        request=TransferRequestSerializer,
        responses={201: StockTransferSerializer, 400: ErrorSerializer, 404: ErrorSerializer, 409: ErrorSerializer},
        examples=[
            OpenApiExample(
                "Request",
                value={"product_id": 7, "quantity": 5, "from_branch_id": 1, "to_branch_id": 2, "idempotency_key": "t-1"},
                request_only=True,
            )
        ],
    )
    def post(self, request):
        try:
            data = validate_payload(TransferRequestSerializer, payload_with_idempotency_key(request))
        except InvalidInput as exc:
            return error_response(exc)
        return run_operation(
            request_transfer, requested_by=actor_id(request), status_code=status.HTTP_201_CREATED, **data
        )


class TransferTransitionView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "inventory_write"
    transition = None

    TRANSITIONS = {
        "ship": ship_transfer,
        "receive": receive_transfer,
        "cancel": cancel_transfer,
    }

    @extend_schema(
        tags=["Transfer Endpoints"],
        summary="Advance transfer",
        description=(
            "ship: requested -> shipped (writes transfer_out at the source). "
            "receive: shipped -> received (writes transfer_in at the destination). "
            "cancel: requested -> canceled. Retries of the same transition replay its result."
        ),
        request=None,
        responses={200: StockTransferSerializer, 404: ErrorSerializer, 409: ErrorSerializer},
    )
    def post(self, request, transfer_id: int):
        func = self.TRANSITIONS[self.transition]
        return run_operation(func, transfer_id=transfer_id, actor=actor_id(request))
