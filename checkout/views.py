"""Checkout API: stock pre-validation and sale processing."""

from common.api import error_response, payload_with_idempotency_key, run_operation
from common.exceptions import InvalidInput
from drf_spectacular.utils import OpenApiExample, extend_schema, inline_serializer
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from .serializers import CheckoutSerializer, StockValidationSerializer
from .services import process_checkout, validate_stock_availability

ErrorSerializer = inline_serializer(
    name="CheckoutError",
    fields={"detail": rf_serializers.CharField(), "code": rf_serializers.CharField()},
)


class StockValidationView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "checkout"

    @extend_schema(
        tags=["Checkout Endpoints"],
        summary="Validate stock",
        description="Per-item availability report for a prospective sale. Reserves nothing.",
        request=StockValidationSerializer,
        responses={200: None, 400: ErrorSerializer},
        examples=[
            OpenApiExample(
                "Report",
                value={
                    "valid": True,
                    "errors": [],
                    "items": [
                        {
                            "product_id": 7,
                            "product_name": "Gold ring",
                            "requested_quantity": 2,
                            "available_stock": 6,
                            "sufficient": True,
                        }
                    ],
                },
                response_only=True,
            )
        ],
    )
    def post(self, request):
        return run_operation(validate_stock_availability, request.data)


class CheckoutView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "checkout_write"

    @extend_schema(
        tags=["Checkout Endpoints"],
        summary="Process checkout",
        description=(
            "Create a sale and decrement stock in one transaction. Requires an idempotency key "
            "(body field or Idempotency-Key header); a retry with the same key replays the first "
            "response. A referenced reservation is consumed by the sale."
        ),
        request=CheckoutSerializer,
        responses={201: None, 400: ErrorSerializer, 404: ErrorSerializer, 409: ErrorSerializer},
        examples=[
            OpenApiExample(
                "Cash sale",
                value={
                    "items": [{"product_id": 7, "quantity": 1, "unit_price": "250.00"}],
                    "payment_method": "cash",
                    "payments": [{"method": "cash", "amount": "250.00"}],
                    "total": "250.00",
                    "idempotency_key": "pos1-000123",
                },
                request_only=True,
            )
        ],
    )
    def post(self, request):
        payload = payload_with_idempotency_key(request)
        if not payload.get("idempotency_key"):
            return error_response(InvalidInput("Idempotency key is required"))
        return run_operation(
            process_checkout, request.user.id, payload, status_code=status.HTTP_201_CREATED
        )
