"""Translate engine failures into DRF responses."""

from rest_framework import status
from rest_framework.response import Response

from .exceptions import (
    InfrastructureError,
    InsufficientStock,
    InvalidInput,
    InvalidState,
    InventoryError,
    KeyConflict,
    NotFound,
)

ERROR_STATUS = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (InvalidInput, status.HTTP_400_BAD_REQUEST),
    (InsufficientStock, status.HTTP_409_CONFLICT),
    (InvalidState, status.HTTP_409_CONFLICT),
    (KeyConflict, status.HTTP_409_CONFLICT),
)


def error_response(exc: Exception) -> Response:
    if isinstance(exc, InfrastructureError):
        return Response(
            {"detail": "Service temporarily unavailable.", "code": exc.code},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    for klass, code in ERROR_STATUS:
        if isinstance(exc, klass):
            return Response(exc.as_dict(), status=code)
    if isinstance(exc, InventoryError):
        return Response(exc.as_dict(), status=status.HTTP_400_BAD_REQUEST)
    raise exc


def actor_id(request) -> str:
    """Identity of the authenticated caller as stored on engine records."""
    return str(getattr(request.user, "id", "") or "")


def run_operation(func, *args, status_code: int = status.HTTP_200_OK, **kwargs) -> Response:
    """Call an engine operation and render its result or typed failure."""
    try:
        result = func(*args, **kwargs)
    except (InventoryError, InfrastructureError) as exc:
        return error_response(exc)
    return Response(result, status=status_code)


def payload_with_idempotency_key(request) -> dict:
    """Request body with ``idempotency_key`` filled from the ``Idempotency-Key`` header when absent."""
    payload = dict(request.data.items()) if hasattr(request.data, "items") else {}
    header = request.headers.get("Idempotency-Key")
    if header and not payload.get("idempotency_key"):
        payload["idempotency_key"] = header
    return payload
