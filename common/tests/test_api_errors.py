import pytest
from common.api import error_response, run_operation
from common.db import atomic_operation
from common.exceptions import (
    InfrastructureError,
    InsufficientStock,
    InvalidInput,
    InvalidState,
    KeyConflict,
    NotFound,
    ValidationFailed,
)
from django.db import OperationalError


@pytest.mark.parametrize(
    "exc, status_code, code",
    [
        (InvalidInput("bad"), 400, "invalid_input"),
        (ValidationFailed("totals"), 400, "validation_failed"),
        (NotFound("gone"), 404, "not_found"),
        (InsufficientStock(7, 3, 1), 409, "insufficient_stock"),
        (InvalidState("nope"), 409, "invalid_state"),
        (KeyConflict("reused"), 409, "key_conflict"),
        (InfrastructureError("down"), 503, "infrastructure_error"),
    ],
)
def test_error_response_maps_taxonomy(exc, status_code, code):
    resp = error_response(exc)
    assert resp.status_code == status_code
    assert resp.data["code"] == code


def test_insufficient_stock_carries_details():
    resp = error_response(InsufficientStock(7, 3, 1))
    assert resp.data["product_id"] == 7
    assert resp.data["requested"] == 3
    assert resp.data["available"] == 1


def test_unexpected_errors_are_not_swallowed():
    with pytest.raises(RuntimeError):
        error_response(RuntimeError("boom"))


def test_run_operation_renders_result_and_status():
    resp = run_operation(lambda x: {"x": x}, 3, status_code=201)
    assert resp.status_code == 201
    assert resp.data == {"x": 3}


@pytest.mark.django_db
def test_atomic_operation_surfaces_storage_failures():
    @atomic_operation
    def broken():
        raise OperationalError("database is locked")

    with pytest.raises(InfrastructureError):
        broken()
