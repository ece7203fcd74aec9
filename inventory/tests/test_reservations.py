from datetime import timedelta
from io import StringIO

import pytest
from catalog.tests.factories import ProductFactory
from common.exceptions import InsufficientStock, InvalidInput, InvalidState, KeyConflict, NotFound
from django.core.management import call_command
from django.utils import timezone
from inventory.models import StockLedgerEntry, StockReservation
from inventory.selectors import available_stock, ledger_balance
from inventory.services import (
    append_entry,
    consume_reservation,
    expire_reservations,
    release_reservation,
    reserve_stock,
)


def _stocked(qty=10):
    product = ProductFactory()
    append_entry(product_id=product.id, entry_type="in", quantity=qty)
    return product


def _backdate(reservation_id, minutes=1):
    StockReservation.objects.filter(reservation_id=reservation_id).update(
        expires_at=timezone.now() - timedelta(minutes=minutes)
    )


@pytest.mark.django_db
def test_reserve_reduces_availability_without_ledger_entry():
    product = _stocked(10)

    result = reserve_stock(items=[{"product_id": product.id, "quantity": 4}], reservation_id="r1", requested_by="5")

    assert result["status"] == "active"
    assert result["items"] == [{"product": product.id, "quantity": 4}]
    assert available_stock(product.id) == 6
    assert ledger_balance(product.id) == 10
    assert StockLedgerEntry.objects.filter(product=product).count() == 1


@pytest.mark.django_db
def test_second_reserve_of_exhausted_stock_fails():
    product = _stocked(5)
    reserve_stock(items=[{"product_id": product.id, "quantity": 5}], reservation_id="caller-a")

    with pytest.raises(InsufficientStock) as exc:
        reserve_stock(items=[{"product_id": product.id, "quantity": 5}], reservation_id="caller-b")
    assert exc.value.product_id == product.id
    assert exc.value.available == 0
    assert not StockReservation.objects.filter(reservation_id="caller-b").exists()


@pytest.mark.django_db
def test_reserve_is_all_or_nothing_across_items():
    p1 = _stocked(5)
    p2 = _stocked(1)

    with pytest.raises(InsufficientStock) as exc:
        reserve_stock(
            items=[{"product_id": p1.id, "quantity": 2}, {"product_id": p2.id, "quantity": 2}],
            reservation_id="multi",
        )
    assert exc.value.product_id == p2.id
    assert StockReservation.objects.count() == 0
    assert available_stock(p1.id) == 5


@pytest.mark.django_db
def test_expired_reservation_is_ignored_without_sweep():
    product = _stocked(5)
    reserve_stock(items=[{"product_id": product.id, "quantity": 5}], reservation_id="stale")
    assert available_stock(product.id) == 0

    _backdate("stale")

    assert StockReservation.objects.get(reservation_id="stale").status == "active"
    assert available_stock(product.id) == 5
    reserve_stock(items=[{"product_id": product.id, "quantity": 5}], reservation_id="fresh")


@pytest.mark.django_db
def test_reserve_is_idempotent_on_reservation_id():
    product = _stocked(10)
    items = [{"product_id": product.id, "quantity": 2}, {"product_id": product.id, "quantity": 1}]

    first = reserve_stock(items=items, reservation_id="same")
    again = reserve_stock(items=[{"product_id": product.id, "quantity": 3}], reservation_id="same")

    assert first == again
    assert StockReservation.objects.filter(reservation_id="same").count() == 1
    assert available_stock(product.id) == 7

    with pytest.raises(KeyConflict):
        reserve_stock(items=[{"product_id": product.id, "quantity": 4}], reservation_id="same")


@pytest.mark.django_db
def test_reserve_rejects_bad_input():
    product = _stocked(10)
    with pytest.raises(InvalidInput):
        reserve_stock(items=[], reservation_id="empty")
    with pytest.raises(InvalidInput):
        reserve_stock(items=[{"product_id": product.id, "quantity": 0}], reservation_id="zero")
    with pytest.raises(InvalidInput):
        reserve_stock(items=[{"product_id": product.id, "quantity": 1}], reservation_id="ttl", expiration_minutes=0)
    with pytest.raises(NotFound):
        reserve_stock(items=[{"product_id": product.id + 77, "quantity": 1}], reservation_id="ghost")


@pytest.mark.django_db
def test_release_frees_stock_and_is_repeatable():
    product = _stocked(3)
    reserve_stock(items=[{"product_id": product.id, "quantity": 3}], reservation_id="rel")

    released = release_reservation(reservation_id="rel", actor="9")
    assert released["status"] == "released"
    assert available_stock(product.id) == 3

    again = release_reservation(reservation_id="rel")
    assert again["status"] == "released"

    with pytest.raises(NotFound):
        release_reservation(reservation_id="missing")


@pytest.mark.django_db
def test_repeated_reserve_reports_current_state_after_release():
    product = _stocked(10)
    items = [{"product_id": product.id, "quantity": 4}]
    assert reserve_stock(items=items, reservation_id="r1")["status"] == "active"
    release_reservation(reservation_id="r1")

    again = reserve_stock(items=items, reservation_id="r1")

    assert again["status"] == "released"
    assert again["released_at"] is not None
    assert available_stock(product.id) == 10


@pytest.mark.django_db
def test_lapsed_reservation_reads_as_expired_before_sweep():
    product = _stocked(5)
    items = [{"product_id": product.id, "quantity": 2}]
    reserve_stock(items=items, reservation_id="lapsed")
    _backdate("lapsed")

    assert reserve_stock(items=items, reservation_id="lapsed")["status"] == "expired"
    assert StockReservation.objects.get(reservation_id="lapsed").status == "active"

    released = release_reservation(reservation_id="lapsed")

    assert released["status"] == "expired"
    reservation = StockReservation.objects.get(reservation_id="lapsed")
    assert reservation.status == "expired"
    assert reservation.released_at is None
    assert available_stock(product.id) == 5


@pytest.mark.django_db
def test_consumed_reservation_cannot_be_released_or_reconsumed():
    product = _stocked(3)
    reserve_stock(items=[{"product_id": product.id, "quantity": 1}], reservation_id="used")
    consume_reservation(reservation_id="used", reference="sale:1")

    res = StockReservation.objects.get(reservation_id="used")
    assert res.status == "consumed"
    assert res.consumed_at is not None
    assert available_stock(product.id) == 3

    with pytest.raises(InvalidState):
        release_reservation(reservation_id="used")
    with pytest.raises(InvalidState):
        consume_reservation(reservation_id="used")


@pytest.mark.django_db
def test_expire_sweep_marks_only_past_due_active_reservations():
    product = _stocked(10)
    reserve_stock(items=[{"product_id": product.id, "quantity": 1}], reservation_id="old")
    reserve_stock(items=[{"product_id": product.id, "quantity": 1}], reservation_id="new")
    reserve_stock(items=[{"product_id": product.id, "quantity": 1}], reservation_id="gone")
    release_reservation(reservation_id="gone")
    _backdate("old")
    _backdate("gone")

    assert expire_reservations() == 1
    statuses = dict(StockReservation.objects.values_list("reservation_id", "status"))
    assert statuses == {"old": "expired", "new": "active", "gone": "released"}

    # Releasing an expired reservation is a no-op
    assert release_reservation(reservation_id="old")["status"] == "expired"


@pytest.mark.django_db
def test_expire_reservations_command():
    product = _stocked(10)
    reserve_stock(items=[{"product_id": product.id, "quantity": 1}], reservation_id="cmd")
    _backdate("cmd")

    out = StringIO()
    call_command("expire_reservations", stdout=out)

    assert "Expired reservations: 1" in out.getvalue()
    assert StockReservation.objects.get(reservation_id="cmd").status == "expired"


# EOF
