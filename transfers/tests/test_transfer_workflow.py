import pytest
from catalog.tests.factories import BranchFactory, ProductFactory
from common.exceptions import InsufficientStock, InvalidInput, InvalidState, NotFound
from inventory.models import StockLedgerEntry
from inventory.selectors import available_stock, ledger_balance
from inventory.services import append_entry, reserve_stock
from transfers.models import StockTransfer
from transfers.selectors import in_transit_quantity
from transfers.services import cancel_transfer, receive_transfer, request_transfer, ship_transfer


@pytest.fixture
def setup():
    product = ProductFactory()
    a = BranchFactory()
    b = BranchFactory()
    append_entry(product_id=product.id, entry_type="in", quantity=10, branch_id=a.id)
    return product, a, b


def _request(product, a, b, qty=5, key="t-1"):
    return request_transfer(
        product_id=product.id, quantity=qty, from_branch_id=a.id, to_branch_id=b.id, requested_by="1", idempotency_key=key
    )


@pytest.mark.django_db
def test_transfer_moves_stock_on_ship_and_receive(setup):
    product, a, b = setup

    transfer = _request(product, a, b)
    assert transfer["status"] == "requested"
    assert ledger_balance(product.id, a.id) == 10
    assert ledger_balance(product.id, b.id) == 0

    shipped = ship_transfer(transfer_id=transfer["id"], actor="2")
    assert shipped["status"] == "shipped"
    assert shipped["shipped_by"] == "2"
    assert ledger_balance(product.id, a.id) == 5
    assert ledger_balance(product.id, b.id) == 0
    assert in_transit_quantity(product.id) == 5

    received = receive_transfer(transfer_id=transfer["id"], actor="3")
    assert received["status"] == "received"
    assert ledger_balance(product.id, a.id) == 5
    assert ledger_balance(product.id, b.id) == 5
    assert in_transit_quantity(product.id) == 0

    entries = StockLedgerEntry.objects.filter(reference=f"transfer:{transfer['id']}")
    assert sorted(entries.values_list("entry_type", "quantity")) == [("transfer_in", 5), ("transfer_out", -5)]


@pytest.mark.django_db
def test_retried_transitions_do_not_double_move(setup):
    product, a, b = setup
    transfer = _request(product, a, b)
    assert _request(product, a, b) == transfer
    assert StockTransfer.objects.count() == 1

    first = ship_transfer(transfer_id=transfer["id"])
    assert ship_transfer(transfer_id=transfer["id"]) == first
    assert ledger_balance(product.id, a.id) == 5

    first = receive_transfer(transfer_id=transfer["id"])
    assert receive_transfer(transfer_id=transfer["id"]) == first
    assert ledger_balance(product.id, b.id) == 5
    assert StockLedgerEntry.objects.filter(entry_type="transfer_in").count() == 1


@pytest.mark.django_db
def test_illegal_transitions_raise_invalid_state(setup):
    product, a, b = setup
    transfer = _request(product, a, b)

    with pytest.raises(InvalidState):
        receive_transfer(transfer_id=transfer["id"])

    ship_transfer(transfer_id=transfer["id"])
    with pytest.raises(InvalidState):
        cancel_transfer(transfer_id=transfer["id"])

    receive_transfer(transfer_id=transfer["id"])
    with pytest.raises(InvalidState):
        ship_transfer(transfer_id=transfer["id"])
    with pytest.raises(InvalidState):
        cancel_transfer(transfer_id=transfer["id"])


@pytest.mark.django_db
def test_cancel_only_before_ship(setup):
    product, a, b = setup
    transfer = _request(product, a, b)

    canceled = cancel_transfer(transfer_id=transfer["id"], actor="4")
    assert canceled["status"] == "canceled"
    assert cancel_transfer(transfer_id=transfer["id"]) == canceled
    with pytest.raises(InvalidState):
        ship_transfer(transfer_id=transfer["id"])
    assert ledger_balance(product.id, a.id) == 10


@pytest.mark.django_db
def test_request_validation(setup):
    product, a, b = setup
    with pytest.raises(InvalidInput):
        _request(product, a, a)
    with pytest.raises(InvalidInput):
        _request(product, a, b, qty=0)
    with pytest.raises(InsufficientStock):
        _request(product, a, b, qty=11)
    with pytest.raises(InsufficientStock):
        _request(product, b, a, qty=1, key="t-2")
    with pytest.raises(NotFound):
        request_transfer(
            product_id=product.id, quantity=1, from_branch_id=a.id, to_branch_id=9999, idempotency_key="t-3"
        )
    with pytest.raises(NotFound):
        ship_transfer(transfer_id=424242)
    assert StockTransfer.objects.count() == 0


@pytest.mark.django_db
def test_ship_rechecks_source_balance(setup):
    product, a, b = setup
    first = _request(product, a, b, qty=6, key="t-a")
    second = _request(product, a, b, qty=6, key="t-b")

    ship_transfer(transfer_id=first["id"])
    with pytest.raises(InsufficientStock):
        ship_transfer(transfer_id=second["id"])
    assert StockTransfer.objects.get(pk=second["id"]).status == "requested"
    assert ledger_balance(product.id, a.id) == 4


@pytest.mark.django_db
def test_transfer_cannot_take_reserved_stock(setup):
    product, a, b = setup
    reserve_stock(items=[{"product_id": product.id, "quantity": 8}], reservation_id="r-held")

    with pytest.raises(InsufficientStock) as exc:
        _request(product, a, b, qty=5, key="t-held")
    assert exc.value.available == 2

    transfer = _request(product, a, b, qty=2, key="t-fits")
    reserve_stock(items=[{"product_id": product.id, "quantity": 1}], reservation_id="r-late")
    with pytest.raises(InsufficientStock):
        ship_transfer(transfer_id=transfer["id"])
    assert StockTransfer.objects.get(pk=transfer["id"]).status == "requested"
    assert available_stock(product.id) == 1
    assert ledger_balance(product.id, a.id) == 10


# EOF
