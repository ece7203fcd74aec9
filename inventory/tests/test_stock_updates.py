import pytest
from catalog.tests.factories import BranchFactory, ProductFactory
from common.exceptions import InsufficientStock, InvalidInput, KeyConflict, NotFound
from idempotency.models import IdempotencyRecord
from inventory.models import StockLedgerEntry
from inventory.selectors import get_product_balance, ledger_balance
from inventory.services import append_entry, bulk_update_stock, reserve_stock, update_stock


@pytest.mark.django_db
def test_update_stock_inbound_then_outbound():
    product = ProductFactory()

    r1 = update_stock(product_id=product.id, entry_type="in", quantity=10, reason="delivery", idempotency_key="k1")
    assert r1["previous_balance"] == 0
    assert r1["new_balance"] == 10
    assert r1["entry"]["quantity"] == 10

    r2 = update_stock(product_id=product.id, entry_type="out", quantity=4, idempotency_key="k2", actor="7")
    assert r2["new_balance"] == 6
    assert r2["entry"]["created_by"] == "7"
    assert ledger_balance(product.id) == 6


@pytest.mark.django_db
def test_same_key_same_payload_applies_once_and_replays_response():
    product = ProductFactory()

    first = update_stock(product_id=product.id, entry_type="in", quantity=5, idempotency_key="retry-1")
    second = update_stock(product_id=product.id, entry_type="in", quantity=5, idempotency_key="retry-1")

    assert first == second
    assert StockLedgerEntry.objects.filter(product=product).count() == 1
    assert ledger_balance(product.id) == 5
    assert IdempotencyRecord.objects.filter(key="retry-1", operation="stock_update").count() == 1


@pytest.mark.django_db
def test_same_key_different_payload_conflicts():
    product = ProductFactory()
    update_stock(product_id=product.id, entry_type="in", quantity=5, idempotency_key="dup")

    with pytest.raises(KeyConflict):
        update_stock(product_id=product.id, entry_type="in", quantity=6, idempotency_key="dup")
    assert ledger_balance(product.id) == 5


@pytest.mark.django_db
def test_outbound_beyond_available_fails_without_side_effects():
    product = ProductFactory()
    append_entry(product_id=product.id, entry_type="in", quantity=3)

    with pytest.raises(InsufficientStock) as exc:
        update_stock(product_id=product.id, entry_type="out", quantity=4, idempotency_key="too-much")
    assert exc.value.product_id == product.id
    assert exc.value.available == 3

    assert ledger_balance(product.id) == 3
    assert not IdempotencyRecord.objects.filter(key="too-much").exists()

    # Failed attempt is not recorded, so the key can be retried with a valid request
    update_stock(product_id=product.id, entry_type="out", quantity=3, idempotency_key="too-much")
    assert ledger_balance(product.id) == 0


@pytest.mark.django_db
def test_outbound_respects_live_reservations():
    product = ProductFactory()
    append_entry(product_id=product.id, entry_type="in", quantity=5)
    reserve_stock(items=[{"product_id": product.id, "quantity": 4}], reservation_id="hold-1")

    with pytest.raises(InsufficientStock):
        update_stock(product_id=product.id, entry_type="out", quantity=2, idempotency_key="o1")
    update_stock(product_id=product.id, entry_type="out", quantity=1, idempotency_key="o2")
    assert ledger_balance(product.id) == 4


@pytest.mark.django_db
def test_outbound_with_branch_checks_branch_balance():
    product = ProductFactory()
    a = BranchFactory()
    b = BranchFactory()
    append_entry(product_id=product.id, entry_type="in", quantity=2, branch_id=a.id)
    append_entry(product_id=product.id, entry_type="in", quantity=8, branch_id=b.id)

    with pytest.raises(InsufficientStock):
        update_stock(product_id=product.id, entry_type="out", quantity=3, branch_id=a.id, idempotency_key="b1")
    update_stock(product_id=product.id, entry_type="out", quantity=3, branch_id=b.id, idempotency_key="b2")
    assert ledger_balance(product.id, b.id) == 5


@pytest.mark.django_db
def test_negative_adjustment_cannot_drive_balance_below_zero():
    product = ProductFactory()
    append_entry(product_id=product.id, entry_type="in", quantity=2)

    with pytest.raises(InsufficientStock):
        update_stock(product_id=product.id, entry_type="adjustment", quantity=-3, idempotency_key="adj")
    result = update_stock(product_id=product.id, entry_type="adjustment", quantity=-2, idempotency_key="adj")
    assert result["new_balance"] == 0


@pytest.mark.django_db
def test_update_stock_rejects_bad_input_and_unknown_product():
    product = ProductFactory()
    with pytest.raises(InvalidInput):
        update_stock(product_id=product.id, entry_type="transfer_in", quantity=1, idempotency_key="x")
    with pytest.raises(InvalidInput):
        update_stock(product_id=product.id, entry_type="in", quantity=0, idempotency_key="x")
    with pytest.raises(InvalidInput):
        update_stock(product_id=product.id, entry_type="in", quantity=1, idempotency_key="  ")
    with pytest.raises(NotFound):
        update_stock(product_id=product.id + 999, entry_type="in", quantity=1, idempotency_key="x")
    with pytest.raises(NotFound):
        update_stock(product_id=product.id, entry_type="in", quantity=1, branch_id=4242, idempotency_key="y")
    assert StockLedgerEntry.objects.count() == 0


@pytest.mark.django_db
def test_bulk_update_converts_targets_to_adjustments():
    p1 = ProductFactory()
    p2 = ProductFactory()
    p3 = ProductFactory()
    append_entry(product_id=p1.id, entry_type="in", quantity=10)
    append_entry(product_id=p2.id, entry_type="in", quantity=1)
    append_entry(product_id=p3.id, entry_type="in", quantity=4)

    result = bulk_update_stock(
        updates=[
            {"product_id": p1.id, "new_stock": 7, "reason": "recount"},
            {"product_id": p2.id, "new_stock": 5},
            {"product_id": p3.id, "new_stock": 4},
        ],
        actor="3",
        idempotency_key="bulk-1",
    )

    assert result["updated"] == 2
    deltas = {r["product_id"]: r["delta"] for r in result["results"]}
    assert deltas == {p1.id: -3, p2.id: 4, p3.id: 0}
    assert ledger_balance(p1.id) == 7
    assert ledger_balance(p2.id) == 5
    assert StockLedgerEntry.objects.filter(product=p3, entry_type="adjustment").count() == 0

    replay = bulk_update_stock(
        updates=[
            {"product_id": p1.id, "new_stock": 7, "reason": "recount"},
            {"product_id": p2.id, "new_stock": 5},
            {"product_id": p3.id, "new_stock": 4},
        ],
        actor="3",
        idempotency_key="bulk-1",
    )
    assert replay == result
    assert StockLedgerEntry.objects.filter(entry_type="adjustment").count() == 2


@pytest.mark.django_db
def test_bulk_update_is_all_or_nothing():
    p1 = ProductFactory()
    append_entry(product_id=p1.id, entry_type="in", quantity=10)

    with pytest.raises(NotFound):
        bulk_update_stock(
            updates=[{"product_id": p1.id, "new_stock": 2}, {"product_id": p1.id + 500, "new_stock": 1}],
            idempotency_key="bulk-2",
        )
    assert ledger_balance(p1.id) == 10

    with pytest.raises(InvalidInput):
        bulk_update_stock(
            updates=[{"product_id": p1.id, "new_stock": 2}, {"product_id": p1.id, "new_stock": 3}],
            idempotency_key="bulk-3",
        )


@pytest.mark.django_db
def test_product_balance_reports_reserved_and_drift():
    product = ProductFactory()
    branch = BranchFactory()
    append_entry(product_id=product.id, entry_type="in", quantity=10, branch_id=branch.id)
    reserve_stock(items=[{"product_id": product.id, "quantity": 4}], reservation_id="r-bal")
    type(product).objects.filter(pk=product.pk).update(stock=12)

    balance = get_product_balance(product.id)
    assert balance["balance"] == 10
    assert balance["reserved"] == 4
    assert balance["available"] == 6
    assert balance["cached_stock"] == 12
    assert balance["drift"] == 2
    assert balance["branches"] == [{"branch_id": branch.id, "balance": 10}]


# EOF
