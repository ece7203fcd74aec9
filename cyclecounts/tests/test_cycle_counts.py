from decimal import Decimal

import pytest
from catalog.tests.factories import BranchFactory, ProductFactory
from common.exceptions import InvalidInput, InvalidState, NotFound
from cyclecounts.models import CycleCount, CycleCountItem
from cyclecounts.selectors import get_cycle_count, list_cycle_counts
from cyclecounts.services import (
    apply_adjustments,
    cancel_cycle_count,
    complete_cycle_count,
    create_cycle_count,
    preload_items,
    set_item_count,
    start_cycle_count,
    within_tolerance,
)
from inventory.models import StockLedgerEntry
from inventory.selectors import ledger_balance
from inventory.services import append_entry


def _count_all(count_id, quantities):
    for item in CycleCountItem.objects.filter(cycle_count_id=count_id).order_by("id"):
        set_item_count(
            cycle_count_id=count_id, item_id=item.id, counted_qty=quantities[item.product_id], counted_by="5"
        )


@pytest.mark.django_db
def test_count_then_apply_writes_one_adjustment_once():
    product = ProductFactory()
    append_entry(product_id=product.id, entry_type="in", quantity=10)

    count = create_cycle_count(count_type="general", created_by="1")
    assert count["status"] == "pending"
    assert preload_items(cycle_count_id=count["id"])["created"] == 1
    item = CycleCountItem.objects.get(cycle_count_id=count["id"])
    assert item.expected_qty == 10

    start_cycle_count(cycle_count_id=count["id"])
    recorded = set_item_count(cycle_count_id=count["id"], item_id=item.id, counted_qty=8, counted_by="5")
    assert recorded["variance_qty"] == -2
    assert ledger_balance(product.id) == 10

    complete_cycle_count(cycle_count_id=count["id"])
    assert ledger_balance(product.id) == 10

    first = apply_adjustments(cycle_count_id=count["id"], actor="1")
    assert first["adjusted"] == 1
    assert ledger_balance(product.id) == 8
    entry = StockLedgerEntry.objects.get(reference=f"cycle_count:{count['id']}")
    assert (entry.entry_type, entry.quantity) == ("adjustment", -2)

    second = apply_adjustments(cycle_count_id=count["id"], actor="1")
    assert second == first
    assert StockLedgerEntry.objects.filter(reference=f"cycle_count:{count['id']}").count() == 1
    assert ledger_balance(product.id) == 8


@pytest.mark.django_db
def test_preload_snapshots_branch_balance_once():
    branch = BranchFactory()
    p1 = ProductFactory()
    p2 = ProductFactory()
    ProductFactory(is_active=False)
    append_entry(product_id=p1.id, entry_type="in", quantity=6, branch_id=branch.id)
    append_entry(product_id=p1.id, entry_type="in", quantity=50)

    count = create_cycle_count(branch_id=branch.id)
    preload_items(cycle_count_id=count["id"])
    expected = dict(CycleCountItem.objects.filter(cycle_count_id=count["id"]).values_list("product_id", "expected_qty"))
    assert expected == {p1.id: 6, p2.id: 0}

    # Snapshot stays frozen even as the ledger moves
    append_entry(product_id=p1.id, entry_type="in", quantity=1, branch_id=branch.id)
    assert CycleCountItem.objects.get(cycle_count_id=count["id"], product=p1).expected_qty == 6

    with pytest.raises(InvalidState):
        preload_items(cycle_count_id=count["id"])


@pytest.mark.django_db
def test_preload_can_be_limited_to_products():
    p1 = ProductFactory()
    ProductFactory()
    count = create_cycle_count()
    preload_items(cycle_count_id=count["id"], product_ids=[p1.id])
    assert list(CycleCountItem.objects.filter(cycle_count_id=count["id"]).values_list("product_id", flat=True)) == [
        p1.id
    ]


@pytest.mark.django_db
def test_transition_rules():
    product = ProductFactory()
    append_entry(product_id=product.id, entry_type="in", quantity=3)
    count = create_cycle_count()
    cid = count["id"]
    preload_items(cycle_count_id=cid)
    item = CycleCountItem.objects.get(cycle_count_id=cid)

    with pytest.raises(InvalidState):
        set_item_count(cycle_count_id=cid, item_id=item.id, counted_qty=1)
    with pytest.raises(InvalidState):
        complete_cycle_count(cycle_count_id=cid)

    start_cycle_count(cycle_count_id=cid)
    with pytest.raises(InvalidState):
        start_cycle_count(cycle_count_id=cid)
    with pytest.raises(InvalidState):
        complete_cycle_count(cycle_count_id=cid)
    with pytest.raises(InvalidState):
        apply_adjustments(cycle_count_id=cid)
    with pytest.raises(InvalidInput):
        set_item_count(cycle_count_id=cid, item_id=item.id, counted_qty=-1)
    with pytest.raises(NotFound):
        set_item_count(cycle_count_id=cid, item_id=item.id + 100, counted_qty=1)

    set_item_count(cycle_count_id=cid, item_id=item.id, counted_qty=3)
    complete_cycle_count(cycle_count_id=cid)
    with pytest.raises(InvalidState):
        cancel_cycle_count(cycle_count_id=cid)

    result = apply_adjustments(cycle_count_id=cid)
    assert result["adjusted"] == 0
    assert StockLedgerEntry.objects.filter(entry_type="adjustment").count() == 0


@pytest.mark.django_db
def test_cancel_before_completion():
    count = create_cycle_count()
    canceled = cancel_cycle_count(cycle_count_id=count["id"], actor="2")
    assert canceled["status"] == "canceled"
    with pytest.raises(InvalidState):
        start_cycle_count(cycle_count_id=count["id"])
    with pytest.raises(InvalidState):
        preload_items(cycle_count_id=count["id"])
    with pytest.raises(NotFound):
        cancel_cycle_count(cycle_count_id=987654)


@pytest.mark.django_db
def test_tolerance_skips_small_variances():
    small = ProductFactory()
    large = ProductFactory()
    append_entry(product_id=small.id, entry_type="in", quantity=100)
    append_entry(product_id=large.id, entry_type="in", quantity=10)

    count = create_cycle_count(tolerance_pct=Decimal("5.00"))
    cid = count["id"]
    preload_items(cycle_count_id=cid)
    start_cycle_count(cycle_count_id=cid)
    _count_all(cid, {small.id: 96, large.id: 9})
    complete_cycle_count(cycle_count_id=cid)

    result = apply_adjustments(cycle_count_id=cid)

    assert result["adjusted"] == 1
    assert result["skipped_within_tolerance"] == 1
    assert ledger_balance(small.id) == 100
    assert ledger_balance(large.id) == 9


def test_within_tolerance_rule():
    assert within_tolerance(100, -5, Decimal("5")) is True
    assert within_tolerance(100, 6, Decimal("5")) is False
    assert within_tolerance(10, 1, None) is False
    assert within_tolerance(0, 3, Decimal("50")) is False


@pytest.mark.django_db
def test_create_validation_and_detail_totals():
    with pytest.raises(InvalidInput):
        create_cycle_count(count_type="weekly")
    with pytest.raises(InvalidInput):
        create_cycle_count(tolerance_pct=150)
    with pytest.raises(NotFound):
        create_cycle_count(branch_id=99999)

    p1 = ProductFactory()
    p2 = ProductFactory()
    append_entry(product_id=p1.id, entry_type="in", quantity=4)
    append_entry(product_id=p2.id, entry_type="in", quantity=2)
    count = create_cycle_count()
    preload_items(cycle_count_id=count["id"])
    start_cycle_count(cycle_count_id=count["id"])
    _count_all(count["id"], {p1.id: 5, p2.id: 2})

    detail = get_cycle_count(count["id"])
    assert detail["totals"] == {"expected": 6, "counted": 7, "variance": 1}
    assert len(detail["items"]) == 2

    listing = list_cycle_counts(status="in_progress")
    assert listing["pagination"]["total"] == 1
    assert listing["items"][0]["id"] == count["id"]
    assert CycleCount.objects.count() == 1


# EOF
