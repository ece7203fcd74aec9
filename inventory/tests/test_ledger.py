from datetime import timedelta

import pytest
from catalog.models import Product
from catalog.tests.factories import BranchFactory, ProductFactory
from common.exceptions import InvalidInput, InvalidState
from django.db import IntegrityError, transaction
from django.utils import timezone
from inventory.models import StockLedgerEntry
from inventory.selectors import branch_balances, ledger_balance, ledger_history
from inventory.services import append_entry, signed_quantity


@pytest.mark.django_db
def test_balance_is_sum_of_signed_entries_and_cache_follows():
    product = ProductFactory()
    branch = BranchFactory()

    append_entry(product_id=product.id, entry_type="in", quantity=10, branch_id=branch.id)
    append_entry(product_id=product.id, entry_type="out", quantity=3, branch_id=branch.id)
    append_entry(product_id=product.id, entry_type="adjustment", quantity=-2, branch_id=branch.id)
    append_entry(product_id=product.id, entry_type="adjustment", quantity=4)

    quantities = list(StockLedgerEntry.objects.filter(product=product).values_list("quantity", flat=True))
    assert sorted(quantities) == [-3, -2, 4, 10]
    assert ledger_balance(product.id) == sum(quantities) == 9
    assert ledger_balance(product.id, branch.id) == 5

    product.refresh_from_db()
    assert product.stock == 9


@pytest.mark.django_db
def test_sign_convention_per_entry_type():
    assert signed_quantity("in", 5) == 5
    assert signed_quantity("transfer_in", 5) == 5
    assert signed_quantity("reservation_release", 1) == 1
    assert signed_quantity("out", 5) == -5
    assert signed_quantity("transfer_out", 2) == -2
    assert signed_quantity("adjustment", -7) == -7

    with pytest.raises(InvalidInput):
        signed_quantity("out", -5)
    with pytest.raises(InvalidInput):
        signed_quantity("adjustment", 0)
    with pytest.raises(InvalidInput):
        signed_quantity("teleport", 1)


@pytest.mark.django_db
def test_entries_cannot_be_updated_or_deleted():
    product = ProductFactory()
    entry = append_entry(product_id=product.id, entry_type="in", quantity=4)

    entry.quantity = 400
    with pytest.raises(InvalidState):
        entry.save()
    with pytest.raises(InvalidState):
        entry.delete()
    with pytest.raises(InvalidState):
        StockLedgerEntry.objects.filter(pk=entry.pk).update(quantity=1)
    with pytest.raises(InvalidState):
        StockLedgerEntry.objects.filter(pk=entry.pk).delete()

    assert StockLedgerEntry.objects.get(pk=entry.pk).quantity == 4


@pytest.mark.django_db
def test_database_rejects_sign_mismatch():
    product = ProductFactory()
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            StockLedgerEntry.objects.create(product=product, entry_type="out", quantity=5)
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            StockLedgerEntry.objects.create(product=product, entry_type="adjustment", quantity=0)


@pytest.mark.django_db
def test_branch_breakdown_includes_org_level_entries():
    product = ProductFactory()
    a = BranchFactory()
    b = BranchFactory()
    append_entry(product_id=product.id, entry_type="in", quantity=6, branch_id=a.id)
    append_entry(product_id=product.id, entry_type="in", quantity=2, branch_id=b.id)
    append_entry(product_id=product.id, entry_type="in", quantity=1)

    rows = {row["branch_id"]: row["balance"] for row in branch_balances(product.id)}
    assert rows == {a.id: 6, b.id: 2, None: 1}


@pytest.mark.django_db
def test_history_is_paginated_newest_first_and_filterable():
    product = ProductFactory()
    branch = BranchFactory()
    for qty in range(1, 6):
        append_entry(product_id=product.id, entry_type="in", quantity=qty, branch_id=branch.id)
    append_entry(product_id=product.id, entry_type="out", quantity=2)

    page1 = ledger_history(product.id, page=1, page_size=4)
    assert page1["pagination"] == {"page": 1, "page_size": 4, "total": 6, "total_pages": 2}
    assert [e["quantity"] for e in page1["entries"]] == [-2, 5, 4, 3]

    page2 = ledger_history(product.id, page=2, page_size=4)
    assert [e["quantity"] for e in page2["entries"]] == [2, 1]

    beyond = ledger_history(product.id, page=9, page_size=4)
    assert beyond["entries"] == []

    outs = ledger_history(product.id, entry_type="out")
    assert [e["quantity"] for e in outs["entries"]] == [-2]

    by_branch = ledger_history(product.id, branch_id=branch.id)
    assert by_branch["pagination"]["total"] == 5

    future = ledger_history(product.id, created_after=timezone.now() + timedelta(minutes=5))
    assert future["entries"] == []


@pytest.mark.django_db
def test_cached_stock_is_not_trusted_for_balance():
    product = ProductFactory()
    append_entry(product_id=product.id, entry_type="in", quantity=3)
    Product.objects.filter(pk=product.pk).update(stock=99)

    assert ledger_balance(product.id) == 3


# EOF
