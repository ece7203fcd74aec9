import threading
from typing import List

import pytest
from catalog.tests.factories import ProductFactory
from checkout.services import process_checkout
from common.exceptions import InsufficientStock
from django.db import close_old_connections, connection
from inventory.models import StockLedgerEntry
from inventory.selectors import ledger_balance
from inventory.services import append_entry
from inventory.tests.factories import UserFactory
from sales.models import Sale


def _payload(product, quantity, key):
    total = str(product.sale_price * quantity)
    return {
        "items": [{"product_id": product.id, "quantity": quantity, "unit_price": str(product.sale_price)}],
        "payment_method": "cash",
        "payments": [{"method": "cash", "amount": total}],
        "total": total,
        "idempotency_key": key,
    }


def _checkout_worker(barrier: threading.Barrier, user_id, payload, results: List, errors: List[Exception]):
    # Ensure this thread uses its own DB connection
    close_old_connections()
    barrier.wait()
    try:
        results.append(process_checkout(user_id, payload))
    except Exception as exc:  # pragma: no cover
        errors.append(exc)
    finally:
        connection.close()


def _run_pair(targets):
    barrier = threading.Barrier(len(targets))
    threads = [threading.Thread(target=_checkout_worker, args=(barrier, *args)) for args in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


@pytest.mark.django_db(transaction=True)
def test_threaded_same_key_checkout_of_exhausted_stock_replays():
    if connection.vendor == "sqlite":
        pytest.skip("SQLite lacks real concurrent transactions; skipping threaded test.")
    user = UserFactory()
    product = ProductFactory()
    append_entry(product_id=product.id, entry_type="in", quantity=10)
    payload = _payload(product, 10, "pos-race")

    results: List = []
    errors: List[Exception] = []
    _run_pair([(user.id, payload, results, errors), (user.id, payload, results, errors)])

    # Both callers see the same sale; stock is decremented once
    assert errors == []
    assert len(results) == 2
    assert results[0] == results[1]
    assert Sale.objects.count() == 1
    assert StockLedgerEntry.objects.filter(product=product, entry_type="out").count() == 1
    assert ledger_balance(product.id) == 0


@pytest.mark.django_db(transaction=True)
def test_threaded_competing_checkouts_never_oversell():
    if connection.vendor == "sqlite":
        pytest.skip("SQLite lacks real concurrent transactions; skipping threaded test.")
    user = UserFactory()
    product = ProductFactory()
    append_entry(product_id=product.id, entry_type="in", quantity=3)

    results: List = []
    errors: List[Exception] = []
    _run_pair(
        [
            (user.id, _payload(product, 3, "pos-a"), results, errors),
            (user.id, _payload(product, 3, "pos-b"), results, errors),
        ]
    )

    # Exactly one sale wins; the other sees the exhausted stock
    assert len(results) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], InsufficientStock)
    assert ledger_balance(product.id) == 0
