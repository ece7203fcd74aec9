from django.urls import path

from .views import (
    BulkStockUpdateView,
    InventoryHealthView,
    LedgerHistoryView,
    ProductBalanceView,
    ReconcileView,
    ReservationListCreateView,
    ReservationReleaseView,
    StockAlertsView,
    StockUpdateView,
)

urlpatterns = [
    path("health/", InventoryHealthView.as_view(), name="inventory-health"),
    # Reads
    path("ledger/", LedgerHistoryView.as_view(), name="ledger-history"),
    path("products/<int:product_id>/balance/", ProductBalanceView.as_view(), name="product-balance"),
    path("alerts/", StockAlertsView.as_view(), name="stock-alerts"),
    # Mutations
    path("stock/update/", StockUpdateView.as_view(), name="stock-update"),
    path("stock/bulk-update/", BulkStockUpdateView.as_view(), name="stock-bulk-update"),
    path("reservations/", ReservationListCreateView.as_view(), name="reservation-list"),
    path(
        "reservations/<str:reservation_id>/release/",
        ReservationReleaseView.as_view(),
        name="reservation-release",
    ),
    path("reconcile/", ReconcileView.as_view(), name="stock-reconcile"),
]

# EOF
