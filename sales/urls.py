from django.urls import path

from .views import SaleDetailView, SaleListView

urlpatterns = [
    path("", SaleListView.as_view(), name="sale-list"),
    path("<int:sale_id>/", SaleDetailView.as_view(), name="sale-detail"),
]
