from django.urls import path

from .views import CheckoutView, StockValidationView

urlpatterns = [
    path("", CheckoutView.as_view(), name="checkout"),
    path("validate-stock/", StockValidationView.as_view(), name="checkout-validate-stock"),
]
