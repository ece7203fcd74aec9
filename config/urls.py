"""URL configuration for the JewelPOS inventory service."""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework_simplejwt.views import TokenBlacklistView, TokenObtainPairView, TokenRefreshView

from .health import health

admin.site.site_header = "JewelPOS Admin"
admin.site.index_title = "Inventory"

urlpatterns = [
    path("admin/", admin.site.urls),
    # API schema and Swagger UI
    path("api/schema/", SpectacularAPIView.as_view(), name="api-schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="api-schema"), name="api-docs"),
    # Healthcheck
    path("health/", health, name="health"),
    # Auth (JWT for POS terminals)
    path("api/v1/auth/token/", TokenObtainPairView.as_view(), name="token-obtain"),
    path("api/v1/auth/token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("api/v1/auth/token/blacklist/", TokenBlacklistView.as_view(), name="token-blacklist"),
    # Versioned v1 routes only
    path("api/v1/inventory/", include("inventory.urls")),
    path("api/v1/transfers/", include("transfers.urls")),
    path("api/v1/cycle-counts/", include("cyclecounts.urls")),
    path("api/v1/checkout/", include("checkout.urls")),
    path("api/v1/sales/", include("sales.urls")),
]
