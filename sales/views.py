"""Sales API endpoints (read-only; sales are created through checkout)."""

from django.http import Http404
from drf_spectacular.utils import extend_schema
from rest_framework import generics
from rest_framework.permissions import IsAuthenticated

from .models import Sale
from .serializers import SaleSerializer


class SaleListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "sales"
    serializer_class = SaleSerializer

    @extend_schema(tags=["Sales"], summary="List my sales", description="Sales created by the authenticated user.")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        return Sale.objects.filter(user_id=self.request.user.id).prefetch_related("items")


class SaleDetailView(generics.RetrieveAPIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "sales"
    serializer_class = SaleSerializer

    def get_queryset(self):
        return Sale.objects.filter(user_id=self.request.user.id).prefetch_related("items")

    def get_object(self):
        try:
            return self.get_queryset().get(id=int(self.kwargs["sale_id"]))
        except (Sale.DoesNotExist, ValueError):
            raise Http404("Not found.")

    @extend_schema(tags=["Sales"], summary="Get sale detail")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)
