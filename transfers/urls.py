from django.urls import path

from .views import TransferListCreateView, TransferTransitionView

urlpatterns = [
    path("", TransferListCreateView.as_view(), name="transfer-list"),
    path("<int:transfer_id>/ship/", TransferTransitionView.as_view(transition="ship"), name="transfer-ship"),
    path("<int:transfer_id>/receive/", TransferTransitionView.as_view(transition="receive"), name="transfer-receive"),
    path("<int:transfer_id>/cancel/", TransferTransitionView.as_view(transition="cancel"), name="transfer-cancel"),
]
