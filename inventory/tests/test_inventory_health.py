import pytest
from rest_framework.test import APIClient


@pytest.mark.django_db
def test_inventory_health():
    client = APIClient()
    resp_health = client.get("/api/v1/inventory/health/")
    assert resp_health.status_code == 200
    assert resp_health.json()["app"] == "inventory"


# EOF
