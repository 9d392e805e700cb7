from typing import Any, Dict, List

import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app
from payments import PaymentGateway, PaymentGatewayError

ADMIN_KEY = "test-admin-key"


class FakeGateway(PaymentGateway):
    """Records calls and answers like the Razorpay orders API."""

    def __init__(self) -> None:
        self.should_succeed = True
        self.calls: List[Dict[str, Any]] = []

    def create_order(self, amount: int, currency: str, receipt: str) -> Dict[str, Any]:
        self.calls.append({"amount": amount, "currency": currency, "receipt": receipt})
        if not self.should_succeed:
            raise PaymentGatewayError("gateway unavailable")
        return {
            "id": f"order_fake{len(self.calls)}",
            "entity": "order",
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "status": "created",
        }


@pytest.fixture()
def settings():
    return Settings(database_name="storefront_test", admin_key=ADMIN_KEY)


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def mongo():
    return mongomock.MongoClient()


@pytest.fixture()
def app(settings, mongo, gateway):
    return create_app(settings, mongo_client=mongo, gateway=gateway)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def admin_headers():
    return {"x-admin-key": ADMIN_KEY}


@pytest.fixture()
def order_payload():
    return {
        "customerName": "A",
        "email": "a@x.com",
        "items": [{"sku": "x", "qty": 1}],
        "total": 100,
        "pincode": "1",
        "city": "c",
        "address": "addr",
    }


@pytest.fixture()
def place_order(client, order_payload):
    def _place(**overrides):
        response = client.post("/api/orders", json={**order_payload, **overrides})
        assert response.status_code == 201
        return response.json()["orderId"]

    return _place
