"""Shared test fixtures for pos_sync_connector."""

import os
import tempfile

# Settings are read at import time: keep the state files out of the working
# directory and the retries fast before the package is imported.
os.environ.setdefault("STATE_DIR", tempfile.mkdtemp(prefix="pos-sync-tests-"))
os.environ.setdefault("RETRY_DELAY_SECONDS", "0")

from decimal import Decimal

import pytest

from pos_sync_connector.business import Business, Register
from pos_sync_connector.fields import EmailField, NameField
from pos_sync_connector.models import AppliedTax, Product, Room, TransactionMode
from pos_sync_connector.state_store import StateStore
from pos_sync_connector.transport import Transport


class FakeTransport(Transport):
    """Transport returning queued responses and recording every request.

    Queued exceptions are raised instead of returned. When the queue is
    empty, ``default_response`` is returned.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []
        self.default_response = {"status": "ok"}
        self.closed = False

    def queue(self, *responses):
        self.responses.extend(responses)

    async def post(self, path, body=None):
        self.requests.append((path, body))
        response = self.responses.pop(0) if self.responses else self.default_response
        if isinstance(response, BaseException):
            raise response
        return response

    @property
    def paths(self):
        return [path for path, _ in self.requests]

    @property
    def last_body(self):
        return self.requests[-1][1]

    def close(self):
        self.closed = True


class FakeSink:
    """Sink failing ``fail_times`` times before succeeding."""

    def __init__(self, fail_times=0):
        self.fail_times = fail_times
        self.calls = []
        self.batches = []

    async def __call__(self, batch):
        self.calls.append(list(batch))
        if len(self.calls) <= self.fail_times:
            raise ConnectionError("sink unavailable")
        self.batches.append(list(batch))


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def state_store(tmp_path):
    return StateStore(tmp_path / "state")


@pytest.fixture
def business_data():
    """Business snapshot as sent by the API (camelCase)."""
    return {
        "uuid": "business-1",
        "products": [
            {
                "id": 1,
                "name": "Café",
                "price": "3.50",
                "taxes": [{"taxId": 10, "name": "TPS", "amount": "0.18"}],
                "variants": [
                    {"id": 2, "name": "Grande", "price": "4.50"},
                ],
            },
            {"id": 3, "name": "Muffin", "price": "2.25"},
        ],
        "rootProductCategory": {
            "uuid": "cat-root",
            "name": "Todo",
            "productIds": [1, 3],
            "categories": [],
        },
        "transactionModes": [
            {"id": 1, "name": "Efectivo"},
            {"id": 2, "name": "Tarjeta"},
        ],
        "customerFields": [
            {"type": "NameField", "id": "name", "role": "customer.name", "required": True},
            {"type": "EmailField", "id": "email", "role": "customer.email"},
        ],
        "roomSelectionFields": [
            {"type": "NumberField", "id": "guests", "constraints": {"onlyInteger": True, "greaterThan": 0}},
        ],
        "rooms": [
            {"id": 100, "name": "Suite"},
            {"id": 101, "name": "Doble", "archived": True},
        ],
    }


@pytest.fixture
def business(business_data):
    return Business.model_validate(business_data)


@pytest.fixture
def register():
    return Register(uuid="register-1")


@pytest.fixture
def product():
    return Product(
        id=50,
        name="Té",
        price=Decimal("2.00"),
        taxes=[AppliedTax(tax_id=10, name="TPS", amount=Decimal("0.10"))],
    )


@pytest.fixture
def cash_mode():
    return TransactionMode(id=1, name="Efectivo")


@pytest.fixture
def room():
    return Room(id=100, name="Suite")


@pytest.fixture
def customer_fields():
    return [
        NameField(id="name", role="customer.name", required=True),
        EmailField(id="email", role="customer.email"),
    ]
