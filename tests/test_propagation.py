"""Tests for change propagation from entities to the delivery queue."""

from decimal import Decimal

import pytest

from pos_sync_connector.business import Business, Register
from pos_sync_connector.delivery_queue import ReliableDeliveryQueue
from pos_sync_connector.models import CashMovement, Item
from pos_sync_connector.order import Order
from pos_sync_connector.propagation import (
    CASH_MOVEMENT_ADDED,
    CASH_MOVEMENT_REMOVED,
    DATA_CHANGE_TYPES,
    ORDER_ADDED,
    ORDER_MODIFIED,
    REGISTER_CLOSED,
    REGISTER_OPENED,
    ChangePropagator,
    DataChange,
)

from conftest import FakeSink


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def propagator(sink):
    queue = ReliableDeliveryQueue(sink, retry_delay=0)
    propagator = ChangePropagator(queue, Business(uuid="business-1"), Register(uuid="register-1"))
    propagator.start()
    return propagator


def _delivered(sink):
    return [change for batch in sink.batches for change in batch]


class TestDataChange:
    """Tests for the DataChange envelope."""

    def test_serialize(self):
        assert DataChange(type=ORDER_ADDED, data={"uuid": "o"}).serialize() == {
            "type": "order.added",
            "data": {"uuid": "o"},
        }

    def test_types(self):
        assert set(DATA_CHANGE_TYPES) == {
            "register.opened",
            "register.closed",
            "cashMovement.added",
            "cashMovement.removed",
            "order.added",
            "order.modified",
        }


class TestPropagation:
    """Tests for each propagated event."""

    @pytest.mark.asyncio
    async def test_register_open_and_close(self, propagator, sink):
        register = propagator.register
        register.open("Ana", Decimal("100"))
        register.close(Decimal("180"))
        await propagator.queue.flush()

        changes = _delivered(sink)
        assert [c["type"] for c in changes] == [REGISTER_OPENED, REGISTER_CLOSED]
        assert changes[0]["data"]["uuid"] == "register-1"
        assert changes[1]["data"]["closingData"]["declaredCash"] == "180"

    @pytest.mark.asyncio
    async def test_cash_movements(self, propagator, sink):
        register = propagator.register
        movement = CashMovement(amount=Decimal("20"))
        register.add_cash_movement(movement)
        register.remove_cash_movement(movement)
        await propagator.queue.flush()

        changes = _delivered(sink)
        assert [c["type"] for c in changes] == [CASH_MOVEMENT_ADDED, CASH_MOVEMENT_REMOVED]
        for change in changes:
            assert change["data"]["registerUUID"] == "register-1"
            assert change["data"]["cashMovement"]["uuid"] == movement.uuid

    @pytest.mark.asyncio
    async def test_new_order_then_modification(self, propagator, sink, product):
        order = Order(note="A")
        propagator.business.order_created(order)

        order.record_changes()
        order.note = "B"
        order.items.append(Item(product=product))
        order.commit_changes()
        await propagator.queue.flush()

        changes = _delivered(sink)
        assert [c["type"] for c in changes] == [ORDER_ADDED, ORDER_MODIFIED]
        assert changes[0]["data"]["uuid"] == order.uuid
        modified = changes[1]["data"]
        assert modified["orderUUID"] == order.uuid
        assert modified["changes"]["note"] == "B"
        assert len(modified["changes"]["items"]) == 1
        assert "credits" not in modified["changes"]

    @pytest.mark.asyncio
    async def test_events_survive_register_merge(self, propagator, sink):
        register = propagator.register
        register.update(Register(uuid="register-2"))
        register.open("Luis", Decimal("50"))
        await propagator.queue.flush()

        changes = _delivered(sink)
        assert changes[0]["data"]["uuid"] == "register-2"

    @pytest.mark.asyncio
    async def test_stop_unsubscribes(self, propagator, sink):
        propagator.stop()
        assert not propagator.is_started
        propagator.register.open("Ana", Decimal("10"))
        await propagator.queue.flush()
        assert sink.calls == []

    def test_start_is_idempotent(self, propagator):
        propagator.start()
        assert propagator.register.listener_count("open") == 1
        assert propagator.business.listener_count("newOrder") == 1
