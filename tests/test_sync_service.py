"""Tests for the SyncAgent composition root."""

import asyncio
from decimal import Decimal

import pytest

from pos_sync_connector.errors import NetworkError, NotAuthenticated
from pos_sync_connector.sync_service import SyncAgent


@pytest.fixture
def agent(transport, state_store):
    return SyncAgent(transport=transport, state_store=state_store, retry_delay=0, device_uuid="device-1")


class TestStart:
    """Tests for start / stop."""

    def test_start_restores_saved_state(self, transport, state_store):
        state_store.save({"token": "T1", "dataVersion": "V4"})
        agent = SyncAgent(transport=transport, state_store=state_store, retry_delay=0)

        agent.start()

        assert agent.client.is_authenticated
        assert agent.client.data_version == "V4"
        assert agent.propagator.is_started

    def test_start_without_state(self, agent):
        agent.start()
        assert not agent.client.is_authenticated

    @pytest.mark.asyncio
    async def test_stop_closes_transport(self, agent, transport):
        agent.start()
        await agent.stop()
        assert transport.closed
        assert not agent.propagator.is_started


class TestLinkAndRefresh:
    """Tests for linking and refreshing."""

    @pytest.mark.asyncio
    async def test_link_persists_token(self, agent, transport, state_store):
        agent.start()
        transport.queue({"status": "ok", "token": "T1", "dataVersion": "V1"})

        await agent.link("1234")

        assert agent.client.is_authenticated
        assert state_store.load() == {"token": "T1", "dataVersion": "V1"}

    @pytest.mark.asyncio
    async def test_refresh_merges(self, agent, transport, business_data):
        agent.client.restore_state({"token": "T1"})
        business = agent.business
        register = agent.register
        transport.queue(
            {"status": "ok", "business": business_data},
            {"status": "ok", "deviceRegister": {"uuid": "register-5", "state": 1}},
        )

        summary = await agent.refresh()

        assert transport.paths == ["business", "register"]
        assert agent.business is business and agent.register is register
        assert summary["products"] == 2
        assert summary["register_state"] == "OPENED"

    @pytest.mark.asyncio
    async def test_refresh_requires_auth(self, agent, transport):
        with pytest.raises(NotAuthenticated):
            await agent.refresh()
        assert transport.requests == []


class TestChangeFlow:
    """Tests for the end-to-end flow from entity events to the API."""

    @pytest.mark.asyncio
    async def test_register_open_reaches_api(self, agent, transport):
        agent.start()
        agent.client.restore_state({"token": "T1"})

        agent.register.open("Ana", Decimal("100"), register_uuid="register-1")
        await agent.queue.flush()

        path, body = transport.requests[-1]
        assert path == "changes"
        assert body["data"]["changes"][0]["type"] == "register.opened"
        assert body["token"] == "T1"

    @pytest.mark.asyncio
    async def test_queue_retries_until_authenticated(self, agent, transport):
        agent.start()
        agent.register.open("Ana", Decimal("100"))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert agent.queue.pending == 1

        agent.client.restore_state({"token": "T1"})
        await agent.queue.flush()

        assert agent.queue.pending == 0
        assert transport.paths == ["changes"]


class TestPing:
    """Tests for the periodic ping."""

    @pytest.mark.asyncio
    async def test_ping_forever_survives_errors(self, agent, transport):
        agent.client.restore_state({"token": "T1"})
        transport.queue(NetworkError("down"))

        task = asyncio.create_task(agent.ping_forever(interval=0))
        for _ in range(10):
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(transport.requests) >= 2
        assert set(transport.paths) == {"ping"}


class TestStatus:
    """Tests for status and reset."""

    def test_status(self, agent):
        agent.start()
        status = agent.status()
        assert status["started"] is True
        assert status["authenticated"] is False
        assert status["register_state"] == "NEW"
        assert status["queue"]["pending"] == 0
        assert status["state_file"]["exists"] is False

    def test_reset_state(self, agent, state_store):
        state_store.save({"token": "T1", "dataVersion": "V1"})
        agent.start()
        agent.reset_state()
        assert not agent.client.is_authenticated
        assert state_store.load() is None
