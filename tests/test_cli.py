"""Tests for the command line interface."""

import pytest

from pos_sync_connector import cli
from pos_sync_connector.sync_service import SyncAgent


@pytest.fixture
def agent(transport, state_store, monkeypatch):
    agent = SyncAgent(transport=transport, state_store=state_store, retry_delay=0, device_uuid="device-1")

    def create_agent():
        agent.start()
        return agent

    monkeypatch.setattr(cli, "create_agent", create_agent)
    return agent


class TestCommands:
    """Tests for each subcommand."""

    def test_no_command(self, capsys):
        assert cli.main([]) == 1

    def test_status_without_state(self, agent, capsys):
        assert cli.main(["status"]) == 0
        assert "No existe estado guardado" in capsys.readouterr().out

    def test_link_ok(self, agent, transport, state_store, capsys):
        transport.queue({"status": "ok", "token": "T1", "dataVersion": "V1"})

        assert cli.main(["link", "1234"]) == 0

        assert "vinculado exitosamente" in capsys.readouterr().out
        assert state_store.load() == {"token": "T1", "dataVersion": "V1"}

    def test_link_rejected(self, agent, transport, capsys):
        transport.queue({"status": "error", "error": {"code": "INVALID_CODE", "message": "Código inválido"}})

        assert cli.main(["link", "0000"]) == 1
        assert "Código inválido" in capsys.readouterr().out

    def test_refresh_not_linked(self, agent, transport, capsys):
        assert cli.main(["refresh"]) == 1
        assert "código 4" in capsys.readouterr().out
        assert transport.requests == []

    def test_refresh_ok(self, agent, transport, state_store, business_data, capsys):
        state_store.save({"token": "T1", "dataVersion": None})
        transport.queue({"status": "ok", "business": business_data}, {"status": "ok"})

        assert cli.main(["refresh"]) == 0
        assert "business-1" in capsys.readouterr().out

    def test_ping(self, agent, transport, state_store, capsys):
        state_store.save({"token": "T1", "dataVersion": None})
        transport.queue({"status": "ok", "dataVersion": "V8"})

        assert cli.main(["ping"]) == 0
        assert "V8" in capsys.readouterr().out

    def test_reset_state(self, agent, state_store):
        state_store.save({"token": "T1", "dataVersion": None})
        assert cli.main(["reset-state"]) == 0
        assert state_store.load() is None
