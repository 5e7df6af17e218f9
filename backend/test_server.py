"""
Tests for the HTTP and websocket surface

Tests cover:
- Setup, stepping and state endpoints
- Action validation and dispatch
- Error codes for missing runs, unknown actions and unknown entities
- Websocket SETUP / ACTION / RESET commands
"""

import pytest
from fastapi.testclient import TestClient

import server
from server import app, manager


@pytest.fixture
def client():
    manager.simulation = None
    manager.is_running = False
    with TestClient(app) as test_client:
        yield test_client
    manager.simulation = None


def setup_run(client, **overrides):
    body = {"name": "Api Venture", "capital": 500_000.0, "seed": 3, "competitors": True}
    body.update(overrides)
    response = client.post("/simulation", json=body)
    assert response.status_code == 200
    return response.json()


class TestSimulationEndpoints:
    """Test suite for run lifecycle endpoints"""

    def test_state_requires_setup(self, client):
        assert client.get("/simulation/state").status_code == 409
        assert client.post("/simulation/step").status_code == 409

    def test_setup_returns_state(self, client):
        state = setup_run(client)
        assert state["tick"] == 0
        assert state["venture"]["name"] == "Api Venture"
        assert len(state["competitors"]) == 3

    def test_setup_rejects_negative_capital(self, client):
        response = client.post("/simulation", json={"capital": -1})
        assert response.status_code == 422

    def test_step_advances_ticks(self, client):
        setup_run(client)
        response = client.post("/simulation/step", params={"ticks": 3})
        assert response.status_code == 200
        body = response.json()
        assert body["ticks_run"] == 3
        assert body["state"]["tick"] == 3
        assert [r["tick"] for r in body["reports"]] == [1, 2, 3]

    def test_step_rejects_zero_ticks(self, client):
        setup_run(client)
        assert client.post("/simulation/step", params={"ticks": 0}).status_code == 422

    def test_pause_blocks_stepping(self, client):
        setup_run(client)
        assert client.post("/simulation/pause").json() == {"paused": True}
        assert client.post("/simulation/step").json()["ticks_run"] == 0
        assert client.post("/simulation/resume").json() == {"paused": False}
        assert client.post("/simulation/step").json()["ticks_run"] == 1

    def test_entity_lookup(self, client):
        setup_run(client)
        assert client.get("/simulation/entities/2").json()["name"] == "AI Corp 1"
        assert client.get("/simulation/entities/99").status_code == 404


class TestActions:
    """Test suite for the action endpoint"""

    def test_hire_and_launch(self, client):
        setup_run(client)
        response = client.post("/actions/hire_employee", json={"name": "Ada"})
        assert response.json() == {"action": "hire_employee", "success": True, "tick": 0}

        response = client.post("/actions/launch_product", json={"name": "Gadget", "price": 100, "cost": 50})
        assert response.json()["success"]

        venture = client.get("/simulation/state").json()["venture"]
        assert venture["employees"][0]["name"] == "Ada"
        assert venture["products"][0]["name"] == "Gadget"

    def test_rejected_action_reports_failure(self, client):
        setup_run(client, capital=1_000.0)
        response = client.post("/actions/take_loan", json={"amount": 1_000_000, "term": 12})
        assert response.status_code == 200
        assert response.json()["success"] is False

    def test_go_public_without_body(self, client):
        setup_run(client)
        response = client.post("/actions/go_public")
        assert response.status_code == 200
        assert response.json()["success"] is False

    def test_stock_subsidiary_route(self, client):
        setup_run(client, capital=10_000_000.0)
        client.post("/actions/launch_product", json={"name": "Gadget", "price": 100, "cost": 50})
        client.post("/actions/expand_to_market", json={"country": "Japan"})
        client.post("/actions/create_subsidiary", json={"country": "Japan", "name": "KK", "capital": 100_000})

        stock = {"subsidiary": "KK", "product": "Gadget", "quantity": 100}
        response = client.post("/actions/stock_subsidiary", json=stock)
        assert response.json()["success"] is True
        response = client.post("/actions/staff_subsidiary", json={"subsidiary": "KK", "name": "Kenji"})
        assert response.json()["success"] is True
        stock["quantity"] = 0
        assert client.post("/actions/stock_subsidiary", json=stock).status_code == 422

    def test_unknown_action(self, client):
        setup_run(client)
        assert client.post("/actions/teleport", json={}).status_code == 404

    def test_invalid_payload(self, client):
        setup_run(client)
        response = client.post("/actions/take_loan", json={"amount": "lots"})
        assert response.status_code == 422

    def test_unknown_scenario_rejected(self, client):
        setup_run(client)
        response = client.post("/actions/start_scenario", json={"name": "World Peace"})
        assert response.status_code == 422

    def test_acquire_unknown_target(self, client):
        setup_run(client)
        response = client.post("/actions/acquire", json={"target_id": 42})
        assert response.status_code == 404

    def test_action_requires_setup(self, client):
        assert client.post("/actions/hire_employee", json={"name": "Ada"}).status_code == 409


class TestWebSocket:
    """Test suite for websocket commands"""

    def test_setup_action_reset(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"command": "SETUP", "config": {"name": "Socket Co", "seed": 1}})
            message = websocket.receive_json()
            assert message["type"] == "SETUP_COMPLETE"
            assert message["state"]["venture"]["name"] == "Socket Co"

            websocket.send_json({"command": "ACTION", "action": "hire_employee", "params": {"name": "Bo"}})
            message = websocket.receive_json()
            assert message["type"] == "ACTION_RESULT"
            assert message["success"] is True

            websocket.send_json({"command": "ACTION", "action": "teleport", "params": {}})
            message = websocket.receive_json()
            assert message["success"] is False
            assert "error" in message

            websocket.send_json({"command": "RESET"})
            assert websocket.receive_json() == {"type": "RESET", "tick": 0}
        assert server.manager.simulation is None
