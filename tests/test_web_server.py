"""Tests for the web bridge."""

import sys

import pytest

from heading_fusion import web_server

SNAPSHOT = {"magnetic": 10.0, "true_north": 12.0, "satellite": None,
            "calculated": 11.0, "timestamp": 5.0}


@pytest.fixture(autouse=True)
def no_snapshot(monkeypatch):
    monkeypatch.setattr(web_server, "_latest_snapshot", None)


@pytest.fixture
def client():
    web_server.app.config["TESTING"] = True
    return web_server.app.test_client()


class TestHeadingsEndpoint:
    """Tests for the /api/headings route."""

    def test_no_snapshot_yet(self, client):
        response = client.get("/api/headings")
        assert response.status_code == 503

    def test_latest_snapshot(self, client):
        web_server.handle_line('{"magnetic": 1.0}\n')
        web_server.handle_line(
            '{"magnetic": 10.0, "true_north": 12.0, "satellite": null, '
            '"calculated": 11.0, "timestamp": 5.0}\n'
        )

        response = client.get("/api/headings")

        assert response.status_code == 200
        assert response.get_json() == SNAPSHOT


class TestHandleLine:
    """Tests for handle_line function."""

    def test_ignores_non_json(self):
        assert web_server.handle_line("") is None
        assert web_server.handle_line("not json") is None
        assert web_server.latest_snapshot() is None

    def test_broadcasts_update(self):
        socket_client = web_server.socketio.test_client(web_server.app)
        socket_client.get_received()

        web_server.handle_line('{"calculated": 42.0}')

        received = socket_client.get_received()
        socket_client.disconnect()

        updates = [r for r in received if r["name"] == "heading_update"]
        assert updates[-1]["args"][0] == {"calculated": 42.0}


class TestBuildCommand:
    """Tests for build_command function."""

    def test_defaults(self):
        assert web_server.build_command() == [sys.executable, "-m", "heading_fusion.main"]

    def test_options(self):
        cmd = web_server.build_command("cfg.yaml", use_mock=True, replay_path="run.csv")
        assert cmd[3:] == ["-c", "cfg.yaml", "--mock", "--replay", "run.csv"]
