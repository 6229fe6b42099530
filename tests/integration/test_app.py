"""
Integration tests for the HTTP and WebSocket surface
"""

import base64
import json
import sys
import time
import pytest
from unittest.mock import AsyncMock, Mock
from urllib.parse import quote

from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from journal_bridge.main import create_app
from journal_bridge.services.logs import (
    JournalSupervisor,
    ServiceDescriptor,
    ServiceOrigin,
    StreamRequest,
    build_filter_args,
)


pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals required"),
]


SERVICES = [
    ServiceDescriptor("abc123.docker", "web", ServiceOrigin.CONTAINER),
    ServiceDescriptor("nginx.service", "A high performance web server"),
    ServiceDescriptor("cron.service", "Regular background program processing daemon"),
]


def basic_auth(username, password):
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


def services_query(selection):
    return "/ws?services=" + quote(json.dumps(selection))


@pytest.fixture
def build_client(settings, stub_command):
    """Start the app with a stub journal command and a canned service list"""
    def _build(stub="finite", **overrides):
        app = create_app(settings.model_copy(update=overrides))
        app.state.supervisor = JournalSupervisor(
            command=stub_command(stub),
            terminate_timeout=1.0
        )
        app.state.enumerator = Mock()
        app.state.enumerator.list_services = AsyncMock(return_value=list(SERVICES))
        return TestClient(app)
    return _build


class TestServiceListing:

    def test_list_services_text(self, build_client):
        with build_client() as client:
            response = client.get("/list-services")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text.splitlines() == [
            "abc123.docker web",
            "nginx.service A high performance web server",
            "cron.service Regular background program processing daemon",
        ]

    def test_list_services_uses_configured_scopes(self, build_client):
        with build_client(user_scope=True, docker=False) as client:
            client.get("/list-services")
            enumerator = client.app.state.enumerator

        enumerator.list_services.assert_awaited_once_with(user_scope=True, merge_containers=False)

    def test_empty_listing(self, build_client):
        with build_client() as client:
            client.app.state.enumerator.list_services.return_value = []
            response = client.get("/list-services")

        assert response.status_code == 200
        assert response.text == ""

    def test_api_services_json(self, build_client):
        with build_client() as client:
            response = client.get("/api/services")

        data = response.json()
        assert data["count"] == 3
        assert data["services"][0] == {
            "identifier": "abc123.docker",
            "display_name": "web",
            "origin": "container"
        }


class TestHealth:

    def test_health(self, build_client):
        with build_client() as client:
            response = client.get("/health")

        data = response.json()
        assert response.status_code == 200
        assert data["status"] == "healthy"
        assert data["active_sessions"] == 0
        assert data["docker"] is True

    def test_liveness(self, build_client):
        with build_client() as client:
            assert client.get("/health/live").json()["alive"] is True

    def test_request_id_is_echoed(self, build_client):
        with build_client() as client:
            response = client.get("/health", headers={"X-Request-ID": "req-1"})

        assert response.headers["X-Request-ID"] == "req-1"


class TestStaticUI:

    def test_index_served_at_root(self, build_client):
        with build_client() as client:
            response = client.get("/")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]


class TestJournalWebSocket:

    def test_lines_then_normal_close(self, build_client):
        with build_client("finite") as client:
            with client.websocket_connect("/ws") as websocket:
                received = [websocket.receive_text() for _ in range(3)]
                with pytest.raises(WebSocketDisconnect) as exc_info:
                    websocket.receive_text()

        assert received == ["one", "two", "three"]
        assert exc_info.value.code == 1000

    def test_selection_becomes_filter_arguments(self, build_client, settings):
        selection = ["nginx.service", "abc123.docker"]
        with build_client("echo_args") as client:
            with client.websocket_connect(services_query(selection)) as websocket:
                args = json.loads(websocket.receive_text())

        expected = build_filter_args(StreamRequest(tuple(selection), container_mode=True))
        assert args == expected
        assert "CONTAINER_ID_FULL=abc123" in args

    @pytest.mark.parametrize("raw", ["not-json", quote('{"a": 1}'), ""])
    def test_malformed_selection_streams_everything(self, build_client, raw):
        with build_client("echo_args") as client:
            with client.websocket_connect(f"/ws?services={raw}") as websocket:
                args = json.loads(websocket.receive_text())

        assert args == ["-b", "--all", "-f", "-n", "100", "-o", "json"]

    def test_process_failure_closes_with_error(self, build_client):
        with build_client("failing") as client:
            with client.websocket_connect("/ws") as websocket:
                assert websocket.receive_text() == "partial"
                with pytest.raises(WebSocketDisconnect) as exc_info:
                    websocket.receive_text()

        assert exc_info.value.code == 1011

    def test_launch_failure_closes_with_error(self, build_client):
        with build_client() as client:
            client.app.state.supervisor = JournalSupervisor(command=["/nonexistent/journalctl"])
            with client.websocket_connect("/ws") as websocket:
                with pytest.raises(WebSocketDisconnect) as exc_info:
                    websocket.receive_text()

        assert exc_info.value.code == 1011

    def test_session_is_counted_while_open(self, build_client):
        with build_client("infinite") as client:
            with client.websocket_connect("/ws") as websocket:
                websocket.receive_text()
                assert client.get("/health").json()["active_sessions"] == 1

            deadline = time.monotonic() + 3
            while client.get("/health").json()["active_sessions"] and time.monotonic() < deadline:
                time.sleep(0.05)
            assert client.get("/health").json()["active_sessions"] == 0

    def test_session_limit_rejects_extra_connections(self, build_client):
        with build_client("infinite", max_sessions=1) as client:
            with client.websocket_connect("/ws") as first:
                first.receive_text()
                with client.websocket_connect("/ws") as second:
                    with pytest.raises(WebSocketDisconnect) as exc_info:
                        second.receive_text()

            assert exc_info.value.code == 1013

    @pytest.mark.parametrize("path", ["/", "/other", "/ws/extra", "/static/ws"])
    def test_unknown_websocket_path_is_refused(self, build_client, path):
        with build_client() as client:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                with client.websocket_connect(path):
                    pass

            assert exc_info.value.code == 1008
            assert client.get("/health").status_code == 200


class TestBasicAuth:

    @pytest.fixture
    def auth_client(self, build_client):
        return build_client("finite", auth_username="admin", auth_password="s3cret")

    def test_missing_credentials_challenge(self, auth_client):
        with auth_client as client:
            response = client.get("/list-services")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == 'Basic realm="journalctl proxy"'
        assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"

    def test_wrong_credentials_rejected(self, auth_client):
        with auth_client as client:
            response = client.get("/list-services", headers=basic_auth("admin", "wrong"))

        assert response.status_code == 401

    def test_valid_credentials_accepted(self, auth_client):
        with auth_client as client:
            response = client.get("/list-services", headers=basic_auth("admin", "s3cret"))

        assert response.status_code == 200

    def test_static_ui_is_protected(self, auth_client):
        with auth_client as client:
            assert client.get("/").status_code == 401

    def test_websocket_without_credentials_rejected(self, auth_client):
        with auth_client as client:
            with pytest.raises(WebSocketDisconnect):
                with client.websocket_connect("/ws"):
                    pass

    def test_websocket_with_credentials_streams(self, auth_client):
        with auth_client as client:
            with client.websocket_connect("/ws", headers=basic_auth("admin", "s3cret")) as websocket:
                assert websocket.receive_text() == "one"
