"""Shared fixtures: a fake Vault on pytest-httpserver and a host nobody listens on."""
import socket
import threading

import pytest
from pytest_httpserver import HTTPServer

from vaultclient.client import VaultClient

TOKEN = "s.test-token"

LOOKUP_SELF = {
    "request_id": "8a4c6a8d-6d3c-4c5e-9d1b-1c1f1e5b7a10",
    "lease_id": "",
    "renewable": False,
    "lease_duration": 0,
    "data": {
        "accessor": "8609694a-cdbc-db9b-d345-e782dbb562ed",
        "creation_time": 1523979354,
        "creation_ttl": 2764800,
        "display_name": "token",
        "expire_time": "2018-05-19T11:35:54.466476215-04:00",
        "explicit_max_ttl": 0,
        "id": TOKEN,
        "issue_time": "2018-04-17T11:35:54.466476078-04:00",
        "meta": None,
        "num_uses": 0,
        "orphan": False,
        "path": "auth/token/create",
        "policies": ["default", "web"],
        "renewable": True,
        "ttl": 2764790,
    },
    "wrap_info": None,
    "warnings": None,
    "auth": None,
}


@pytest.fixture(scope="session")
def httpserver_ssl_context():
    return None


@pytest.fixture
def dead_host() -> str:
    """Address of a closed port: connecting is refused."""
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return f"http://127.0.0.1:{port}"


@pytest.fixture
def second_server():
    server = HTTPServer()
    server.start()
    yield server
    server.clear()
    if server.is_running():
        server.stop()


@pytest.fixture
def base_url(httpserver: HTTPServer) -> str:
    return httpserver.url_for("/")


@pytest.fixture
def vault(httpserver: HTTPServer, base_url: str):
    httpserver.expect_request("/v1/auth/token/lookup-self", method="GET").respond_with_json(LOOKUP_SELF)
    with VaultClient([base_url], TOKEN) as client:
        yield client


class RawHost:
    """A TCP listener that accepts, reads the request and never answers it."""

    def __init__(self, hold: bool):
        self.hold, self.accepted = hold, 0
        self._stop = threading.Event()
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(8)
        self._sock.settimeout(0.1)
        self.url = f"http://127.0.0.1:{self._sock.getsockname()[1]}"
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            with conn:
                self.accepted += 1
                conn.settimeout(2.0)
                try:
                    conn.recv(65536)
                except OSError:
                    pass
                if self.hold:
                    self._stop.wait(5)

    def close(self):
        self._stop.set()
        self._thread.join(timeout=6)
        self._sock.close()


@pytest.fixture
def dropping_host():
    """Accepts the connection, reads the request, then closes without a response."""
    host = RawHost(hold=False)
    yield host
    host.close()


@pytest.fixture
def silent_host():
    """Accepts the connection, reads the request, then keeps quiet."""
    host = RawHost(hold=True)
    yield host
    host.close()
