"""Integration test fixtures.

The WSAA client talks to the mock WSAA Flask application in-process: the
HTTP session handed to the client forwards each POST to the Flask test
client, so the whole exchange (envelope, CMS verification, ticket parsing)
runs without opening sockets.
"""

from datetime import datetime
from types import SimpleNamespace
from typing import List

import pytest
from flask.testing import FlaskClient

from afip_ta.cache.store import TicketCache
from afip_ta.mock_server.app import create_app
from afip_ta.mock_server.config import MockWSAAConfig
from afip_ta.ticket_service import TicketService
from afip_ta.wsaa.soap_client import WSAAClient

MOCK_URL = "https://wsaa.mock/ws/services/LoginCms"
CUIT = "20111111111"


class SharedClock:
    """Clock read by both the ticket service and the mock WSAA."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FlaskSession:
    """requests.Session stand-in that forwards POSTs to a Flask test client."""

    def __init__(self, client: FlaskClient) -> None:
        self.client = client
        self.posts: List[str] = []

    def post(self, url, data=None, headers=None, timeout=None):
        path = url.split("://", 1)[1].split("/", 1)[1]
        self.posts.append(url)
        response = self.client.post(f"/{path}", data=data, headers=headers)
        return SimpleNamespace(
            status_code=response.status_code, text=response.get_data(as_text=True)
        )


class FlaskPool:
    def __init__(self, session: FlaskSession) -> None:
        self.session = session
        self.closed = False

    def get_session(self) -> FlaskSession:
        return self.session

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock(fixed_now):
    return SharedClock(fixed_now)


@pytest.fixture
def mock_config():
    return MockWSAAConfig()


@pytest.fixture
def mock_app(mock_config, clock):
    app = create_app(mock_config, clock=clock)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def session(mock_app):
    return FlaskSession(mock_app.test_client())


@pytest.fixture
def ticket_service(cert_files, tmp_path, session, clock):
    cert_path, key_path = cert_files
    client = WSAAClient(MOCK_URL, pool=FlaskPool(session))
    service = TicketService(
        cuit=CUIT,
        cert_path=cert_path,
        key_path=key_path,
        client=client,
        cache=TicketCache(tmp_path / "tickets"),
        clock=clock,
    )
    yield service
    service.close()
