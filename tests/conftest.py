"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from pathlib import Path

import httpx
import pytest
from flask import Flask
from flask.testing import FlaskClient

from casauth.app import create_app

CAS_SERVER_URL = "https://cas.example.org/cas"
SERVICE_TICKET = "ST-1-abcdefghijklmnop"

V1_SUCCESS = "yes\nalice\n"

V3_SUCCESS_XML = """\
<cas:serviceResponse xmlns:cas="http://www.yale.edu/tp/cas">
  <cas:authenticationSuccess>
    <cas:user>alice</cas:user>
    <cas:attributes>
      <cas:authenticationDate>2024-05-01T12:00:00Z</cas:authenticationDate>
      <cas:longTermAuthenticationRequestTokenUsed>false</cas:longTermAuthenticationRequestTokenUsed>
      <cas:isFromNewLogin>true</cas:isFromNewLogin>
      <cas:memberOf>staff</cas:memberOf>
      <cas:memberOf>admins</cas:memberOf>
      <cas:userAttributes>
        <cas:attribute name="mail">alice@example.org</cas:attribute>
        <cas:attribute name="mail">alice@lists.example.org</cas:attribute>
      </cas:userAttributes>
      <cas:employeeNumber>4711</cas:employeeNumber>
    </cas:attributes>
    <cas:proxyGrantingTicket>PGTIOU-84678-8a9d2sfa23casd</cas:proxyGrantingTicket>
  </cas:authenticationSuccess>
</cas:serviceResponse>
"""

V3_FAILURE_XML = """\
<cas:serviceResponse xmlns:cas="http://www.yale.edu/tp/cas">
  <cas:authenticationFailure code="INVALID_TICKET">
    Ticket ST-1-abcdefghijklmnop not recognized
  </cas:authenticationFailure>
</cas:serviceResponse>
"""


class FakeCASServer:
    """In-process CAS authority behind an httpx.MockTransport.

    Records every request it receives and answers with the configured
    status and body, or raises the configured transport error.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.body: str | bytes = V3_SUCCESS_XML
        self.error: Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, content=self.body)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config loader at an empty temp dir and clear CASAUTH_ variables."""
    for key in list(os.environ):
        if key.startswith("CASAUTH_"):
            monkeypatch.delenv(key)
    config_path = tmp_path / "config.yaml"
    monkeypatch.setenv("CASAUTH_CONFIG", str(config_path))
    return config_path


@pytest.fixture
def cas_server() -> FakeCASServer:
    """Fake CAS authority."""
    return FakeCASServer()


@pytest.fixture
def http_client(cas_server: FakeCASServer) -> Generator[httpx.Client, None, None]:
    """HTTP client wired to the fake authority."""
    client = cas_server.client()
    yield client
    client.close()


@pytest.fixture
def app(http_client: httpx.Client) -> Generator[Flask, None, None]:
    """Create application for testing, talking to the fake authority."""
    app = create_app(
        {
            "TESTING": True,
            "CAS_SERVER_URL": CAS_SERVER_URL,
            "CAS_VERSION": 3,
            "CAS_HTTP_CLIENT": http_client,
        }
    )
    yield app


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    """Create test client."""
    return app.test_client()
