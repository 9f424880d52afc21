"""Tests for the CAS client, its configuration and the login redirector."""

import httpx
import pytest
from werkzeug.test import EnvironBuilder
from werkzeug.wrappers import Request

from casauth.core.cas import (
    CASClient,
    CASClientConfig,
    ConfigurationError,
    InvalidOptionError,
    InvalidProtocolVersionError,
    InvalidServerURLError,
    LoginMethod,
    LoginRedirectOptions,
    ProtocolVersion,
    ResponseFormat,
    ValidateServiceTicketOptions,
)
from casauth.core.logging import LoggingClient
from conftest import CAS_SERVER_URL, SERVICE_TICKET, FakeCASServer


def on_validated(result):
    return "ok"


def make_config(**overrides) -> CASClientConfig:
    values = {"version": 3, "server_url": CAS_SERVER_URL, "callback": on_validated}
    values.update(overrides)
    return CASClientConfig(**values)


def make_request(path: str = "/protected", headers: dict | None = None) -> Request:
    builder = EnvironBuilder(path=path, base_url="http://internal:8080/", headers=headers or {})
    return Request(builder.get_environ())


class TestCASClientConfig:
    """Configuration is validated once, at construction."""

    def test_version_normalized(self):
        assert make_config(version="v2").version is ProtocolVersion.V2

    def test_invalid_version(self):
        with pytest.raises(InvalidProtocolVersionError):
            make_config(version=0)

    @pytest.mark.parametrize("server_url", ["", "cas.example.org", "ftp://cas.example.org", None])
    def test_invalid_server_url(self, server_url):
        with pytest.raises(InvalidServerURLError):
            make_config(server_url=server_url)

    def test_callback_required(self):
        with pytest.raises(ConfigurationError):
            make_config(callback=None)

    def test_timeout_positive(self):
        with pytest.raises(ConfigurationError):
            make_config(timeout=0)

    def test_read_only(self):
        config = make_config()
        with pytest.raises(AttributeError):
            config.server_url = "https://other.example.org"


class TestOptions:
    """Tests for handler options."""

    def test_login_options_normalized(self):
        options = LoginRedirectOptions(service="/home", method="head")
        assert options.method is LoginMethod.HEAD

    def test_login_renew_and_gateway(self):
        with pytest.raises(InvalidOptionError):
            LoginRedirectOptions(service="/home", renew=True, gateway=True)

    def test_login_requires_service(self):
        with pytest.raises(InvalidOptionError):
            LoginRedirectOptions(service="")

    def test_login_unsupported_method(self):
        with pytest.raises(InvalidOptionError):
            LoginRedirectOptions(service="/home", method="PATCH")

    def test_validation_format_normalized(self):
        assert ValidateServiceTicketOptions(response_format="json").response_format is ResponseFormat.JSON
        assert ValidateServiceTicketOptions().response_format is None

    def test_validation_invalid_format(self):
        with pytest.raises(InvalidOptionError):
            ValidateServiceTicketOptions(response_format="CSV")

    def test_validation_invalid_pgt_url(self):
        with pytest.raises(InvalidOptionError):
            ValidateServiceTicketOptions(pgt_url="/relative")


class TestLoginRedirector:
    """Tests for the login redirect handler."""

    def test_redirect(self):
        client = CASClient(make_config())
        login = client.redirect_to_server(
            LoginRedirectOptions(service="https://app.example.org/home", renew=True)
        )
        response = login(make_request())

        assert response.status_code == 302
        assert response.headers["Location"] == (
            "https://cas.example.org/cas/login"
            "?service=https%3A%2F%2Fapp.example.org%2Fhome&renew=true"
        )
        assert response.data == b""

    def test_relative_service_behind_proxy(self):
        login = CASClient(make_config()).redirect_to_server(
            LoginRedirectOptions(service="/cas/callback", method="POST")
        )
        request = make_request(
            headers={"X-Forwarded-Proto": "https", "X-Forwarded-Host": "app.example.org"}
        )
        assert login.login_url(request) == (
            "https://cas.example.org/cas/login"
            "?service=https%3A%2F%2Fapp.example.org%2Fcas%2Fcallback&method=POST"
        )

    def test_relative_service_direct(self):
        login = CASClient(make_config()).redirect_to_server(LoginRedirectOptions(service="/back"))
        assert "service=http%3A%2F%2Finternal%3A8080%2Fback" in login.login_url(make_request())


class TestCASClient:
    """Tests for CASClient."""

    def test_properties(self):
        client = CASClient(make_config(version=1))
        assert client.version is ProtocolVersion.V1
        assert client.server_url == CAS_SERVER_URL

    def test_creates_logging_client(self):
        with CASClient(make_config()) as client:
            assert isinstance(client.http_client, LoggingClient)
            assert client.http_client is client.http_client

    def test_uses_configured_http_client(self, http_client: httpx.Client):
        client = CASClient(make_config(http_client=http_client))
        assert client.http_client is http_client
        client.close()
        assert not http_client.is_closed

    def test_validate_service_ticket(self, http_client: httpx.Client, cas_server: FakeCASServer):
        client = CASClient(make_config(http_client=http_client))
        validator = client.validate_service_ticket(ValidateServiceTicketOptions(renew=True))
        outcome = validator.validate_ticket(SERVICE_TICKET, "https://app.example.org/")

        assert outcome.response.data == b"ok"
        assert cas_server.last_request.url.params["renew"] == "true"

    def test_logout_url(self):
        client = CASClient(make_config())
        assert client.logout_url() == "https://cas.example.org/cas/logout"
