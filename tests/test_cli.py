"""Tests for the CLI commands."""

import json
from pathlib import Path

import httpx
import pytest
from click.testing import CliRunner

from casauth.cli.main import cli
from casauth.core.logging import LoggingClient
from conftest import SERVICE_TICKET, V3_FAILURE_XML, V3_SUCCESS_XML, FakeCASServer

SERVER_URL = "https://cas.example.org/cas"


def test_cli_version() -> None:
    """Test CLI version command."""
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_cli_help() -> None:
    """Test CLI help command."""
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "CAS single sign-on client tools" in result.output


class TestLoginURL:
    """Tests for login-url."""

    def test_login_url(self) -> None:
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["login-url", "-s", SERVER_URL, "--service", "https://app.example.org/", "--gateway"],
        )
        assert result.exit_code == 0
        assert result.output.strip() == (
            "https://cas.example.org/cas/login"
            "?service=https%3A%2F%2Fapp.example.org%2F&gateway=true"
        )

    def test_renew_and_gateway(self) -> None:
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["login-url", "-s", SERVER_URL, "--service", "https://app.example.org/",
             "--renew", "--gateway"],
        )
        assert result.exit_code != 0
        assert "renew and gateway" in result.output

    def test_server_url_required(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["login-url", "--service", "https://app.example.org/"])
        assert result.exit_code != 0
        assert "No CAS server URL" in result.output


class TestValidateURL:
    """Tests for validate-url."""

    def test_v3_json(self) -> None:
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["validate-url", "-s", SERVER_URL, "-p", "3", "--service", "https://app.example.org/",
             "--ticket", SERVICE_TICKET, "--format", "json"],
        )
        assert result.exit_code == 0
        url = httpx.URL(result.output.strip())
        assert url.path == "/cas/p3/serviceValidate"
        assert url.params["format"] == "JSON"
        assert url.params["ticket"] == SERVICE_TICKET

    def test_v1_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CASAUTH_SERVER_URL", SERVER_URL)
        monkeypatch.setenv("CASAUTH_VERSION", "1")
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["validate-url", "--service", "https://app.example.org/", "--ticket", SERVICE_TICKET,
             "--renew"],
        )
        assert result.exit_code == 0
        url = httpx.URL(result.output.strip())
        assert url.path == "/cas/validate"
        assert "renew" not in url.params


class TestValidate:
    """Tests for validate, against a fake authority."""

    @pytest.fixture(autouse=True)
    def fake_authority(self, cas_server: FakeCASServer, monkeypatch: pytest.MonkeyPatch) -> None:
        """Route the client's own LoggingClient to the fake authority."""

        def logging_client(**kwargs):
            return LoggingClient(transport=httpx.MockTransport(cas_server.handler), **kwargs)

        monkeypatch.setattr("casauth.core.cas.client.LoggingClient", logging_client)
        self.cas_server = cas_server

    def test_success(self) -> None:
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["validate", SERVICE_TICKET, "-s", SERVER_URL, "--service", "https://app.example.org/"],
        )
        assert result.exit_code == 0
        assert "Authenticated: yes" in result.output
        assert "User: alice" in result.output
        assert "memberOf: staff" in result.output
        assert self.cas_server.last_request.url.params["service"] == "https://app.example.org/"

    def test_success_json(self) -> None:
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["validate", SERVICE_TICKET, "-s", SERVER_URL, "--service", "https://app.example.org/",
             "--json"],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["state"] == "dispatched"
        assert data["result"]["success"]["user"] == "alice"
        assert SERVICE_TICKET not in data["validation_url"]

    def test_failure_exit_code(self) -> None:
        self.cas_server.body = V3_FAILURE_XML
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["validate", SERVICE_TICKET, "-s", SERVER_URL, "--service", "https://app.example.org/"],
        )
        assert result.exit_code == 1
        assert "Failure code: INVALID_TICKET" in result.output

    def test_malformed_ticket(self) -> None:
        runner = CliRunner()
        result = runner.invoke(
            cli, ["validate", "ST-1", "-s", SERVER_URL, "--service", "https://app.example.org/"]
        )
        assert result.exit_code != 0
        assert "rejected" in result.output
        assert self.cas_server.requests == []

    def test_transport_error(self) -> None:
        self.cas_server.error = httpx.ConnectError("connection refused")
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["validate", SERVICE_TICKET, "-s", SERVER_URL, "--service", "https://app.example.org/"],
        )
        assert result.exit_code != 0
        assert "transport_failed" in result.output


class TestDecode:
    """Tests for decode."""

    def test_decode_xml(self, tmp_path: Path) -> None:
        path = tmp_path / "response.xml"
        path.write_text(V3_SUCCESS_XML)
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", str(path)])
        assert result.exit_code == 0
        assert "User: alice" in result.output
        assert "employeeNumber: 4711" in result.output

    def test_decode_v1_stdin(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "-", "-p", "1", "--json"], input="yes\nbob\n")
        assert result.exit_code == 0
        assert json.loads(result.output) == {"is_valid": True, "user": "bob"}

    def test_decode_error(self, tmp_path: Path) -> None:
        path = tmp_path / "response.json"
        path.write_text("<not json/>")
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", str(path), "--format", "JSON"])
        assert result.exit_code != 0
        assert "invalid JSON" in result.output


class TestConfigCommands:
    """Tests for config commands."""

    def test_path(self, isolated_config: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["config", "path"])
        assert result.exit_code == 0
        assert result.output.strip() == str(isolated_config)

    def test_init(self, isolated_config: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["config", "init"])
        assert result.exit_code == 0
        assert isolated_config.exists()
        assert "server_url" in isolated_config.read_text()

    def test_init_existing(self, isolated_config: Path) -> None:
        isolated_config.write_text("cas: {}\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["config", "init", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output) == {"path": str(isolated_config), "created": False}
        assert isolated_config.read_text() == "cas: {}\n"

    def test_show_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CASAUTH_SERVER_URL", SERVER_URL)
        runner = CliRunner()
        result = runner.invoke(cli, ["config", "show", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["cas"]["server_url"] == SERVER_URL


def test_serve_requires_server_url() -> None:
    """serve refuses to start without a CAS server."""
    runner = CliRunner()
    result = runner.invoke(cli, ["serve"])
    assert result.exit_code != 0
    assert "No CAS server URL" in result.output
