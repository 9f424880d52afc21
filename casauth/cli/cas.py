"""CAS protocol CLI commands."""

from __future__ import annotations

import sys
from typing import BinaryIO

import click

from casauth.cli.output import error_result, json_option, output_result
from casauth.core.cas import (
    CASClient,
    CASError,
    ProtocolVersion,
    ServiceResponse,
    ValidateServiceTicketOptions,
    ValidationResult,
    ValidationState,
    compose_login_url,
    compose_validation_url,
    decode_validation_response,
)
from casauth.core.config import CASSettings, load_config

server_url_option = click.option(
    "--server-url",
    "-s",
    help="CAS server base URL (default: from config)",
)
protocol_version_option = click.option(
    "--protocol-version",
    "-p",
    type=click.Choice(["1", "2", "3"]),
    help="CAS protocol version (default: from config or 3)",
)
format_option = click.option(
    "--format",
    "response_format",
    type=click.Choice(["XML", "JSON"], case_sensitive=False),
    help="Response format for versions 2/3 (default: XML)",
)


def _settings(server_url: str | None, protocol_version: str | None) -> CASSettings:
    """CAS settings from config, with command-line overrides."""
    settings = load_config().cas
    if server_url:
        settings.server_url = server_url
    if protocol_version:
        settings.version = int(protocol_version)
    return settings


def format_result(result: ValidationResult) -> list[str]:
    """Human-readable lines for a validation result."""
    lines = [f"Authenticated: {'yes' if result.is_success else 'no'}"]
    if not isinstance(result, ServiceResponse):
        if result.is_valid:
            lines.append(f"User: {result.user}")
        return lines

    success = result.success
    if success is None:
        if result.failure is not None:
            lines.append(f"Failure code: {result.failure.code}")
            if result.failure.message:
                lines.append(f"Message: {result.failure.message}")
        return lines

    lines.append(f"User: {success.user}")
    if success.proxy_granting_ticket is not None:
        lines.append(f"Proxy-granting ticket IOU: {success.proxy_granting_ticket}")
    if success.proxies:
        lines.append("Proxies:")
        lines.extend(f"  {proxy}" for proxy in success.proxies)

    attributes = success.attributes
    if attributes is not None:
        lines.append("Attributes:")
        if attributes.authentication_date is not None:
            lines.append(f"  authenticationDate: {attributes.authentication_date.isoformat()}")
        if attributes.long_term_authentication_request_token_used is not None:
            lines.append(
                "  longTermAuthenticationRequestTokenUsed: "
                f"{attributes.long_term_authentication_request_token_used}"
            )
        if attributes.is_from_new_login is not None:
            lines.append(f"  isFromNewLogin: {attributes.is_from_new_login}")
        for group in attributes.member_of:
            lines.append(f"  memberOf: {group}")
        if attributes.user_attributes is not None:
            for attribute in attributes.user_attributes.attributes:
                lines.append(f"  {attribute.name}: {attribute.value}")
        for extension in attributes.extensions:
            lines.append(f"  {extension.name}: {extension.value}")

    for extension in success.extensions:
        lines.append(f"{extension.name}: {extension.value}")
    return lines


@click.command("login-url")
@server_url_option
@click.option("--service", required=True, help="Absolute URL to return to after login")
@click.option("--renew", is_flag=True, help="Force the user to log in again")
@click.option("--gateway", is_flag=True, help="Never prompt the user for credentials")
@click.option(
    "--method",
    type=click.Choice(["GET", "POST", "HEAD"], case_sensitive=False),
    help="Response method the server should use",
)
def login_url(
    server_url: str | None,
    service: str,
    renew: bool,
    gateway: bool,
    method: str | None,
) -> None:
    """Print the login URL for a service.

    Examples:

        casauth login-url -s https://cas.example.org/cas --service https://app.example.org/
    """
    settings = _settings(server_url, None)
    if not settings.server_url:
        raise click.ClickException("No CAS server URL configured (use --server-url)")
    try:
        click.echo(compose_login_url(settings.server_url, service, renew, gateway, method))
    except CASError as e:
        raise click.ClickException(str(e)) from None


@click.command("validate-url")
@server_url_option
@protocol_version_option
@click.option("--service", required=True, help="Service URL the ticket was issued for")
@click.option("--ticket", required=True, help="Service ticket")
@click.option("--renew", is_flag=True, help="Require a ticket from primary credentials")
@click.option("--pgt-url", help="Proxy callback URL (versions 2/3)")
@format_option
def validate_url(
    server_url: str | None,
    protocol_version: str | None,
    service: str,
    ticket: str,
    renew: bool,
    pgt_url: str | None,
    response_format: str | None,
) -> None:
    """Print the ticket validation URL without calling the server."""
    settings = _settings(server_url, protocol_version)
    if not settings.server_url:
        raise click.ClickException("No CAS server URL configured (use --server-url)")
    try:
        options = ValidateServiceTicketOptions(
            renew=renew,
            pgt_url=pgt_url,
            response_format=response_format,
        )
        url = compose_validation_url(
            settings.server_url,
            ProtocolVersion.parse(settings.version),
            ticket,
            service,
            renew=options.renew,
            pgt_url=options.pgt_url,
            response_format=options.response_format,
        )
    except CASError as e:
        raise click.ClickException(str(e)) from None
    click.echo(url)


@click.command("validate")
@click.argument("ticket")
@server_url_option
@protocol_version_option
@click.option("--service", required=True, help="Service URL the ticket was issued for")
@click.option("--renew", is_flag=True, help="Require a ticket from primary credentials")
@click.option("--pgt-url", help="Proxy callback URL (versions 2/3)")
@format_option
@json_option
def validate(
    ticket: str,
    server_url: str | None,
    protocol_version: str | None,
    service: str,
    renew: bool,
    pgt_url: str | None,
    response_format: str | None,
    output_json: bool,
) -> None:
    """Validate a service ticket against the CAS server.

    Exits with status 1 when the ticket is refused or cannot be validated.

    Examples:

        casauth validate ST-1-abcdefghijklmnop --service https://app.example.org/

        casauth validate ST-1-abcdefghijklmnop --service https://app.example.org/ \\
            --protocol-version 3 --format JSON --json
    """
    settings = _settings(server_url, protocol_version)
    if renew:
        settings.renew = True
    if pgt_url:
        settings.pgt_url = pgt_url
    if response_format:
        settings.response_format = response_format

    try:
        client = CASClient(settings.client_config(lambda result: result.to_dict()))
        validator = client.validate_service_ticket(settings.validation_options())
    except CASError as e:
        error_result(str(e), output_json)

    with client:
        outcome = validator.validate_ticket(ticket, service)

    result = outcome.result
    if outcome.state is not ValidationState.DISPATCHED or result is None:
        error_result(f"{outcome.state.value}: {outcome.error}", output_json)

    if output_json:
        output_result(outcome.to_dict(), as_json=True)
    else:
        for line in format_result(result):
            click.echo(line)

    if not result.is_success:
        sys.exit(1)


@click.command("decode")
@click.argument("response_file", type=click.File("rb"))
@protocol_version_option
@format_option
@json_option
def decode(
    response_file: BinaryIO,
    protocol_version: str | None,
    response_format: str | None,
    output_json: bool,
) -> None:
    """Decode a saved validation response ("-" reads stdin).

    Examples:

        casauth decode response.xml

        casauth decode response.json --format JSON --json
    """
    try:
        version = ProtocolVersion.parse(protocol_version or load_config().cas.version)
        options = ValidateServiceTicketOptions(response_format=response_format)
        result = decode_validation_response(version, response_file.read(), options.response_format)
    except CASError as e:
        error_result(str(e), output_json)

    if output_json:
        output_result(result.to_dict(), as_json=True)
        return
    for line in format_result(result):
        click.echo(line)
