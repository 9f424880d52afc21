"""Service ticket validation.

A visitor comes back from the authority with a ticket. The validator
checks the ticket shape, asks the authority about it, decodes the answer
with the strategy of the configured protocol version and hands the result
to the configured callback, which finishes the exchange.

    awaiting_ticket -> composing_request -> awaiting_transport -> decoding -> dispatched

with rejected (400), transport_failed (503) and decode_failed (503) as
error terminals. An explicit authentication failure from the authority is
not an error: it is dispatched to the callback like a success.
"""

from __future__ import annotations

import json
import logging
import secrets
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import httpx
from werkzeug.wrappers import Request, Response

from casauth.core.cas.decoders import decode_validation_response
from casauth.core.cas.errors import DecodeError, TransportError
from casauth.core.cas.options import CASClientConfig, ValidateServiceTicketOptions
from casauth.core.cas.protocol import is_well_formed_ticket
from casauth.core.cas.proxy import external_url
from casauth.core.cas.response import ServiceResponse, ValidationResult
from casauth.core.cas.urls import compose_validation_url
from casauth.core.logging import (
    LoggingClient,
    ProtocolLog,
    ProtocolLogger,
    get_protocol_logger,
    redact_sensitive,
)

logger = logging.getLogger(__name__)


class ValidationState(StrEnum):
    """Where a validation call is, or where it ended."""

    AWAITING_TICKET = "awaiting_ticket"
    COMPOSING_REQUEST = "composing_request"
    AWAITING_TRANSPORT = "awaiting_transport"
    DECODING = "decoding"
    DISPATCHED = "dispatched"
    REJECTED = "rejected"
    TRANSPORT_FAILED = "transport_failed"
    DECODE_FAILED = "decode_failed"


# Status returned when the validator answers the request itself
_STATUS_BY_STATE = {
    ValidationState.REJECTED: 400,
    ValidationState.TRANSPORT_FAILED: 503,
    ValidationState.DECODE_FAILED: 503,
}


@dataclass
class ValidationOutcome:
    """Record of one validation call."""

    state: ValidationState
    ticket: str | None = None
    service: str | None = None
    validation_url: str | None = None
    result: ValidationResult | None = None
    error: str | None = None
    response: Response | None = None
    protocol_log: ProtocolLog | None = None

    @property
    def status_code(self) -> int:
        """HTTP status of the inbound exchange."""
        if self.state in _STATUS_BY_STATE:
            return _STATUS_BY_STATE[self.state]
        if self.response is None:
            return 500
        return self.response.status_code

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for display. Tickets are redacted."""
        return {
            "state": self.state.value,
            "status_code": self.status_code,
            "service": self.service,
            "validation_url": redact_sensitive(self.validation_url) if self.validation_url else None,
            "result": self.result.to_dict() if self.result is not None else None,
            "error": self.error,
        }


def make_response(rv: Any) -> Response:
    """Turn a callback return value into a response."""
    if isinstance(rv, Response):
        return rv
    status = 200
    if isinstance(rv, tuple):
        if len(rv) != 2:
            raise TypeError("validation callback must return a (body, status) pair")
        rv, status = rv
    if isinstance(rv, (dict, list)):
        return Response(json.dumps(rv), status=status, mimetype="application/json")
    if isinstance(rv, (str, bytes)):
        return Response(rv, status=status)
    raise TypeError(f"validation callback returned an unsupported value: {type(rv).__name__}")


class TicketValidator:
    """Validates the service ticket of an inbound request.

    Calling the validator with a request returns the response to send back.
    """

    def __init__(
        self,
        config: CASClientConfig,
        options: ValidateServiceTicketOptions | None = None,
        http_client: httpx.Client | None = None,
        protocol_logger: ProtocolLogger | None = None,
    ) -> None:
        """Initialize the validator.

        Args:
            config: Client configuration.
            options: Validation options, checked once here.
            http_client: Client used to reach the authority. Falls back to the
                configured one, then to a new logging client.
            protocol_logger: Protocol logger for the exchanges.
        """
        self.config = config
        self.options = options or ValidateServiceTicketOptions()
        self._protocol_logger = protocol_logger or get_protocol_logger()
        self._http_client = (
            http_client
            or config.http_client
            or LoggingClient(
                protocol_logger=self._protocol_logger,
                timeout=config.timeout,
                verify=config.verify,
            )
        )

    def _fetch(self, url: str, flow: ProtocolLog) -> bytes:
        try:
            if isinstance(self._http_client, LoggingClient):
                response = self._http_client.request("GET", url, flow=flow)
            else:
                response = self._http_client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise TransportError(f"authority answered HTTP {status}", status_code=status) from e
        except httpx.HTTPError as e:
            raise TransportError(f"authority unreachable: {str(e) or type(e).__name__}") from e
        return response.content

    def validate(self, request: Request) -> ValidationOutcome:
        """Validate the ticket of an inbound request.

        The service sent to the authority is the URL the visitor came back
        to, as the browser saw it, minus the ticket parameter.
        """
        return self.validate_ticket(request.args.get("ticket"), external_url(request))

    def validate_ticket(self, ticket: str | None, service: str) -> ValidationOutcome:
        """Run one validation call and record how it ended.

        Args:
            ticket: Service ticket presented by the visitor.
            service: Service URL the ticket was issued for.

        Returns:
            The outcome. The callback has run if and only if the state is
            DISPATCHED.
        """
        if ticket is None or not is_well_formed_ticket(ticket):
            logger.info("Rejected malformed service ticket")
            return ValidationOutcome(
                state=ValidationState.REJECTED,
                ticket=ticket,
                error="missing or malformed service ticket",
            )

        version = self.config.version
        url = compose_validation_url(
            self.config.server_url,
            version,
            ticket,
            service,
            renew=self.options.renew,
            pgt_url=self.options.pgt_url,
            response_format=self.options.response_format,
        )
        outcome = ValidationOutcome(
            state=ValidationState.AWAITING_TRANSPORT,
            ticket=ticket,
            service=service,
            validation_url=url,
        )

        flow = self._protocol_logger.start_flow(secrets.token_hex(8), f"cas_validate_v{version.value}")
        outcome.protocol_log = flow
        try:
            try:
                body = self._fetch(url, flow)
            except TransportError as e:
                logger.warning("CAS ticket validation failed: %s", e)
                outcome.state = ValidationState.TRANSPORT_FAILED
                outcome.error = str(e)
                return outcome

            outcome.state = ValidationState.DECODING
            try:
                result = decode_validation_response(version, body, self.options.response_format)
            except DecodeError as e:
                logger.warning("CAS authority sent an unusable validation response: %s", e)
                outcome.state = ValidationState.DECODE_FAILED
                outcome.error = str(e)
                return outcome
        finally:
            self._protocol_logger.end_flow(flow)

        outcome.result = result
        outcome.state = ValidationState.DISPATCHED
        if result.is_success:
            logger.info("CAS ticket validated for user %s", result.user)
        elif isinstance(result, ServiceResponse) and result.failure is not None:
            logger.info("CAS authority rejected ticket: %s", result.failure.code)
        else:
            logger.info("CAS authority rejected ticket")

        rv = self.config.callback(result)
        try:
            outcome.response = make_response(rv)
        except TypeError as e:
            logger.exception("CAS validation callback returned an unusable value")
            outcome.error = str(e)
        return outcome

    def __call__(self, request: Request) -> Response:
        """Validate the ticket of a request and return the response to send."""
        outcome = self.validate(request)
        if outcome.response is not None:
            return outcome.response
        return Response(status=outcome.status_code)
