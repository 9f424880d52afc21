"""CAS client.

Entry point for applications: build a CASClient from a CASClientConfig,
then ask it for a login redirector and a ticket validator to mount on
the application's routes.

    client = CASClient(CASClientConfig(
        version=ProtocolVersion.V3,
        server_url="https://cas.example.org/cas",
        callback=on_validated,
    ))
    login = client.redirect_to_server(LoginRedirectOptions(service="/home"))
    validate = client.validate_service_ticket(
        ValidateServiceTicketOptions(response_format="JSON")
    )
"""

from __future__ import annotations

from types import TracebackType
from typing import TYPE_CHECKING

from casauth.core.cas.options import (
    CASClientConfig,
    LoginRedirectOptions,
    ValidateServiceTicketOptions,
)
from casauth.core.cas.protocol import ProtocolVersion
from casauth.core.cas.redirector import LoginRedirector
from casauth.core.cas.urls import compose_logout_url
from casauth.core.cas.validator import TicketValidator
from casauth.core.logging import LoggingClient, ProtocolLogger, get_protocol_logger

if TYPE_CHECKING:
    import httpx


class CASClient:
    """Client side of the CAS protocol, versions 1 to 3."""

    def __init__(
        self,
        config: CASClientConfig,
        protocol_logger: ProtocolLogger | None = None,
    ) -> None:
        """Initialize the CAS client.

        Args:
            config: Validated client configuration.
            protocol_logger: Optional protocol logger for HTTP traffic capture.
        """
        self.config = config
        self._protocol_logger = protocol_logger or get_protocol_logger()
        self._http_client: LoggingClient | None = None

    @property
    def version(self) -> ProtocolVersion:
        """Protocol version used by the client."""
        return self.config.version

    @property
    def server_url(self) -> str:
        """Authority base URL."""
        return self.config.server_url

    @property
    def protocol_logger(self) -> ProtocolLogger:
        """Get the protocol logger."""
        return self._protocol_logger

    @property
    def http_client(self) -> httpx.Client:
        """HTTP client used to reach the authority."""
        if self.config.http_client is not None:
            return self.config.http_client
        if self._http_client is None:
            self._http_client = LoggingClient(
                protocol_logger=self._protocol_logger,
                timeout=self.config.timeout,
                verify=self.config.verify,
            )
        return self._http_client

    def redirect_to_server(self, options: LoginRedirectOptions) -> LoginRedirector:
        """Build the handler that redirects visitors to the login page."""
        return LoginRedirector(self.config, options)

    def validate_service_ticket(
        self,
        options: ValidateServiceTicketOptions | None = None,
    ) -> TicketValidator:
        """Build the handler that validates returning visitors' tickets."""
        return TicketValidator(
            self.config,
            options,
            http_client=self.http_client,
            protocol_logger=self._protocol_logger,
        )

    def logout_url(self, service: str | None = None) -> str:
        """URL of the authority's logout page."""
        return compose_logout_url(self.config.server_url, service)

    def close(self) -> None:
        """Close the HTTP client created by this client."""
        if self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def __enter__(self) -> CASClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
