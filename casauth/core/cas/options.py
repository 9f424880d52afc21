"""Client configuration and per-handler options.

Everything here is validated once, when it is constructed, and is
read-only afterwards. Invalid values raise ConfigurationError subclasses.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from casauth.core.cas.errors import ConfigurationError, InvalidOptionError, InvalidServerURLError
from casauth.core.cas.protocol import LoginMethod, ProtocolVersion, ResponseFormat
from casauth.core.cas.response import ValidationResult
from casauth.core.cas.urls import check_service, is_absolute_url

if TYPE_CHECKING:
    import httpx

# What a validation callback may return: a werkzeug Response, a str/bytes
# body, a dict/list rendered as JSON, or a (body, status) tuple.
ValidationCallback = Callable[[ValidationResult], Any]

DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class CASClientConfig:
    """Immutable configuration of a CAS client.

    Attributes:
        version: Protocol version, 1 to 3.
        server_url: Authority base URL, e.g. https://cas.example.org/cas.
        callback: Called once per validated ticket with a V1Result (version 1)
            or a ServiceResponse (versions 2 and 3).
        http_client: HTTP client used to reach the authority. A logging
            client is created when not given.
        timeout: Timeout in seconds for the created HTTP client.
        verify: Verify TLS certificates with the created HTTP client.
    """

    version: ProtocolVersion
    server_url: str
    callback: ValidationCallback
    http_client: httpx.Client | None = None
    timeout: float = DEFAULT_TIMEOUT
    verify: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "version", ProtocolVersion.parse(self.version))
        if not isinstance(self.server_url, str) or not is_absolute_url(self.server_url):
            raise InvalidServerURLError(f"invalid CAS server URL: {self.server_url!r}")
        if not callable(self.callback):
            raise ConfigurationError("a validation callback is required")
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")


@dataclass(frozen=True)
class LoginRedirectOptions:
    """Options sent to the authority's login endpoint.

    Attributes:
        service: Where to send the visitor after login. Either an absolute
            URL or a path starting with "/", resolved against the visible
            origin of each request.
        renew: Bypass single sign-on and ask for credentials again.
        gateway: Never ask for credentials; come back without a ticket when
            no single sign-on session exists. Excludes renew.
        method: GET, POST or HEAD response method (CAS 3).
    """

    service: str
    renew: bool = False
    gateway: bool = False
    method: LoginMethod | str | None = None

    def __post_init__(self) -> None:
        check_service(self.service)
        if self.renew and self.gateway:
            raise InvalidOptionError("renew and gateway cannot be set at the same time")
        object.__setattr__(self, "method", LoginMethod.parse(self.method))


@dataclass(frozen=True)
class ValidateServiceTicketOptions:
    """Options sent along with a service ticket validation.

    Attributes:
        renew: Only accept tickets issued from primary credentials.
        pgt_url: Proxy callback URL (versions 2 and 3).
        response_format: XML or JSON (versions 2 and 3); XML when unset.
    """

    renew: bool = False
    pgt_url: str | None = None
    response_format: ResponseFormat | str | None = None

    def __post_init__(self) -> None:
        if self.pgt_url and not is_absolute_url(self.pgt_url):
            raise InvalidOptionError(f"invalid pgtUrl: {self.pgt_url!r}")
        object.__setattr__(self, "response_format", ResponseFormat.parse(self.response_format))
