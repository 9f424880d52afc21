"""Protocol constants for the three CAS protocol generations."""

from __future__ import annotations

from enum import IntEnum, StrEnum

from casauth.core.cas.errors import InvalidOptionError, InvalidProtocolVersionError

# XML namespace of version 2/3 service responses
CAS_NS = "http://www.yale.edu/tp/cas"

# Endpoints, relative to the authority base URL
LOGIN_URI = "/login"
LOGOUT_URI = "/logout"
VALIDATE_URI = "/validate"
V2_SERVICE_VALIDATE_URI = "/serviceValidate"
V2_PROXY_VALIDATE_URI = "/proxyValidate"
V2_PROXY_URI = "/proxy"
V3_SERVICE_VALIDATE_URI = "/p3/serviceValidate"
V3_PROXY_VALIDATE_URI = "/p3/proxyValidate"

SERVICE_TICKET_PREFIX = "ST-"
MIN_TICKET_LENGTH = 16


class ProtocolVersion(IntEnum):
    """CAS protocol version."""

    V1 = 1
    V2 = 2
    V3 = 3

    @classmethod
    def parse(cls, value: ProtocolVersion | int | str | None) -> ProtocolVersion:
        """Parse a protocol version.

        Accepts enum members, integers and strings such as "3", "v3" or "CAS3".

        Raises:
            InvalidProtocolVersionError: If the value is not a known version.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            text = value.strip().lower().removeprefix("cas").strip().removeprefix("v")
            # "3.0" is accepted, "3.5" is not
            text = text.removesuffix(".0")
            if not text.isdigit():
                raise InvalidProtocolVersionError(f"invalid CAS protocol version: {value!r}")
            value = int(text)
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidProtocolVersionError(f"invalid CAS protocol version: {value!r}")
        try:
            return cls(value)
        except ValueError:
            raise InvalidProtocolVersionError(f"invalid CAS protocol version: {value}") from None

    @property
    def has_service_response(self) -> bool:
        """Whether the authority answers with an XML/JSON service response."""
        return self is not ProtocolVersion.V1


class ResponseFormat(StrEnum):
    """Encoding of a version 2/3 validation response."""

    XML = "XML"
    JSON = "JSON"

    @classmethod
    def parse(cls, value: ResponseFormat | str | None) -> ResponseFormat | None:
        """Parse a response format. Empty values mean "not requested"."""
        if value is None or value == "":
            return None
        try:
            return cls(str(value).upper())
        except ValueError:
            raise InvalidOptionError(f"unsupported response format: {value!r}") from None


class LoginMethod(StrEnum):
    """Response method the authority should use after login."""

    GET = "GET"
    POST = "POST"
    HEAD = "HEAD"

    @classmethod
    def parse(cls, value: LoginMethod | str | None) -> LoginMethod | None:
        """Parse a login method. Empty values mean "authority default"."""
        if value is None or value == "":
            return None
        try:
            return cls(str(value).upper())
        except ValueError:
            raise InvalidOptionError(f"unsupported method option: {value!r}") from None


_VALIDATION_PATHS = {
    ProtocolVersion.V1: VALIDATE_URI,
    ProtocolVersion.V2: V2_SERVICE_VALIDATE_URI,
    ProtocolVersion.V3: V3_SERVICE_VALIDATE_URI,
}


def validation_path(version: ProtocolVersion) -> str:
    """Service ticket validation endpoint for a protocol version."""
    return _VALIDATION_PATHS[version]


def is_well_formed_ticket(ticket: str | None) -> bool:
    """Check the shape of a service ticket before anything is sent.

    A service ticket starts with "ST-" and is at least 16 characters long.
    """
    return (
        ticket is not None
        and len(ticket) >= MIN_TICKET_LENGTH
        and ticket.startswith(SERVICE_TICKET_PREFIX)
    )
