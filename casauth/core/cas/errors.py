"""Exceptions raised by the CAS client."""

from __future__ import annotations


class CASError(Exception):
    """Base class for CAS client errors."""


class ConfigurationError(CASError, ValueError):
    """The client or one of its handlers was set up with invalid values.

    Raised at construction time only, never while handling a request.
    """


class InvalidProtocolVersionError(ConfigurationError):
    """The protocol version is not 1, 2 or 3."""


class InvalidServerURLError(ConfigurationError):
    """The authority base URL cannot be used."""


class InvalidOptionError(ConfigurationError):
    """A login or validation option is missing, malformed or conflicting."""


class TransportError(CASError):
    """The authority could not be reached or answered with an HTTP error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeError(CASError, ValueError):
    """The authority answered, but the body is not a valid service response."""
