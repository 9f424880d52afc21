"""Data model of CAS validation results.

Version 2/3 authorities answer with a service response document that holds
either an authentication success or an authentication failure. Version 1
authorities answer with a bare yes/no and a user name.

Optional fields use None for "absent from the document" and an empty value
for "present but empty".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class ExtensionElement:
    """An element the decoder has no typed field for, kept verbatim."""

    name: str
    value: str
    namespace: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"name": self.name, "value": self.value, "namespace": self.namespace}


@dataclass
class NamedAttribute:
    """A name/value pair from the userAttributes list. Names may repeat."""

    name: str
    value: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"name": self.name, "value": self.value}


@dataclass
class UserAttributes:
    """The userAttributes block of the attribute bag."""

    attributes: list[NamedAttribute] = field(default_factory=list)
    extensions: list[ExtensionElement] = field(default_factory=list)

    def get_all(self, name: str) -> list[str]:
        """All values of a named attribute, in document order."""
        return [a.value for a in self.attributes if a.name == name]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "attributes": [a.to_dict() for a in self.attributes],
            "extensions": [e.to_dict() for e in self.extensions],
        }


@dataclass
class Attributes:
    """Metadata about the authenticated user (versions 2 and 3 only)."""

    authentication_date: datetime | None = None
    long_term_authentication_request_token_used: bool | None = None
    is_from_new_login: bool | None = None
    member_of: list[str] = field(default_factory=list)
    user_attributes: UserAttributes | None = None
    extensions: list[ExtensionElement] = field(default_factory=list)

    def get_extension(self, name: str) -> str | None:
        """Value of the first extension element with this name."""
        for extension in self.extensions:
            if extension.name == name:
                return extension.value
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "authentication_date": (
                self.authentication_date.isoformat() if self.authentication_date else None
            ),
            "long_term_authentication_request_token_used": (
                self.long_term_authentication_request_token_used
            ),
            "is_from_new_login": self.is_from_new_login,
            "member_of": list(self.member_of),
            "user_attributes": self.user_attributes.to_dict() if self.user_attributes else None,
            "extensions": [e.to_dict() for e in self.extensions],
        }


@dataclass
class AuthenticationSuccess:
    """The authority accepted the ticket."""

    user: str
    proxy_granting_ticket: str | None = None
    proxies: list[str] | None = None
    attributes: Attributes | None = None
    extensions: list[ExtensionElement] = field(default_factory=list)

    def add_proxy(self, proxy: str) -> None:
        """Append a proxy to the end of the proxy chain."""
        if self.proxies is None:
            self.proxies = []
        self.proxies.append(proxy)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "user": self.user,
            "proxy_granting_ticket": self.proxy_granting_ticket,
            "proxies": list(self.proxies) if self.proxies is not None else None,
            "attributes": self.attributes.to_dict() if self.attributes else None,
            "extensions": [e.to_dict() for e in self.extensions],
        }


@dataclass
class AuthenticationFailure:
    """The authority explicitly rejected the ticket."""

    code: str
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"code": self.code, "message": self.message}


@dataclass
class ServiceResponse:
    """Decoded version 2/3 validation response.

    Exactly one of success and failure is set.
    """

    success: AuthenticationSuccess | None = None
    failure: AuthenticationFailure | None = None

    def __post_init__(self) -> None:
        if (self.success is None) == (self.failure is None):
            raise ValueError("a service response holds exactly one of success or failure")

    @property
    def is_success(self) -> bool:
        """Whether the ticket was accepted."""
        return self.success is not None

    @property
    def user(self) -> str | None:
        """Authenticated user, if the ticket was accepted."""
        return self.success.user if self.success else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "success": self.success.to_dict() if self.success else None,
            "failure": self.failure.to_dict() if self.failure else None,
        }


@dataclass(frozen=True)
class V1Result:
    """Decoded version 1 validation response."""

    is_valid: bool
    user: str = ""

    @property
    def is_success(self) -> bool:
        """Whether the ticket was accepted."""
        return self.is_valid

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"is_valid": self.is_valid, "user": self.user}


# Payload handed to the validation callback: V1Result for version 1,
# ServiceResponse for versions 2 and 3.
ValidationResult = V1Result | ServiceResponse
