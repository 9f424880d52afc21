"""Composition of the URLs sent to the CAS authority."""

from __future__ import annotations

from urllib.parse import urlencode, urlsplit, urlunsplit

from casauth.core.cas.errors import InvalidOptionError
from casauth.core.cas.protocol import (
    LOGIN_URI,
    LOGOUT_URI,
    LoginMethod,
    ProtocolVersion,
    ResponseFormat,
    validation_path,
)


def endpoint_url(base_url: str, path: str) -> str:
    """Append an endpoint path to the authority base URL.

    The base path is kept: "https://cas.example.org/cas" and "/login" give
    "https://cas.example.org/cas/login".
    """
    parts = urlsplit(base_url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path.rstrip("/") + path, "", ""))


def is_absolute_url(url: str) -> bool:
    """Whether a URL has an http(s) scheme and a host."""
    parts = urlsplit(url)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def check_service(service: str | None) -> str:
    """Check that a service target is an absolute URL or a rooted path.

    Raises:
        InvalidOptionError: If the service is empty or neither form.
    """
    if not service:
        raise InvalidOptionError("service is required")
    if not service.startswith("/") and not is_absolute_url(service):
        raise InvalidOptionError(f"invalid service value: {service!r}")
    return service


def resolve_service(service: str, origin: tuple[str, str] | None) -> str:
    """Turn a rooted service path into an absolute URL on the visible origin."""
    if not service.startswith("/"):
        return service
    if origin is None:
        raise InvalidOptionError(f"relative service {service!r} needs the request origin")
    scheme, host = origin
    return f"{scheme}://{host}{service}"


def compose_login_url(
    base_url: str,
    service: str,
    renew: bool = False,
    gateway: bool = False,
    method: LoginMethod | str | None = None,
    origin: tuple[str, str] | None = None,
) -> str:
    """Build the URL that sends the visitor to the authority's login page.

    Args:
        base_url: Authority base URL.
        service: Where the authority sends the visitor back to, absolute or a
            path starting with "/".
        renew: Force the visitor to present credentials again.
        gateway: Never ask the visitor for credentials.
        method: How the authority returns the ticket (GET, POST or HEAD).
        origin: Externally visible (scheme, host), used for relative services.

    Raises:
        InvalidOptionError: On a bad service, renew together with gateway, or
            an unsupported method.
    """
    check_service(service)
    if renew and gateway:
        raise InvalidOptionError("renew and gateway cannot be set at the same time")
    login_method = LoginMethod.parse(method)

    params: dict[str, str] = {"service": resolve_service(service, origin)}
    if renew:
        params["renew"] = "true"
    if gateway:
        params["gateway"] = "true"
    if login_method is not None:
        params["method"] = login_method.value

    return f"{endpoint_url(base_url, LOGIN_URI)}?{urlencode(params)}"


def compose_validation_url(
    base_url: str,
    version: ProtocolVersion,
    ticket: str,
    service: str,
    renew: bool = False,
    pgt_url: str | None = None,
    response_format: ResponseFormat | None = None,
) -> str:
    """Build the service ticket validation URL for a protocol version.

    renew, pgtUrl and format are only sent for versions 2 and 3; version 1
    has no such parameters.
    """
    params: dict[str, str] = {"service": service, "ticket": ticket}
    if version.has_service_response:
        if renew:
            params["renew"] = "true"
        if pgt_url:
            params["pgtUrl"] = pgt_url
        if response_format is not None:
            params["format"] = response_format.value

    return f"{endpoint_url(base_url, validation_path(version))}?{urlencode(params)}"


def compose_logout_url(base_url: str, service: str | None = None) -> str:
    """Build the authority logout URL, optionally with a return service."""
    url = endpoint_url(base_url, LOGOUT_URI)
    if service:
        url = f"{url}?{urlencode({'service': service})}"
    return url
