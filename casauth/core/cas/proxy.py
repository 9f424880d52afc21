"""Externally visible URL of an inbound request behind a reverse proxy."""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import urlsplit, urlunsplit

from werkzeug.wrappers import Request


def _first(header_value: str | None) -> str | None:
    """First entry of a possibly comma-separated forwarded header."""
    if not header_value:
        return None
    value = header_value.split(",", 1)[0].strip()
    return value or None


def external_origin(request: Request) -> tuple[str, str]:
    """Scheme and host as seen by the visitor's browser.

    X-Forwarded-Proto and X-Forwarded-Host win over what the server itself saw.
    """
    scheme = _first(request.headers.get("X-Forwarded-Proto")) or request.scheme
    host = _first(request.headers.get("X-Forwarded-Host")) or request.host
    return scheme.lower(), host


def strip_query_params(query: str, names: Iterable[str]) -> str:
    """Remove parameters from a raw query string, leaving the rest untouched."""
    drop = set(names)
    kept = [part for part in query.split("&") if part and part.split("=", 1)[0] not in drop]
    return "&".join(kept)


def external_url(request: Request, drop: Iterable[str] = ("ticket",)) -> str:
    """URL of the inbound request as the visitor's browser sees it.

    The query string is kept byte-for-byte apart from the dropped parameters,
    since the authority compares it with the service URL given at login.
    """
    scheme, host = external_origin(request)
    parts = urlsplit(request.base_url)
    query = strip_query_params(request.query_string.decode("latin-1"), drop)
    return urlunsplit((scheme, host, parts.path, query, ""))
