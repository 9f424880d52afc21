"""Protocol logging for CAS exchanges.

Provides HTTP-level logging of the traffic between this client and the
CAS authority, with configurable log levels and protection of tickets
and proxy-granting credentials.

Log levels:
- ERROR: Only log errors
- INFO: Log flow milestones (validation started, authority answered)
- DEBUG: Log HTTP details (headers, status codes, timing)
- TRACE: Log full request/response bodies including tickets (requires explicit enable)
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import IntEnum
from typing import Any

import httpx

# Custom log level for TRACE (below DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

logger = logging.getLogger("casauth.protocol")

# Longest body excerpt written to the log
MAX_BODY_LOG_LENGTH = 2000


class LogLevel(IntEnum):
    """Protocol logging levels."""

    ERROR = logging.ERROR  # 40
    INFO = logging.INFO  # 20
    DEBUG = logging.DEBUG  # 10
    TRACE = TRACE  # 5


# Patterns for sensitive data redaction
SENSITIVE_PATTERNS = [
    # Query parameters
    (re.compile(r"(ticket=)[^&\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"(pgtIou=)[^&\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"(pgtId=)[^&\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    # XML service responses
    (
        re.compile(r"(<(?:\w+:)?proxyGrantingTicket>)[^<]+(</(?:\w+:)?proxyGrantingTicket>)"),
        r"\1[REDACTED]\2",
    ),
    # JSON service responses
    (re.compile(r'"(proxyGrantingTicket)"\s*:\s*"[^"]+"'), r'"\1": "[REDACTED]"'),
    (re.compile(r'"(password)"\s*:\s*"[^"]+"', re.IGNORECASE), r'"\1": "[REDACTED]"'),
    # HTTP headers (with or without "Authorization:" prefix for header dict values)
    (re.compile(r"(Authorization:\s*Bearer\s+)[^\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"(Authorization:\s*Basic\s+)[^\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"^(Bearer\s+)[^\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"^(Basic\s+)[^\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    # Cookies
    (re.compile(r"(Cookie:\s*)[^\r\n]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"(Set-Cookie:\s*)[^\r\n]+", re.IGNORECASE), r"\1[REDACTED]"),
]

# Header values that are redacted wholesale
SENSITIVE_HEADERS = frozenset({"cookie", "set-cookie"})


def redact_sensitive(text: str) -> str:
    """Redact tickets and credentials from text.

    Args:
        text: Text that may contain sensitive data.

    Returns:
        Text with sensitive data redacted.
    """
    result = text
    for pattern, replacement in SENSITIVE_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def _redact_headers(headers: dict[str, str]) -> dict[str, str]:
    redacted = {}
    for name, value in headers.items():
        if name.lower() in SENSITIVE_HEADERS:
            redacted[name] = "[REDACTED]"
        else:
            redacted[name] = redact_sensitive(value)
    return redacted


def _truncate(body: str) -> str:
    if len(body) > MAX_BODY_LOG_LENGTH:
        return f"{body[:MAX_BODY_LOG_LENGTH]}..."
    return body


@dataclass
class HTTPExchange:
    """A single request sent to the authority and what came back."""

    id: str
    timestamp: datetime
    method: str
    url: str
    request_headers: dict[str, str]
    response_status: int | None = None
    response_headers: dict[str, str] = field(default_factory=dict)
    response_body: str | None = None
    duration_ms: float | None = None
    error: str | None = None
    redirects: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self, include_sensitive: bool = False) -> dict[str, Any]:
        """Convert to dictionary for serialization.

        Args:
            include_sensitive: If True, include raw tickets and credentials.
                               If False, redact them.

        Returns:
            Dictionary representation of the exchange.
        """
        def process(value: str | None) -> str | None:
            if value is None or include_sensitive:
                return value
            return redact_sensitive(value)

        def process_headers(headers: dict[str, str]) -> dict[str, str]:
            if include_sensitive:
                return dict(headers)
            return _redact_headers(headers)

        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "method": self.method,
            "url": process(self.url),
            "request_headers": process_headers(self.request_headers),
            "response_status": self.response_status,
            "response_headers": process_headers(self.response_headers),
            "response_body": process(self.response_body),
            "duration_ms": self.duration_ms,
            "error": self.error,
            "redirects": [
                {"url": process(r["url"]), "status": r.get("status")}
                for r in self.redirects
            ],
        }

    def format_log(self, level: LogLevel, include_sensitive: bool = False) -> str:
        """Format the exchange for logging.

        Args:
            level: Log level determines how much detail to include.
            include_sensitive: If True, include raw tickets and credentials.

        Returns:
            Formatted log string.
        """
        data = self.to_dict(include_sensitive)
        lines = [f"HTTP {self.method} {data['url']} -> {self.response_status or 'ERROR'}"]

        if self.duration_ms is not None:
            lines.append(f"  Duration: {self.duration_ms:.1f}ms")

        if self.error:
            lines.append(f"  Error: {self.error}")

        if level <= LogLevel.DEBUG:
            lines.append("  Request Headers:")
            for name, value in data["request_headers"].items():
                lines.append(f"    {name}: {value}")

            if data["response_headers"]:
                lines.append("  Response Headers:")
                for name, value in data["response_headers"].items():
                    lines.append(f"    {name}: {value}")

            if data["redirects"]:
                lines.append("  Redirects:")
                for redirect in data["redirects"]:
                    lines.append(f"    -> {redirect.get('status') or '???'} {redirect['url']}")

        if level <= LogLevel.TRACE and data["response_body"]:
            lines.append("  Response Body:")
            lines.append(f"    {_truncate(data['response_body'])}")

        return "\n".join(lines)


@dataclass
class ProtocolLog:
    """Collects protocol exchanges for one validation call."""

    flow_id: str
    flow_type: str
    exchanges: list[HTTPExchange] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    def add_exchange(self, exchange: HTTPExchange) -> None:
        """Add an HTTP exchange to the log."""
        self.exchanges.append(exchange)

    def complete(self) -> None:
        """Mark the log as complete."""
        self.completed_at = datetime.now(UTC)

    def to_dict(self, include_sensitive: bool = False) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "flow_id": self.flow_id,
            "flow_type": self.flow_type,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "exchanges": [e.to_dict(include_sensitive) for e in self.exchanges],
            "exchange_count": len(self.exchanges),
        }


class ProtocolLogger:
    """Configurable protocol logger for CAS exchanges.

    Holds the log level settings. Flow logs are returned to the caller
    rather than kept on the logger, so one instance can be shared by
    concurrent validations.
    """

    def __init__(
        self,
        level: LogLevel = LogLevel.INFO,
        trace_enabled: bool = False,
    ) -> None:
        """Initialize the protocol logger.

        Args:
            level: Minimum log level.
            trace_enabled: Whether TRACE level is enabled (for tickets and bodies).
        """
        self._level = level
        self._trace_enabled = trace_enabled

    @property
    def level(self) -> LogLevel:
        """Get current log level."""
        return self._level

    @level.setter
    def level(self, value: LogLevel) -> None:
        """Set log level."""
        self._level = value

    @property
    def trace_enabled(self) -> bool:
        """Whether TRACE level is enabled."""
        return self._trace_enabled

    @trace_enabled.setter
    def trace_enabled(self, value: bool) -> None:
        """Enable or disable TRACE level."""
        self._trace_enabled = value

    @property
    def effective_level(self) -> LogLevel:
        """Get effective log level (TRACE only if explicitly enabled)."""
        if self._level == LogLevel.TRACE and not self._trace_enabled:
            return LogLevel.DEBUG
        return self._level

    def start_flow(self, flow_id: str, flow_type: str) -> ProtocolLog:
        """Start logging a new flow.

        Args:
            flow_id: Unique identifier for the flow.
            flow_type: Type of flow (e.g., "cas_validate_v3").

        Returns:
            ProtocolLog for the flow.
        """
        logger.info("Started protocol logging for %s flow: %s", flow_type, flow_id)
        return ProtocolLog(flow_id=flow_id, flow_type=flow_type)

    def end_flow(self, log: ProtocolLog) -> ProtocolLog:
        """Mark a flow log complete and return it."""
        log.complete()
        logger.info(
            "Completed protocol logging for %s flow: %s (%d exchanges)",
            log.flow_type,
            log.flow_id,
            len(log.exchanges),
        )
        return log

    def log_exchange(self, exchange: HTTPExchange, flow: ProtocolLog | None = None) -> None:
        """Log an HTTP exchange.

        Args:
            exchange: The HTTP exchange to log.
            flow: Flow log to attach the exchange to, if any.
        """
        if flow is not None:
            flow.add_exchange(exchange)

        effective = self.effective_level
        include_sensitive = self._trace_enabled and self._level <= LogLevel.TRACE

        if effective <= LogLevel.DEBUG:
            logger.debug(exchange.format_log(effective, include_sensitive))
        elif effective <= LogLevel.INFO:
            logger.info(exchange.format_log(effective, include_sensitive))

        if exchange.error:
            url = exchange.url if include_sensitive else redact_sensitive(exchange.url)
            logger.error("HTTP error: %s %s: %s", exchange.method, url, exchange.error)


class LoggingClient(httpx.Client):
    """HTTPX client with protocol logging support."""

    def __init__(
        self,
        protocol_logger: ProtocolLogger | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the logging client.

        Args:
            protocol_logger: ProtocolLogger to use. Uses the global one if not provided.
            **kwargs: Additional arguments passed to httpx.Client.
        """
        self._protocol_logger = protocol_logger or get_protocol_logger()

        # Redirects are followed by hand so the chain ends up in the log
        kwargs["follow_redirects"] = False

        super().__init__(**kwargs)

    @property
    def protocol_logger(self) -> ProtocolLogger:
        """Get the protocol logger."""
        return self._protocol_logger

    def _new_exchange(self, request: httpx.Request) -> HTTPExchange:
        return HTTPExchange(
            id=f"http_{id(request):08x}",
            timestamp=datetime.now(UTC),
            method=request.method,
            url=str(request.url),
            request_headers=dict(request.headers),
        )

    def request(  # type: ignore[override]
        self,
        method: str,
        url: str | httpx.URL,
        *,
        flow: ProtocolLog | None = None,
        max_redirects: int = 10,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make an HTTP request with logging.

        Handles redirect following manually to capture the redirect chain.
        Transport errors are logged and re-raised.
        """
        start_time = time.perf_counter()
        redirects: list[dict[str, Any]] = []

        # httpx.Client.get() and friends forward these, build_request() does not take them
        kwargs.pop("follow_redirects", None)
        auth = kwargs.pop("auth", httpx.USE_CLIENT_DEFAULT)

        request = self.build_request(method, url, **kwargs)
        try:
            response = self.send(request, auth=auth)

            while (
                response.is_redirect
                and response.next_request is not None
                and len(redirects) < max_redirects
            ):
                redirects.append({
                    "url": response.headers.get("location", ""),
                    "status": response.status_code,
                })
                request = response.next_request
                response = self.send(request)
        except httpx.HTTPError as e:
            exchange = self._new_exchange(request)
            exchange.duration_ms = (time.perf_counter() - start_time) * 1000
            exchange.error = str(e) or type(e).__name__
            exchange.redirects = redirects
            self._protocol_logger.log_exchange(exchange, flow)
            raise

        exchange = self._new_exchange(request)
        exchange.response_status = response.status_code
        exchange.response_headers = dict(response.headers)
        exchange.duration_ms = (time.perf_counter() - start_time) * 1000
        exchange.redirects = redirects
        try:
            exchange.response_body = response.text
        except UnicodeDecodeError:
            exchange.response_body = "<binary content>"

        self._protocol_logger.log_exchange(exchange, flow)
        return response


# Global protocol logger instance
_global_logger: ProtocolLogger | None = None


def get_protocol_logger() -> ProtocolLogger:
    """Get the global protocol logger instance.

    Returns:
        The global ProtocolLogger.
    """
    global _global_logger
    if _global_logger is None:
        _global_logger = ProtocolLogger()
    return _global_logger


def set_protocol_logger(logger_instance: ProtocolLogger) -> None:
    """Set the global protocol logger instance.

    Args:
        logger_instance: ProtocolLogger to use globally.
    """
    global _global_logger
    _global_logger = logger_instance


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    trace_enabled: bool = False,
    log_file: str | None = None,
) -> ProtocolLogger:
    """Configure protocol logging.

    Args:
        level: Log level (ERROR, INFO, DEBUG, TRACE) or string name.
        trace_enabled: Whether to enable TRACE level (includes tickets).
        log_file: Optional file path to write logs to.

    Returns:
        Configured ProtocolLogger.
    """
    if isinstance(level, str):
        level = LogLevel.__members__.get(level.upper(), LogLevel.INFO)

    # The CAS core logs under "casauth.core.cas", the exchanges under "casauth.protocol"
    root = logging.getLogger("casauth")
    root.setLevel(level)
    root.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    protocol_logger = ProtocolLogger(level=level, trace_enabled=trace_enabled)
    set_protocol_logger(protocol_logger)

    if trace_enabled:
        logger.warning(
            "TRACE logging enabled - service tickets and proxy-granting tickets will be logged!"
        )

    return protocol_logger
