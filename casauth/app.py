"""Flask application factory."""

from __future__ import annotations

import ssl
from pathlib import Path
from typing import TYPE_CHECKING, Any

from flask import Flask

if TYPE_CHECKING:
    from casauth.core.config import AppConfig


def config_mapping(app_config: AppConfig) -> dict[str, Any]:
    """Flask configuration keys for an AppConfig."""
    cas = app_config.cas
    return {
        "CAS_SERVER_URL": cas.server_url,
        "CAS_VERSION": cas.version,
        "CAS_RESPONSE_FORMAT": cas.response_format,
        "CAS_SERVICE": cas.service,
        "CAS_RENEW": cas.renew,
        "CAS_GATEWAY": cas.gateway,
        "CAS_METHOD": cas.method,
        "CAS_PGT_URL": cas.pgt_url,
        "CAS_TIMEOUT": cas.timeout,
        "CAS_VERIFY_TLS": cas.verify_tls,
    }


def create_app(config: dict | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Optional configuration dictionary to override defaults.

    Returns:
        Configured Flask application instance.

    Raises:
        ConfigurationError: If the CAS settings are not usable.
    """
    app = Flask(__name__)

    app.config.from_mapping(
        CAS_SERVER_URL="",
        CAS_VERSION=3,
        CAS_RESPONSE_FORMAT=None,
        CAS_SERVICE="/cas/callback",
        CAS_RENEW=False,
        CAS_GATEWAY=False,
        CAS_METHOD=None,
        CAS_PGT_URL=None,
        CAS_TIMEOUT=10.0,
        CAS_VERIFY_TLS=True,
        # Optional overrides: a validation callback and an httpx.Client
        CAS_CALLBACK=None,
        CAS_HTTP_CLIENT=None,
    )

    if config:
        app.config.from_mapping(config)

    from casauth.web import routes

    routes.init_app(app)

    return app


def create_ssl_context(
    cert_path: Path,
    key_path: Path,
) -> ssl.SSLContext:
    """Create an SSL context for HTTPS.

    Args:
        cert_path: Path to the certificate file (PEM format).
        key_path: Path to the private key file (PEM format).

    Returns:
        Configured SSL context.
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(str(cert_path), str(key_path))
    return context


def run_server(
    app_config: AppConfig | None = None,
    host: str | None = None,
    port: int | None = None,
) -> None:
    """Run the Flask development server.

    Args:
        app_config: Application configuration. Loads from file/env if not provided.
        host: Override host from config.
        port: Override port from config.
    """
    from casauth.core.config import load_config
    from casauth.core.logging import configure_logging

    if app_config is None:
        app_config = load_config()

    configure_logging(
        level=app_config.logging.level,
        trace_enabled=app_config.logging.trace_enabled,
        log_file=app_config.logging.log_file,
    )

    server_host = host or app_config.server.host
    server_port = port or app_config.server.port

    app = create_app(config_mapping(app_config))
    app.debug = app_config.server.debug

    ssl_context: ssl.SSLContext | None = None
    protocol = "http"
    if app_config.server.cert_path and app_config.server.key_path:
        ssl_context = create_ssl_context(app_config.server.cert_path, app_config.server.key_path)
        protocol = "https"

    print("Starting casauth demo server...")
    print(f"  URL: {protocol}://{server_host}:{server_port}")
    print(f"  CAS server: {app_config.cas.server_url} (protocol v{app_config.cas.version})")
    print("")

    app.run(
        host=server_host,
        port=server_port,
        ssl_context=ssl_context,
    )
