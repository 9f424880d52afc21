"""Server CLI commands."""

from pathlib import Path

import click


@click.command()
@click.option(
    "--host",
    "-h",
    default=None,
    help="Host to bind to (default: from config or 127.0.0.1)",
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="Port to bind to (default: from config or 8080)",
)
@click.option(
    "--server-url",
    "-s",
    default=None,
    help="CAS server base URL (default: from config)",
)
@click.option(
    "--cert",
    type=click.Path(exists=True, path_type=Path),  # type: ignore[type-var]
    help="Path to TLS certificate (PEM format)",
)
@click.option(
    "--key",
    type=click.Path(exists=True, path_type=Path),  # type: ignore[type-var]
    help="Path to TLS private key (PEM format)",
)
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug mode",
)
def serve(
    host: str | None,
    port: int | None,
    server_url: str | None,
    cert: Path | None,
    key: Path | None,
    debug: bool,
) -> None:
    """Start the casauth demo web server.

    The server mounts /cas/login, /cas/callback and /cas/logout against the
    configured CAS server. It runs plain HTTP unless --cert and --key are
    given or configured in config.yaml.

    Examples:

        # Start against a CAS server
        casauth serve --server-url https://cas.example.org/cas

        # Start on custom port
        casauth serve --port 9090

        # Serve HTTPS
        casauth serve --cert /path/to/cert.pem --key /path/to/key.pem
    """
    from casauth.app import run_server
    from casauth.core.cas import CASError
    from casauth.core.config import load_config

    # Load config
    config = load_config()

    # Apply CLI overrides
    if server_url:
        config.cas.server_url = server_url

    if cert:
        config.server.cert_path = cert

    if key:
        config.server.key_path = key

    if debug:
        config.server.debug = True

    # Validate cert/key pair
    if cert and not key:
        raise click.ClickException("--key is required when --cert is provided")
    if key and not cert:
        raise click.ClickException("--cert is required when --key is provided")

    if not config.cas.server_url:
        raise click.ClickException("No CAS server URL configured (use --server-url)")

    try:
        run_server(app_config=config, host=host, port=port)
    except CASError as e:
        raise click.ClickException(str(e)) from None
