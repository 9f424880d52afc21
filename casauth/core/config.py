"""Application configuration management.

Loads configuration from config.yaml files and environment variables.
Environment variables take precedence over config file settings.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from casauth.core.cas.options import (
    DEFAULT_TIMEOUT,
    CASClientConfig,
    LoginRedirectOptions,
    ValidateServiceTicketOptions,
    ValidationCallback,
)
from casauth.core.cas.protocol import ProtocolVersion

logger = logging.getLogger(__name__)

# Default config locations
DEFAULT_CONFIG_DIR = Path.home() / ".casauth"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"

# Environment variable prefix
ENV_PREFIX = "CASAUTH_"


@dataclass
class ServerSettings:
    """Demo web server settings."""

    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False
    cert_path: Path | None = None
    key_path: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServerSettings:
        """Create ServerSettings from a dictionary."""
        return cls(
            host=data.get("host", "127.0.0.1"),
            port=data.get("port", 8080),
            debug=data.get("debug", False),
            cert_path=Path(data["cert_path"]) if data.get("cert_path") else None,
            key_path=Path(data["key_path"]) if data.get("key_path") else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "cert_path": str(self.cert_path) if self.cert_path else None,
            "key_path": str(self.key_path) if self.key_path else None,
        }


@dataclass
class CASSettings:
    """Authority and protocol settings."""

    server_url: str = ""
    version: int = 3
    response_format: str | None = None
    service: str = "/cas/callback"
    renew: bool = False
    gateway: bool = False
    method: str | None = None
    pgt_url: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    verify_tls: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CASSettings:
        """Create CASSettings from a dictionary."""
        return cls(
            server_url=data.get("server_url", ""),
            version=data.get("version", 3),
            response_format=data.get("response_format"),
            service=data.get("service", "/cas/callback"),
            renew=data.get("renew", False),
            gateway=data.get("gateway", False),
            method=data.get("method"),
            pgt_url=data.get("pgt_url"),
            timeout=data.get("timeout", DEFAULT_TIMEOUT),
            verify_tls=data.get("verify_tls", True),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "server_url": self.server_url,
            "version": self.version,
            "response_format": self.response_format,
            "service": self.service,
            "renew": self.renew,
            "gateway": self.gateway,
            "method": self.method,
            "pgt_url": self.pgt_url,
            "timeout": self.timeout,
            "verify_tls": self.verify_tls,
        }

    def client_config(self, callback: ValidationCallback) -> CASClientConfig:
        """Build a validated client configuration.

        Raises:
            ConfigurationError: If the settings are not usable.
        """
        return CASClientConfig(
            version=ProtocolVersion.parse(self.version),
            server_url=self.server_url,
            callback=callback,
            timeout=self.timeout,
            verify=self.verify_tls,
        )

    def login_options(self) -> LoginRedirectOptions:
        """Build validated login redirect options."""
        return LoginRedirectOptions(
            service=self.service,
            renew=self.renew,
            gateway=self.gateway,
            method=self.method,
        )

    def validation_options(self) -> ValidateServiceTicketOptions:
        """Build validated ticket validation options."""
        return ValidateServiceTicketOptions(
            renew=self.renew,
            pgt_url=self.pgt_url,
            response_format=self.response_format,
        )


@dataclass
class LoggingSettings:
    """Protocol logging settings."""

    level: str = "INFO"
    trace_enabled: bool = False
    log_file: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LoggingSettings:
        """Create LoggingSettings from a dictionary."""
        return cls(
            level=data.get("level", "INFO"),
            trace_enabled=data.get("trace_enabled", False),
            log_file=data.get("log_file"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "level": self.level,
            "trace_enabled": self.trace_enabled,
            "log_file": self.log_file,
        }


@dataclass
class AppConfig:
    """Main application configuration."""

    server: ServerSettings = field(default_factory=ServerSettings)
    cas: CASSettings = field(default_factory=CASSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    config_path: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], config_path: Path | None = None) -> AppConfig:
        """Create AppConfig from a dictionary."""
        return cls(
            server=ServerSettings.from_dict(data.get("server") or {}),
            cas=CASSettings.from_dict(data.get("cas") or {}),
            logging=LoggingSettings.from_dict(data.get("logging") or {}),
            config_path=config_path,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "server": self.server.to_dict(),
            "cas": self.cas.to_dict(),
            "logging": self.logging.to_dict(),
        }

    def save(self, path: Path | None = None) -> None:
        """Save configuration to a YAML file.

        Args:
            path: Path to save to. Uses config_path or default if not specified.
        """
        save_path = path or self.config_path or DEFAULT_CONFIG_FILE
        save_path.parent.mkdir(parents=True, exist_ok=True)

        with open(save_path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False)


def _get_env_bool(key: str, default: bool) -> bool:
    """Get a boolean from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _get_env_int(key: str, default: int) -> int:
    """Get an integer from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_env_float(key: str, default: float) -> float:
    """Get a float from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load application configuration.

    Configuration is loaded in this order (later values override earlier):
    1. Default values
    2. config.yaml file (if exists)
    3. Environment variables

    Values are not validated here; building the client from them is what
    raises ConfigurationError.

    Args:
        config_path: Path to config file. Uses default if not specified.

    Returns:
        AppConfig with merged settings.
    """
    config = AppConfig()

    file_path = config_path or Path(os.environ.get(f"{ENV_PREFIX}CONFIG", DEFAULT_CONFIG_FILE))
    if file_path.exists():
        try:
            with open(file_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.warning("Ignoring invalid config file %s: %s", file_path, e)
        else:
            config = AppConfig.from_dict(data, config_path=file_path)

    # Server settings
    if os.environ.get(f"{ENV_PREFIX}HOST"):
        config.server.host = os.environ[f"{ENV_PREFIX}HOST"]

    if os.environ.get(f"{ENV_PREFIX}PORT"):
        config.server.port = _get_env_int(f"{ENV_PREFIX}PORT", config.server.port)

    config.server.debug = _get_env_bool(f"{ENV_PREFIX}DEBUG", config.server.debug)

    # CAS settings
    cas = config.cas

    if os.environ.get(f"{ENV_PREFIX}SERVER_URL"):
        cas.server_url = os.environ[f"{ENV_PREFIX}SERVER_URL"]

    if os.environ.get(f"{ENV_PREFIX}VERSION"):
        cas.version = _get_env_int(f"{ENV_PREFIX}VERSION", cas.version)

    if os.environ.get(f"{ENV_PREFIX}FORMAT"):
        cas.response_format = os.environ[f"{ENV_PREFIX}FORMAT"]

    if os.environ.get(f"{ENV_PREFIX}SERVICE"):
        cas.service = os.environ[f"{ENV_PREFIX}SERVICE"]

    cas.renew = _get_env_bool(f"{ENV_PREFIX}RENEW", cas.renew)
    cas.gateway = _get_env_bool(f"{ENV_PREFIX}GATEWAY", cas.gateway)
    cas.verify_tls = _get_env_bool(f"{ENV_PREFIX}VERIFY_TLS", cas.verify_tls)
    cas.timeout = _get_env_float(f"{ENV_PREFIX}TIMEOUT", cas.timeout)

    # Logging settings
    if os.environ.get(f"{ENV_PREFIX}LOG_LEVEL"):
        config.logging.level = os.environ[f"{ENV_PREFIX}LOG_LEVEL"]

    config.logging.trace_enabled = _get_env_bool(
        f"{ENV_PREFIX}LOG_TRACE", config.logging.trace_enabled
    )

    if os.environ.get(f"{ENV_PREFIX}LOG_FILE"):
        config.logging.log_file = os.environ[f"{ENV_PREFIX}LOG_FILE"]

    return config


def get_default_config_yaml() -> str:
    """Get the default config.yaml content as a string.

    Useful for generating example configuration files.
    """
    return """\
# casauth configuration file
# Environment variables override these settings (prefix: CASAUTH_)

cas:
  # Authority base URL; /login, /validate, ... are appended to it
  server_url: "https://cas.example.org/cas"

  # Protocol version: 1, 2 or 3
  version: 3

  # Validation response format for versions 2/3: XML or JSON (XML if unset)
  # response_format: JSON

  # Where the authority sends visitors back to (absolute URL or /path)
  service: "/cas/callback"

  # Force a fresh login (cannot be combined with gateway)
  renew: false

  # Never prompt for credentials (cannot be combined with renew)
  gateway: false

  # Login response method: GET, POST or HEAD
  # method: GET

  # Proxy callback URL sent with validations (versions 2/3)
  # pgt_url: https://app.example.org/cas/proxy-callback

  # Timeout in seconds for calls to the authority
  timeout: 10.0

  # Verify the authority's TLS certificate
  verify_tls: true

server:
  # Demo server bind address
  host: "127.0.0.1"

  # Demo server port
  port: 8080

  # Enable debug mode (not recommended for production)
  debug: false

  # Serve HTTPS with this certificate and key (PEM format)
  # cert_path: ~/.casauth/server.crt
  # key_path: ~/.casauth/server.key

logging:
  # ERROR, INFO, DEBUG or TRACE
  level: INFO

  # Allow TRACE to log tickets and response bodies
  trace_enabled: false

  # log_file: ~/.casauth/casauth.log
"""
