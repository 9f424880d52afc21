"""CAS protocol client implementation."""

from casauth.core.cas.client import CASClient
from casauth.core.cas.decoders import (
    decode_json,
    decode_service_response,
    decode_v1,
    decode_validation_response,
    decode_xml,
    encode_json,
    encode_xml,
)
from casauth.core.cas.errors import (
    CASError,
    ConfigurationError,
    DecodeError,
    InvalidOptionError,
    InvalidProtocolVersionError,
    InvalidServerURLError,
    TransportError,
)
from casauth.core.cas.options import (
    CASClientConfig,
    LoginRedirectOptions,
    ValidateServiceTicketOptions,
    ValidationCallback,
)
from casauth.core.cas.protocol import (
    CAS_NS,
    LoginMethod,
    ProtocolVersion,
    ResponseFormat,
    is_well_formed_ticket,
    validation_path,
)
from casauth.core.cas.proxy import external_origin, external_url
from casauth.core.cas.redirector import LoginRedirector
from casauth.core.cas.response import (
    Attributes,
    AuthenticationFailure,
    AuthenticationSuccess,
    ExtensionElement,
    NamedAttribute,
    ServiceResponse,
    UserAttributes,
    V1Result,
    ValidationResult,
)
from casauth.core.cas.urls import (
    compose_login_url,
    compose_logout_url,
    compose_validation_url,
)
from casauth.core.cas.validator import (
    TicketValidator,
    ValidationOutcome,
    ValidationState,
)

__all__ = [
    # Client
    "CASClient",
    "CASClientConfig",
    "LoginRedirectOptions",
    "LoginRedirector",
    "TicketValidator",
    "ValidateServiceTicketOptions",
    "ValidationCallback",
    "ValidationOutcome",
    "ValidationState",
    # Protocol
    "CAS_NS",
    "LoginMethod",
    "ProtocolVersion",
    "ResponseFormat",
    "is_well_formed_ticket",
    "validation_path",
    # Responses
    "Attributes",
    "AuthenticationFailure",
    "AuthenticationSuccess",
    "ExtensionElement",
    "NamedAttribute",
    "ServiceResponse",
    "UserAttributes",
    "V1Result",
    "ValidationResult",
    # Codecs
    "decode_json",
    "decode_service_response",
    "decode_v1",
    "decode_validation_response",
    "decode_xml",
    "encode_json",
    "encode_xml",
    # URLs
    "compose_login_url",
    "compose_logout_url",
    "compose_validation_url",
    "external_origin",
    "external_url",
    # Errors
    "CASError",
    "ConfigurationError",
    "DecodeError",
    "InvalidOptionError",
    "InvalidProtocolVersionError",
    "InvalidServerURLError",
    "TransportError",
]
