"""CAS login, ticket validation and logout routes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from flask import Blueprint, Flask, current_app, redirect, request

from casauth.core.cas import (
    CASClient,
    CASClientConfig,
    LoginRedirectOptions,
    LoginRedirector,
    TicketValidator,
    ValidateServiceTicketOptions,
    ValidationResult,
)

if TYPE_CHECKING:
    from werkzeug.wrappers import Response as WerkzeugResponse

cas_bp = Blueprint("cas", __name__, url_prefix="/cas")

# Key of the CAS handlers in app.extensions
EXTENSION_KEY = "casauth"


@dataclass
class CASHandlers:
    """Handlers built once per application from its configuration."""

    client: CASClient
    login: LoginRedirector
    validate: TicketValidator


def default_callback(result: ValidationResult) -> tuple[dict[str, Any], int]:
    """Render the validation result as JSON; 401 if the ticket was refused."""
    body = {"authenticated": result.is_success, "result": result.to_dict()}
    return body, 200 if result.is_success else 401


def init_cas(app: Flask) -> None:
    """Build the CAS client from the app config and register the routes.

    Nothing is registered when CAS_SERVER_URL is not set.

    Raises:
        ConfigurationError: If the CAS settings are not usable.
    """
    if not app.config.get("CAS_SERVER_URL"):
        return

    client = CASClient(
        CASClientConfig(
            version=app.config["CAS_VERSION"],
            server_url=app.config["CAS_SERVER_URL"],
            callback=app.config.get("CAS_CALLBACK") or default_callback,
            http_client=app.config.get("CAS_HTTP_CLIENT"),
            timeout=app.config["CAS_TIMEOUT"],
            verify=app.config["CAS_VERIFY_TLS"],
        )
    )
    login = client.redirect_to_server(
        LoginRedirectOptions(
            service=app.config["CAS_SERVICE"],
            renew=app.config["CAS_RENEW"],
            gateway=app.config["CAS_GATEWAY"],
            method=app.config["CAS_METHOD"],
        )
    )
    validate = client.validate_service_ticket(
        ValidateServiceTicketOptions(
            renew=app.config["CAS_RENEW"],
            pgt_url=app.config["CAS_PGT_URL"],
            response_format=app.config["CAS_RESPONSE_FORMAT"],
        )
    )

    app.extensions[EXTENSION_KEY] = CASHandlers(client=client, login=login, validate=validate)
    app.register_blueprint(cas_bp)


def get_handlers() -> CASHandlers:
    """CAS handlers of the current application."""
    return current_app.extensions[EXTENSION_KEY]


@cas_bp.route("/login")
def login() -> WerkzeugResponse:
    """Send the visitor to the authority's login page."""
    return get_handlers().login(request)


@cas_bp.route("/callback")
def callback() -> WerkzeugResponse:
    """Validate the ticket the visitor came back with."""
    return get_handlers().validate(request)


@cas_bp.route("/logout")
def logout() -> WerkzeugResponse:
    """Send the visitor to the authority's logout page."""
    return redirect(get_handlers().client.logout_url(request.args.get("service")))
