"""Web routes for casauth."""

from flask import Blueprint, Flask, current_app

main_bp = Blueprint("main", __name__)


@main_bp.route("/")
def index() -> dict[str, object]:
    """Describe the demo endpoints."""
    cas_enabled = bool(current_app.config.get("CAS_SERVER_URL"))
    return {
        "name": "casauth",
        "cas_enabled": cas_enabled,
        "endpoints": {
            "login": "/cas/login",
            "callback": "/cas/callback",
            "logout": "/cas/logout",
        } if cas_enabled else {},
    }


@main_bp.route("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


def init_app(app: Flask) -> None:
    """Register blueprints with the Flask app."""
    from casauth.web.routes.cas import init_cas

    app.register_blueprint(main_bp)
    init_cas(app)
