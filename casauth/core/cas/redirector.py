"""Redirect of unauthenticated visitors to the authority's login page."""

from __future__ import annotations

import logging

from werkzeug.wrappers import Request, Response

from casauth.core.cas.options import CASClientConfig, LoginRedirectOptions
from casauth.core.cas.proxy import external_origin
from casauth.core.cas.urls import compose_login_url

logger = logging.getLogger(__name__)


class LoginRedirector:
    """Answers requests with a 302 to the authority's login endpoint.

    The options are checked once, when the redirector is built. Per request
    only the service URL is resolved against the visible origin.
    """

    def __init__(self, config: CASClientConfig, options: LoginRedirectOptions) -> None:
        self.config = config
        self.options = options

    def login_url(self, request: Request) -> str:
        """Login URL for the visitor of this request."""
        return compose_login_url(
            self.config.server_url,
            self.options.service,
            renew=self.options.renew,
            gateway=self.options.gateway,
            method=self.options.method,
            origin=external_origin(request),
        )

    def __call__(self, request: Request) -> Response:
        location = self.login_url(request)
        logger.debug("Redirecting to CAS login: %s", location)
        return Response(status=302, headers={"Location": location})
