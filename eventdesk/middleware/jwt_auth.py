"""
JWT Auth Middleware — resolves the calling principal from a Bearer token.

For every /api/v1/ request:
  Authorization: Bearer <token>  →  g.principal (Principal loaded from the store)
  missing / invalid / expired    →  g.principal = None

The token only carries the principal id; role, permissions and the active
flag are re-read from the ``users`` collection on every request. An unknown
principal id resolves to ``None``. The middleware never rejects a request on
its own; blueprints use ``require_principal`` and the services re-check access.
"""

import functools
import logging

import jwt as pyjwt
from flask import g, request

from eventdesk.core.exceptions import NotFoundError
from eventdesk.services.jwt_service import decode_access_token
from eventdesk.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/static/",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.principal = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]  # Strip "Bearer "

        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            logger.info("Expired access token", extra={"path": path})
            return
        except pyjwt.InvalidTokenError:
            logger.info("Invalid access token", extra={"path": path})
            return

        services = app.extensions["eventdesk"]
        try:
            g.principal = services.users.get_principal(payload.get("sub"))
        except NotFoundError:
            logger.info("Token for unknown principal", extra={"principal_id": payload.get("sub")})


def require_principal(view):
    """Reject the request with 401 unless a principal was resolved."""

    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        if getattr(g, "principal", None) is None:
            return api_error(E.UNAUTHORIZED, "Authentication required")
        return view(*args, **kwargs)

    return wrapper
