"""
JWT Auth Middleware: parses the bearer token and sets ``g.actor_id``.

Every ``/api/v1/`` route except the skip list requires a valid access token.
Services never read ``g``: blueprints pass ``g.actor_id`` into them
explicitly.
"""

import logging

import jwt as pyjwt
from flask import g, request

from daily_reports.services.jwt_service import actor_id_from_payload, decode_access_token
from daily_reports.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.actor_id = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return None
        if request.method == "OPTIONS":
            return None
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return None

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return api_error(E.UNAUTHORIZED, "Authentication required")

        token = auth_header[7:]
        try:
            payload = decode_access_token(token)
            g.actor_id = actor_id_from_payload(payload)
        except pyjwt.ExpiredSignatureError:
            return api_error(E.UNAUTHORIZED, "Token has expired")
        except pyjwt.InvalidTokenError as exc:
            logger.info("Rejected bearer token: %s", exc, extra={"path": path})
            return api_error(E.UNAUTHORIZED, "Invalid token")
        return None
