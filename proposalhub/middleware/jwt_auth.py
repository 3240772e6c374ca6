"""
JWT Auth Middleware — parses the Bearer token and sets g.jwt_*.

Never blocks: requests without a valid token simply carry no identity, and
``proposalhub.auth.login_required`` decides what to do about it. Public
tracking beacons ignore the header entirely.
"""

import logging

import jwt as pyjwt
from flask import g, request

from proposalhub.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/api/v1/tracking/",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.jwt_tenant_id = None
        g.jwt_role = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        if path.startswith(JWT_SKIP_PREFIXES):
            return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        try:
            payload = decode_access_token(auth_header[7:])
        except pyjwt.ExpiredSignatureError:
            logger.debug("Expired access token on %s", path)
            return
        except pyjwt.InvalidTokenError as exc:
            logger.info("Rejected access token on %s: %s", path, exc)
            return

        g.jwt_tenant_id = payload["sub"]
        g.jwt_role = payload.get("role") or "user"
