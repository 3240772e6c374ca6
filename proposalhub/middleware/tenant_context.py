"""
Tenant Context Middleware — loads the Tenant row for JWT-authenticated requests.

Chain order:
  jwt_auth.py  →  tenant_context.py  →  route handler

Sets ``g.tenant`` when the token's tenant exists. Does not block requests
without a token; a token naming an unknown tenant leaves ``g.tenant`` unset
(login_required then answers 401). A deactivated tenant is refused with 403.
"""

import logging

from flask import g, request

from proposalhub.models import db
from proposalhub.models.tenant import Tenant
from proposalhub.utils.errors import E, api_error

logger = logging.getLogger(__name__)

TENANT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/api/v1/tracking/",
)


def init_tenant_context(app):
    """Register tenant context middleware as a before_request hook."""

    @app.before_request
    def _tenant_context():
        g.tenant = None

        if not request.path.startswith("/api/v1/"):
            return None
        if request.path.startswith(TENANT_SKIP_PREFIXES):
            return None

        tenant_id = getattr(g, "jwt_tenant_id", None)
        if tenant_id is None:
            return None

        tenant = db.session.get(Tenant, tenant_id)
        if tenant is None:
            logger.warning("JWT tenant_id %s not found in DB", tenant_id)
            return None

        if not tenant.is_active:
            logger.warning("JWT tenant_id %s is deactivated", tenant_id)
            return api_error(E.FORBIDDEN, "Tenant account is deactivated")

        g.tenant = tenant
        return None

    logger.info("Tenant context middleware installed")
