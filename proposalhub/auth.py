"""
Authorization decorators for tenant and admin endpoints.

Identity comes from the Bearer token parsed by middleware.jwt_auth and the
Tenant row loaded by middleware.tenant_context into ``g.tenant``.

    login_required   401 unless g.tenant is set
    admin_required   401 without a tenant, 403 unless the tenant is an admin

Usage:
    @proposal_bp.route("", methods=["GET"])
    @login_required
    def list_proposals(): ...
"""

import functools
import logging

from flask import g, request

from proposalhub.core.exceptions import ForbiddenError, UnauthorizedError

logger = logging.getLogger(__name__)


def current_tenant():
    """The authenticated Tenant for this request, or None."""
    return getattr(g, "tenant", None)


def _is_admin(tenant) -> bool:
    return getattr(g, "jwt_role", None) == "admin" or tenant.is_admin


def login_required(f):
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if current_tenant() is None:
            raise UnauthorizedError("Authentication required. Provide a Bearer token.")
        return f(*args, **kwargs)

    return decorated


def admin_required(f):
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        tenant = current_tenant()
        if tenant is None:
            raise UnauthorizedError("Authentication required. Provide a Bearer token.")
        if not _is_admin(tenant):
            logger.warning("Access denied: tenant %s tried admin endpoint %s", tenant.id, request.path)
            raise ForbiddenError("Admin access required")
        return f(*args, **kwargs)

    return decorated
