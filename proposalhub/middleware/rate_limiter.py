"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter. The Limiter instance
is created in proposalhub/__init__.py with no default limits; this module
applies limits per route category.

    - tracking beacons:  TRACKING_RATE_LIMIT per remote IP (default 120/minute)
    - email-open pixel:  never limited
    - authenticated API: plan-based limit per tenant
    - health:            exempt

Plan-based API quotas:
    - trial:        100 requests/minute
    - starter:      300 requests/minute
    - professional: 600 requests/minute
    - enterprise:   5000 requests/minute

Usage:
    from proposalhub.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

from proposalhub.utils.helpers import get_client_ip

logger = logging.getLogger(__name__)

PLAN_RATE_LIMITS = {
    "trial": "100/minute",
    "starter": "300/minute",
    "professional": "600/minute",
    "enterprise": "5000/minute",
}

DEFAULT_PLAN_LIMIT = "100/minute"
DEFAULT_TRACKING_LIMIT = "120/minute"

AUTHENTICATED_BLUEPRINTS = ("usage", "proposals", "admin")

# Always answered with the PNG, never rate limited
UNLIMITED_ENDPOINTS = frozenset({"tracking.email_open"})


def _get_tenant_rate_limit_key():
    """Dynamic rate limit key: tenant id if authenticated, else remote IP."""
    tenant = getattr(g, "tenant", None)
    if tenant is not None:
        return f"tenant:{tenant.id}"
    return get_client_ip() or flask_request.remote_addr or "unknown"


def _get_tenant_plan_limit():
    """Return the rate limit string for the current tenant's plan."""
    tenant = getattr(g, "tenant", None)
    subscription = getattr(tenant, "subscription", None) if tenant is not None else None
    plan_key = subscription.plan_key if subscription is not None else "trial"
    return PLAN_RATE_LIMITS.get(plan_key, DEFAULT_PLAN_LIMIT)


def _is_unlimited_endpoint():
    return flask_request.endpoint in UNLIMITED_ENDPOINTS


def _client_ip_key():
    return get_client_ip() or "unknown"


def init_rate_limits(app, limiter):
    """Apply rate limits to API blueprints. Disabled in testing mode."""

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    tracking_limit = app.config.get("TRACKING_RATE_LIMIT") or DEFAULT_TRACKING_LIMIT
    bp = app.blueprints.get("tracking")
    if bp:
        limiter.limit(tracking_limit, key_func=_client_ip_key)(bp)
    limiter.request_filter(_is_unlimited_endpoint)

    for bp_name in AUTHENTICATED_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(_get_tenant_plan_limit, key_func=_get_tenant_rate_limit_key)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — tracking: %s per IP, tenant plans: %s",
        tracking_limit,
        ", ".join(f"{k}={v}" for k, v in PLAN_RATE_LIMITS.items()),
    )
