"""JSON error responses shared by blueprints, middleware and error handlers.

Every error body carries ``error`` (human text) and ``code`` (one of ``E``).
Validation failures add ``details``; usage-gate refusals add ``reason``,
``upgrade_url`` and ``usage`` as top-level keys.

    from proposalhub.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Proposal not found")
    return api_error(E.UNAVAILABLE, "Usage data unavailable", canCreateProposal=False)
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes. ``ERR_`` codes are generic; ``USAGE_LIMIT`` is the upgrade prompt."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    INVALID_ARGUMENT = "ERR_INVALID_ARGUMENT"
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"
    USAGE_LIMIT = "USAGE_LIMIT"
    NOT_FOUND = "ERR_NOT_FOUND"
    INTERNAL = "ERR_INTERNAL"
    UNAVAILABLE = "ERR_UNAVAILABLE"


HTTP_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.INVALID_ARGUMENT: 400,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.USAGE_LIMIT: 403,
    E.NOT_FOUND: 404,
    E.INTERNAL: 500,
    E.UNAVAILABLE: 503,
}


def error_body(code: str, message: str, details: dict | None = None, **extra) -> dict:
    body = {"error": message, "code": code}
    if details:
        body["details"] = details
    body.update(extra)
    return body


def api_error(code: str, message: str, *, status: int | None = None,
              details: dict | None = None, **extra):
    """``(Response, status)`` for ``code``; status defaults from HTTP_STATUS, else 400."""
    return jsonify(error_body(code, message, details, **extra)), status or HTTP_STATUS.get(code, 400)
