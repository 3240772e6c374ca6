"""
Usage Blueprint.

Endpoints:
    GET /api/v1/usage/check  — may the caller create another proposal?
"""

import logging

from flask import Blueprint, current_app, jsonify

from proposalhub.auth import current_tenant, login_required
from proposalhub.core.exceptions import UnavailableError
from proposalhub.services import usage_gate
from proposalhub.utils.errors import E, api_error

logger = logging.getLogger(__name__)

usage_bp = Blueprint("usage", __name__, url_prefix="/api/v1/usage")


@usage_bp.route("/check", methods=["GET"])
@login_required
def check_usage():
    tenant = current_tenant()
    try:
        status = usage_gate.check_can_create_proposal(
            tenant.id, plan_cache=current_app.extensions["plan_cache"],
        )
    except UnavailableError:
        return api_error(
            E.UNAVAILABLE, "Usage data unavailable",
            canCreateProposal=False, reason=usage_gate.REASON_USAGE_UNAVAILABLE,
        )
    return jsonify(status.to_dict()), 200
