"""
Admin Blueprint — cross-tenant reporting and overrides (role=admin).

Endpoints:
    GET   /api/v1/admin/subscription-metrics       revenue / churn overview
    GET   /api/v1/admin/proposals                  all tenants (?status=&limit=&offset=)
    PATCH /api/v1/admin/proposals/<id>/status      {status, note?}
"""

import logging

from flask import Blueprint, jsonify, request

from proposalhub.auth import admin_required, current_tenant
from proposalhub.blueprints import json_body, paginate_query
from proposalhub.services import analytics_service, proposal_service
from proposalhub.utils.errors import E, api_error

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/api/v1/admin")


@admin_bp.route("/subscription-metrics", methods=["GET"])
@admin_required
def subscription_metrics():
    return jsonify(analytics_service.subscription_metrics())


@admin_bp.route("/proposals", methods=["GET"])
@admin_required
def list_all_proposals():
    q = proposal_service.list_proposals(None, status=request.args.get("status"))
    items, total = paginate_query(q)
    return jsonify({"items": [p.to_dict() for p in items], "total": total})


@admin_bp.route("/proposals/<int:proposal_id>/status", methods=["PATCH"])
@admin_required
def override_status(proposal_id):
    admin = current_tenant()
    data = json_body()
    if not data.get("status"):
        return api_error(E.VALIDATION_REQUIRED, "Field 'status' is required.")
    proposal, entry = proposal_service.update_status(
        proposal_id, None, data["status"], admin.id, note=data.get("note"),
    )
    logger.info("Admin %s overrode status of proposal %s to %s", admin.id, proposal_id, entry.new_status,
                extra={"tenant_id": proposal.tenant_id, "proposal_id": proposal_id})
    return jsonify({"proposal": proposal.to_dict(), "history_entry": entry.to_dict()})
