"""
Proposal Blueprint — tenant-scoped proposal CRUD, status, sharing and export.

Endpoints:
    POST   /api/v1/proposals                       create (usage-gated)
    GET    /api/v1/proposals                       list (?status=&limit=&offset=)
    GET    /api/v1/proposals/<id>                  fetch
    PUT    /api/v1/proposals/<id>                  partial update
    DELETE /api/v1/proposals/<id>                  delete
    PATCH  /api/v1/proposals/<id>/status           {status, note?}
    GET    /api/v1/proposals/<id>/status-history   newest first
    POST   /api/v1/proposals/<id>/send             {recipient_email?, delivery_method?, subject?, message?}
    POST   /api/v1/proposals/<id>/export           {template?} → PDF attachment
    GET    /api/v1/proposals/<id>/analytics        engagement overview
    GET    /api/v1/proposals/<id>/download         ?tracking=<id> → PDF (public with a token)

Layer contract:
    - Blueprint: parse input, call services, shape JSON.
    - Service exceptions (NotFound, Validation, UsageLimit, ...) are turned
      into responses by the app-level error handlers.
"""

import logging

from flask import Blueprint, Response, current_app, jsonify, request

from proposalhub.auth import current_tenant, login_required
from proposalhub.blueprints import json_body, paginate_query
from proposalhub.services import analytics_service, proposal_service, proposal_workflow
from proposalhub.utils.errors import E, api_error
from proposalhub.utils.helpers import get_client_ip

logger = logging.getLogger(__name__)

proposal_bp = Blueprint("proposals", __name__, url_prefix="/api/v1/proposals")


def _pdf_response(data: bytes, filename: str) -> Response:
    return Response(
        data,
        mimetype="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Content-Length": str(len(data)),
        },
    )


# ── CRUD ─────────────────────────────────────────────────────────────────────


@proposal_bp.route("", methods=["POST"])
@login_required
def create_proposal():
    tenant = current_tenant()
    proposal = proposal_workflow.create_gated_proposal(
        tenant.id,
        json_body(),
        plan_cache=current_app.extensions["plan_cache"],
        actor_id=tenant.id,
    )
    return jsonify(proposal.to_dict()), 201


@proposal_bp.route("", methods=["GET"])
@login_required
def list_proposals():
    q = proposal_service.list_proposals(current_tenant().id, status=request.args.get("status"))
    items, total = paginate_query(q)
    return jsonify({"items": [p.to_dict() for p in items], "total": total})


@proposal_bp.route("/<int:proposal_id>", methods=["GET"])
@login_required
def get_proposal(proposal_id):
    proposal = proposal_service.get_proposal(proposal_id, current_tenant().id)
    return jsonify(proposal.to_dict())


@proposal_bp.route("/<int:proposal_id>", methods=["PUT"])
@login_required
def update_proposal(proposal_id):
    tenant = current_tenant()
    proposal = proposal_service.update_proposal(proposal_id, tenant.id, json_body(), actor_id=tenant.id)
    return jsonify(proposal.to_dict())


@proposal_bp.route("/<int:proposal_id>", methods=["DELETE"])
@login_required
def delete_proposal(proposal_id):
    proposal_service.delete_proposal(proposal_id, current_tenant().id)
    return jsonify({"message": "Proposal deleted"}), 200


# ── Status ───────────────────────────────────────────────────────────────────


@proposal_bp.route("/<int:proposal_id>/status", methods=["PATCH"])
@login_required
def update_status(proposal_id):
    tenant = current_tenant()
    data = json_body()
    if not data.get("status"):
        return api_error(E.VALIDATION_REQUIRED, "Field 'status' is required.")
    proposal, entry = proposal_service.update_status(
        proposal_id, tenant.id, data["status"], tenant.id, note=data.get("note"),
    )
    return jsonify({"proposal": proposal.to_dict(), "history_entry": entry.to_dict()})


@proposal_bp.route("/<int:proposal_id>/status-history", methods=["GET"])
@login_required
def status_history(proposal_id):
    rows = proposal_service.get_status_history(proposal_id, current_tenant().id)
    return jsonify([r.to_dict() for r in rows])


# ── Sharing, export, analytics ───────────────────────────────────────────────


@proposal_bp.route("/<int:proposal_id>/send", methods=["POST"])
@login_required
def send_proposal(proposal_id):
    tenant = current_tenant()
    data = json_body()
    result = proposal_workflow.send_proposal(
        proposal_id,
        tenant.id,
        tenant.id,
        recipient_email=data.get("recipient_email"),
        delivery_method=data.get("delivery_method") or "both",
        subject=data.get("subject"),
        message=data.get("message"),
    )
    return jsonify({
        "success": True,
        "trackingId": result["tracking_id"],
        "viewUrl": result["view_url"],
        "deliveryMethod": result["delivery_method"],
        "emailSent": result["email_sent"],
    })


@proposal_bp.route("/<int:proposal_id>/export", methods=["POST"])
@login_required
def export_pdf(proposal_id):
    data = json_body()
    pdf, filename, _ = proposal_workflow.export_proposal(
        proposal_id, current_tenant().id, template=data.get("template"),
    )
    return _pdf_response(pdf, filename)


@proposal_bp.route("/<int:proposal_id>/analytics", methods=["GET"])
@login_required
def analytics(proposal_id):
    return jsonify(analytics_service.proposal_analytics(proposal_id, current_tenant().id))


@proposal_bp.route("/<int:proposal_id>/download", methods=["GET"])
def download_pdf(proposal_id):
    """Recipient download. Authorized by ?tracking=<id> or an owner's Bearer token."""
    tenant = current_tenant()
    pdf, filename = proposal_workflow.download_proposal(
        proposal_id,
        request.args.get("tracking"),
        tenant_id=tenant.id if tenant is not None else None,
        user_agent=request.headers.get("User-Agent"),
        ip_address=get_client_ip(),
    )
    return _pdf_response(pdf, filename)
