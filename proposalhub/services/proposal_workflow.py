"""
Proposal workflow — sequences the usage gate, proposal store and tracker.

    create_gated_proposal:  gate check → create → count usage
    send_proposal:          mint tracking token → status "sent" → email
    export_proposal:        render PDF → record PdfExport
    download_proposal:      render PDF → record tracked download (public path)

The gate fails closed: if usage cannot be read the proposal is refused with
USAGE_UNAVAILABLE. Usage is counted after the insert commits; a failure to
count is logged and does not undo the proposal.
"""

from __future__ import annotations

import logging

from email_validator import EmailNotValidError, validate_email
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from proposalhub.core.exceptions import (
    InvalidArgumentError,
    NotFoundError,
    UnavailableError,
    UsageLimitError,
)
from proposalhub.models import db
from proposalhub.models.proposal import PdfExport, Proposal, ProposalStatus
from proposalhub.models.tracking import DELIVERY_METHODS
from proposalhub.services import pdf_service, proposal_service, tracking_service, usage_gate
from proposalhub.services.email_service import send_proposal_email
from proposalhub.utils.helpers import commit_or_raise, truncate

logger = logging.getLogger(__name__)


def create_gated_proposal(tenant_id: int, payload: dict, plan_cache=None, actor_id: int | None = None):
    """Create a proposal only if the tenant's plan allows another one.

    Raises:
        UsageLimitError: gate refused (limit, inactive subscription, expired
            trial) or usage could not be read.
        ValidationError: payload invalid.
    """
    try:
        status = usage_gate.check_can_create_proposal(tenant_id, plan_cache=plan_cache)
    except UnavailableError:
        raise UsageLimitError(usage_gate.REASON_USAGE_UNAVAILABLE) from None

    if not status.can_create:
        logger.info("Proposal creation blocked tenant=%s reason=%s", tenant_id, status.reason,
                    extra={"tenant_id": tenant_id})
        raise UsageLimitError(status.reason, usage=status.to_dict())

    proposal = proposal_service.create_proposal(tenant_id, payload, actor_id=actor_id)

    try:
        usage_gate.record_proposal_usage(tenant_id)
    except (SQLAlchemyError, UnavailableError):
        logger.exception("Failed to record usage for proposal %s", proposal.id,
                         extra={"tenant_id": tenant_id, "proposal_id": proposal.id})
    return proposal


def _public_url(path: str) -> str:
    base = (current_app.config.get("PUBLIC_SITE_URL") or "").rstrip("/")
    return f"{base}{path}"


def _optional_text(value, field: str) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{field} must be a string", field=field)
    return value


def _recipient(value, fallback: str) -> str:
    value = _optional_text(value, "recipient_email")
    if value is None:
        return fallback
    try:
        return validate_email(value, check_deliverability=False).normalized
    except EmailNotValidError as exc:
        raise InvalidArgumentError(f"invalid recipient_email: {exc}", field="recipient_email") from None


def send_proposal(
    proposal_id: int,
    tenant_id: int,
    actor_id: int | None,
    recipient_email: str | None = None,
    delivery_method: str = "both",
    subject: str | None = None,
    message: str | None = None,
) -> dict:
    """Share a proposal with its client and mark it ``sent``.

    All inputs are checked before the token is minted, so a rejected request
    leaves neither a token nor a status change behind.

    Raises:
        InvalidArgumentError: non-string subject/message, bad recipient email
            or unknown delivery method.
    """
    proposal = proposal_service.get_proposal(proposal_id, tenant_id)
    recipient_email = _recipient(recipient_email, proposal.client_email)
    subject = truncate(_optional_text(subject, "subject"), 255) or f"Proposal: {proposal.title}"
    message = _optional_text(message, "message")
    if not isinstance(delivery_method, str) or delivery_method not in DELIVERY_METHODS:
        raise InvalidArgumentError(
            f"delivery_method must be one of: {', '.join(sorted(DELIVERY_METHODS))}",
            field="delivery_method",
        )

    tracking = tracking_service.create_tracking_token(
        proposal, recipient_email=recipient_email, delivery_method=delivery_method, subject=subject,
    )
    proposal, _ = proposal_service.update_status(
        proposal.id, tenant_id, ProposalStatus.SENT.value, actor_id,
        note=f"Sent to {recipient_email}",
    )

    view_url = _public_url(f"/proposals/{proposal.id}/view?tracking={tracking.tracking_id}")
    pixel_url = _public_url(f"/api/v1/tracking/email-open/{tracking.tracking_id}")
    email_sent = send_proposal_email(
        proposal,
        recipient_email=recipient_email,
        subject=subject,
        message=message,
        view_url=view_url,
        pixel_url=pixel_url,
    )
    return {
        "tracking_id": tracking.tracking_id,
        "view_url": view_url,
        "pixel_url": pixel_url,
        "delivery_method": delivery_method,
        "email_sent": email_sent,
    }


def export_proposal(proposal_id: int, tenant_id: int, template: str | None = None):
    """Render an owned proposal and record the export.

    Returns:
        (pdf_bytes, filename, PdfExport)
    """
    proposal = proposal_service.get_proposal(proposal_id, tenant_id)
    if not isinstance(template, str) or template not in pdf_service.TEMPLATES:
        template = pdf_service.DEFAULT_TEMPLATE
    data = pdf_service.render_proposal_pdf(proposal, template)

    export = PdfExport(
        proposal_id=proposal.id,
        tenant_id=tenant_id,
        file_size=len(data),
        template_used=template,
    )
    db.session.add(export)
    commit_or_raise("record pdf export")
    return data, pdf_service.safe_pdf_filename(proposal.title), export


def download_proposal(proposal_id: int, tracking_id: str | None, *, tenant_id: int | None = None,
                      user_agent=None, ip_address=None):
    """Render a proposal for a recipient download.

    Access is granted by a tracking token issued for this proposal, or by the
    owning tenant. Only token-based downloads are tracked.

    Returns:
        (pdf_bytes, filename)

    Raises:
        NotFoundError: no such proposal, or no valid token/ownership.
    """
    tracking = tracking_service.get_tracking(tracking_id)
    if tracking is not None and tracking.proposal_id == proposal_id:
        proposal = db.session.get(Proposal, proposal_id)
        if proposal is None:
            raise NotFoundError(resource="Proposal", resource_id=proposal_id)
        try:
            tracking_service.record_download(
                tracking.tracking_id, proposal_id, user_agent=user_agent, ip_address=ip_address,
            )
        except (SQLAlchemyError, UnavailableError):
            logger.exception("Download tracking failed for proposal %s", proposal_id,
                             extra={"proposal_id": proposal_id, "tracking_id": tracking_id})
    elif tenant_id is not None:
        proposal = proposal_service.get_proposal(proposal_id, tenant_id)
    else:
        raise NotFoundError(resource="Proposal", resource_id=proposal_id)

    data = pdf_service.render_proposal_pdf(proposal)
    return data, pdf_service.safe_pdf_filename(proposal.title)
