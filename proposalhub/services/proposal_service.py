"""
Proposal store — CRUD and status transitions for tenant-owned proposals.

Design decisions:
    - Every lookup is tenant-scoped (get_scoped); a proposal owned by another
      tenant is reported exactly like a missing one.
    - The status machine is permissive: a new status is validated against
      ProposalStatus only, so draft → accepted is allowed. Re-applying the
      current status is still a recorded transition.
    - update_status writes the status and its ProposalStatusHistory row in a
      single commit; on failure both are rolled back.
    - Creation does not consult the usage gate; sequencing is the caller's job
      (see proposal_workflow.create_gated_proposal).
    - View/download counters are read-modify-write and may lose increments
      under concurrency.
"""

from __future__ import annotations

import logging

from proposalhub.core.exceptions import NotFoundError
from proposalhub.models import db
from proposalhub.models.proposal import Proposal, ProposalStatus, ProposalStatusHistory
from proposalhub.services.helpers.scoped_queries import get_scoped
from proposalhub.services.proposal_validation import validate_proposal_payload, validate_status
from proposalhub.utils.helpers import commit_or_raise, utcnow

logger = logging.getLogger(__name__)


# ── CRUD ─────────────────────────────────────────────────────────────────────


def create_proposal(tenant_id: int, payload: dict, actor_id: int | None = None) -> Proposal:
    """Validate ``payload`` and insert a new proposal for ``tenant_id``.

    The proposal starts in ``draft`` unless the payload force-sets another
    valid status, in which case a history row with no previous status is
    written alongside it.
    """
    data = validate_proposal_payload(payload)
    status = data.pop("status", None) or ProposalStatus.DRAFT.value

    proposal = Proposal(
        tenant_id=tenant_id,
        status=status,
        view_count=0,
        download_count=0,
        service_data=data.pop("service_data", None) or {},
        pricing_data=data.pop("pricing_data", None) or {},
        **data,
    )
    db.session.add(proposal)

    if status != ProposalStatus.DRAFT.value:
        db.session.flush()
        db.session.add(ProposalStatusHistory(
            proposal_id=proposal.id,
            previous_status=None,
            new_status=status,
            changed_by=actor_id if actor_id is not None else tenant_id,
            note="Status set on creation",
        ))

    commit_or_raise("create proposal")
    logger.info(
        "Proposal created id=%s tenant=%s status=%s", proposal.id, tenant_id, status,
        extra={"tenant_id": tenant_id, "proposal_id": proposal.id},
    )
    return proposal


def get_proposal(proposal_id: int, tenant_id: int) -> Proposal:
    """Ownership-scoped fetch. Raises NotFoundError for missing or foreign rows."""
    return get_scoped(Proposal, proposal_id, tenant_id=tenant_id)


def list_proposals(tenant_id: int | None, status: str | None = None):
    """Query of proposals, newest first. ``tenant_id=None`` spans all tenants (admin)."""
    q = Proposal.scoped(tenant_id)
    if status:
        q = q.filter(Proposal.status == validate_status(status))
    return q.order_by(Proposal.created_at.desc(), Proposal.id.desc())


def update_proposal(proposal_id: int, tenant_id: int, payload: dict, actor_id: int | None = None) -> Proposal:
    """Partially update a proposal. A ``status`` key goes through update_status."""
    proposal = get_proposal(proposal_id, tenant_id)
    data = validate_proposal_payload(payload, partial=True)
    new_status = data.pop("status", None)

    for field, value in data.items():
        setattr(proposal, field, value)
    if data:
        commit_or_raise("update proposal")

    if new_status is not None:
        proposal, _ = update_status(proposal_id, tenant_id, new_status, actor_id)
    return proposal


def delete_proposal(proposal_id: int, tenant_id: int) -> None:
    proposal = get_proposal(proposal_id, tenant_id)
    db.session.delete(proposal)
    commit_or_raise("delete proposal")
    logger.info(
        "Proposal deleted id=%s tenant=%s", proposal_id, tenant_id,
        extra={"tenant_id": tenant_id, "proposal_id": proposal_id},
    )


# ── Status transitions ───────────────────────────────────────────────────────


def update_status(
    proposal_id: int,
    tenant_id: int | None,
    new_status: str,
    actor_id: int | None,
    note: str | None = None,
) -> tuple[Proposal, ProposalStatusHistory]:
    """Set a proposal's status and append the matching history row atomically.

    ``tenant_id=None`` skips the ownership scope and is reserved for admin
    overrides; tenant callers always pass their own id.

    Returns:
        (proposal, history_entry)

    Raises:
        ValidationError: ``new_status`` is not a ProposalStatus value.
        NotFoundError: proposal missing or owned by another tenant.
    """
    new_status = validate_status(new_status)
    if tenant_id is None:
        proposal = db.session.get(Proposal, proposal_id)
        if proposal is None:
            raise NotFoundError(resource="Proposal", resource_id=proposal_id)
    else:
        proposal = get_proposal(proposal_id, tenant_id)

    previous = proposal.status
    entry = ProposalStatusHistory(
        proposal_id=proposal.id,
        previous_status=previous,
        new_status=new_status,
        changed_by=actor_id,
        note=note,
    )
    proposal.status = new_status
    db.session.add(entry)
    commit_or_raise("update proposal status")

    logger.info(
        "Proposal status %s → %s id=%s actor=%s", previous, new_status, proposal.id, actor_id,
        extra={"tenant_id": proposal.tenant_id, "proposal_id": proposal.id},
    )
    return proposal, entry


def get_status_history(proposal_id: int, tenant_id: int | None) -> list[ProposalStatusHistory]:
    """History rows for a proposal, newest first."""
    if tenant_id is not None:
        get_proposal(proposal_id, tenant_id)
    return (
        ProposalStatusHistory.query
        .filter_by(proposal_id=proposal_id)
        .order_by(ProposalStatusHistory.changed_at.desc(), ProposalStatusHistory.id.desc())
        .all()
    )


# ── Engagement counters ──────────────────────────────────────────────────────


def increment_download_count(proposal_id: int) -> int | None:
    """Best-effort +1 on the proposal's download counter. Returns the new value."""
    proposal = db.session.get(Proposal, proposal_id)
    if proposal is None:
        logger.warning("Download counter: proposal %s not found", proposal_id)
        return None
    proposal.download_count = (proposal.download_count or 0) + 1
    commit_or_raise("increment download count")
    return proposal.download_count


def increment_view_count(proposal_id: int, now=None) -> int | None:
    """Best-effort +1 on the proposal's view counter; stamps last_viewed_at."""
    proposal = db.session.get(Proposal, proposal_id)
    if proposal is None:
        logger.warning("View counter: proposal %s not found", proposal_id)
        return None
    proposal.view_count = (proposal.view_count or 0) + 1
    proposal.last_viewed_at = now or utcnow()
    commit_or_raise("increment view count")
    return proposal.view_count
