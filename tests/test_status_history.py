"""
Tests: status transitions and the append-only status history.

The status machine is permissive: any ProposalStatus value may follow any
other, and repeating the current status is still recorded.
"""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from proposalhub.core.exceptions import NotFoundError, ValidationError
from proposalhub.models import db as _db
from proposalhub.models.proposal import Proposal, ProposalStatusHistory
from proposalhub.services import proposal_service


def _chronological(proposal_id, tenant_id):
    return list(reversed(proposal_service.get_status_history(proposal_id, tenant_id)))


def test_draft_to_sent_records_single_entry(tenant, make_proposal):
    p = make_proposal(tenant)

    proposal, entry = proposal_service.update_status(p.id, tenant.id, "sent", tenant.id)

    assert proposal.status == "sent"
    history = proposal_service.get_status_history(p.id, tenant.id)
    assert len(history) == 1
    assert (history[0].previous_status, history[0].new_status) == ("draft", "sent")
    assert history[0].changed_by == tenant.id
    assert entry.id == history[0].id


def test_history_chain_has_no_gaps(tenant, make_proposal):
    p = make_proposal(tenant)
    for status in ("sent", "rejected", "sent", "accepted"):
        proposal_service.update_status(p.id, tenant.id, status, tenant.id)

    history = _chronological(p.id, tenant.id)

    assert history[0].previous_status == "draft"
    for earlier, later in zip(history, history[1:]):
        assert earlier.new_status == later.previous_status
    assert history[-1].new_status == _db.session.get(Proposal, p.id).status


def test_force_set_creation_starts_chain_without_previous_status(tenant, make_proposal):
    p = make_proposal(tenant, status="sent")
    proposal_service.update_status(p.id, tenant.id, "accepted", tenant.id)

    history = _chronological(p.id, tenant.id)

    assert history[0].previous_status is None
    assert history[0].new_status == "sent"
    assert (history[1].previous_status, history[1].new_status) == ("sent", "accepted")


def test_draft_may_jump_directly_to_accepted(tenant, make_proposal):
    p = make_proposal(tenant)

    proposal, _ = proposal_service.update_status(p.id, tenant.id, "accepted", tenant.id)

    assert proposal.status == "accepted"


def test_same_status_is_still_recorded(tenant, make_proposal):
    p = make_proposal(tenant)
    proposal_service.update_status(p.id, tenant.id, "sent", tenant.id)
    proposal_service.update_status(p.id, tenant.id, "sent", tenant.id, note="re-sent")

    history = proposal_service.get_status_history(p.id, tenant.id)

    assert len(history) == 2
    assert (history[0].previous_status, history[0].new_status) == ("sent", "sent")
    assert history[0].note == "re-sent"


def test_invalid_status_rejected_without_side_effects(tenant, make_proposal):
    p = make_proposal(tenant)

    with pytest.raises(ValidationError):
        proposal_service.update_status(p.id, tenant.id, "archived", tenant.id)

    assert _db.session.get(Proposal, p.id).status == "draft"
    assert ProposalStatusHistory.query.count() == 0


@pytest.mark.parametrize("value", [["sent"], {"status": "sent"}, 3, None])
def test_non_string_status_rejected(tenant, make_proposal, value):
    p = make_proposal(tenant)

    with pytest.raises(ValidationError):
        proposal_service.update_status(p.id, tenant.id, value, tenant.id)

    assert ProposalStatusHistory.query.count() == 0


def test_foreign_tenant_cannot_change_status(make_tenant, make_proposal):
    owner = make_tenant()
    intruder = make_tenant()
    p = make_proposal(owner)

    with pytest.raises(NotFoundError):
        proposal_service.update_status(p.id, intruder.id, "accepted", intruder.id)

    assert _db.session.get(Proposal, p.id).status == "draft"


def test_admin_override_skips_tenant_scope(make_tenant, make_proposal):
    owner = make_tenant()
    admin = make_tenant(role="admin")
    p = make_proposal(owner)

    proposal, entry = proposal_service.update_status(p.id, None, "rejected", admin.id)

    assert proposal.status == "rejected"
    assert entry.changed_by == admin.id


def test_failed_commit_leaves_neither_status_nor_history(tenant, make_proposal, monkeypatch):
    p = make_proposal(tenant)

    def _fail():
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(_db.session, "commit", _fail)
    with pytest.raises(SQLAlchemyError):
        proposal_service.update_status(p.id, tenant.id, "sent", tenant.id)
    monkeypatch.undo()

    _db.session.expire_all()
    assert _db.session.get(Proposal, p.id).status == "draft"
    assert ProposalStatusHistory.query.filter_by(proposal_id=p.id).count() == 0


def test_history_is_newest_first(tenant, make_proposal):
    p = make_proposal(tenant)
    proposal_service.update_status(p.id, tenant.id, "sent", tenant.id)
    proposal_service.update_status(p.id, tenant.id, "accepted", tenant.id)

    history = proposal_service.get_status_history(p.id, tenant.id)

    assert [h.new_status for h in history] == ["accepted", "sent"]
