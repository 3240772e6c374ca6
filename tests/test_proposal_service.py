"""
Tests: proposal store — validation, CRUD, ownership scoping, counters.
"""

import pytest

from proposalhub.core.exceptions import NotFoundError, ValidationError
from proposalhub.models import db as _db
from proposalhub.models.proposal import Proposal, ProposalStatusHistory
from proposalhub.services import proposal_service
from proposalhub.services.proposal_validation import validate_proposal_payload


# ── Validation ───────────────────────────────────────────────────────────────


def test_missing_required_fields_are_all_reported():
    with pytest.raises(ValidationError) as exc:
        validate_proposal_payload({"title": "Only a title"})

    details = exc.value.details
    for field in ("service_type", "client_name", "client_email", "facility_size", "service_frequency"):
        assert details[field] == "required"
    assert "title" not in details


@pytest.mark.parametrize("field,value", [
    ("service_type", "pressure-washing"),
    ("service_frequency", "hourly"),
    ("facility_size", 0),
    ("facility_size", "big"),
    ("facility_size", True),
    ("client_email", "not-an-email"),
    ("status", "archived"),
    ("status", ["sent"]),
    ("service_type", ["commercial"]),
    ("service_frequency", {"every": "week"}),
    ("pricing_data", [1, 2]),
])
def test_invalid_field_values_rejected(proposal_payload, field, value):
    proposal_payload[field] = value
    with pytest.raises(ValidationError) as exc:
        validate_proposal_payload(proposal_payload)
    assert field in exc.value.details


def test_partial_validation_only_checks_supplied_fields():
    assert validate_proposal_payload({"title": "  Renamed  "}, partial=True) == {"title": "Renamed"}


def test_unknown_keys_are_dropped(proposal_payload):
    proposal_payload["view_count"] = 999
    proposal_payload["tenant_id"] = 12345
    cleaned = validate_proposal_payload(proposal_payload)
    assert "view_count" not in cleaned
    assert "tenant_id" not in cleaned


# ── Create ───────────────────────────────────────────────────────────────────


def test_create_starts_as_draft_with_zero_counters(tenant, make_proposal):
    p = make_proposal(tenant)

    assert p.id is not None
    assert p.tenant_id == tenant.id
    assert p.status == "draft"
    assert p.view_count == 0
    assert p.download_count == 0
    assert p.service_data == {"rooms": 14}
    assert ProposalStatusHistory.query.filter_by(proposal_id=p.id).count() == 0


def test_create_ignores_client_supplied_counters(tenant, make_proposal):
    p = make_proposal(tenant, view_count=50, download_count=7)
    assert p.view_count == 0
    assert p.download_count == 0


def test_force_set_status_on_create_records_history(tenant, make_proposal):
    p = make_proposal(tenant, status="sent")

    history = proposal_service.get_status_history(p.id, tenant.id)
    assert p.status == "sent"
    assert len(history) == 1
    assert history[0].previous_status is None
    assert history[0].new_status == "sent"


# ── Read / ownership ─────────────────────────────────────────────────────────


def test_get_proposal_scoped_to_owner(make_tenant, make_proposal):
    owner = make_tenant(plan_key="starter")
    other = make_tenant(plan_key="starter")
    p = make_proposal(owner)

    assert proposal_service.get_proposal(p.id, owner.id).id == p.id
    with pytest.raises(NotFoundError):
        proposal_service.get_proposal(p.id, other.id)


def test_missing_and_foreign_proposals_are_indistinguishable(make_tenant, make_proposal):
    owner = make_tenant()
    other = make_tenant()
    p = make_proposal(owner)

    with pytest.raises(NotFoundError) as foreign:
        proposal_service.get_proposal(p.id, other.id)
    with pytest.raises(NotFoundError) as missing:
        proposal_service.get_proposal(p.id + 1000, other.id)
    assert foreign.value.resource == missing.value.resource == "Proposal"


def test_list_proposals_filters_by_tenant_and_status(make_tenant, make_proposal):
    a = make_tenant()
    b = make_tenant()
    make_proposal(a, title="A1")
    make_proposal(a, title="A2", status="sent")
    make_proposal(b, title="B1")

    assert {p.title for p in proposal_service.list_proposals(a.id)} == {"A1", "A2"}
    assert [p.title for p in proposal_service.list_proposals(a.id, status="sent")] == ["A2"]
    assert proposal_service.list_proposals(None).count() == 3


def test_list_proposals_rejects_unknown_status_filter(tenant):
    with pytest.raises(ValidationError):
        proposal_service.list_proposals(tenant.id, status="lost")


# ── Update / delete ──────────────────────────────────────────────────────────


def test_update_proposal_partial_fields(tenant, make_proposal):
    p = make_proposal(tenant)

    updated = proposal_service.update_proposal(p.id, tenant.id, {"title": "Bi-weekly clean",
                                                                  "service_frequency": "bi-weekly"})

    assert updated.title == "Bi-weekly clean"
    assert updated.service_frequency == "bi-weekly"
    assert updated.client_name == "Dana Client"


def test_update_proposal_routes_status_through_history(tenant, make_proposal):
    p = make_proposal(tenant)

    proposal_service.update_proposal(p.id, tenant.id, {"status": "sent"}, actor_id=tenant.id)

    history = proposal_service.get_status_history(p.id, tenant.id)
    assert [(h.previous_status, h.new_status) for h in history] == [("draft", "sent")]


def test_delete_proposal_removes_row_and_history(tenant, make_proposal):
    p = make_proposal(tenant, status="sent")
    pid = p.id

    proposal_service.delete_proposal(pid, tenant.id)

    assert _db.session.get(Proposal, pid) is None
    assert ProposalStatusHistory.query.filter_by(proposal_id=pid).count() == 0


def test_delete_foreign_proposal_not_found(make_tenant, make_proposal):
    owner = make_tenant()
    other = make_tenant()
    p = make_proposal(owner)

    with pytest.raises(NotFoundError):
        proposal_service.delete_proposal(p.id, other.id)
    assert Proposal.query.filter_by(id=p.id).count() == 1


# ── Counters ─────────────────────────────────────────────────────────────────


def test_increment_download_count(tenant, make_proposal):
    p = make_proposal(tenant)

    proposal_service.increment_download_count(p.id)
    assert proposal_service.increment_download_count(p.id) == 2


def test_increment_view_count_stamps_last_viewed(tenant, make_proposal):
    p = make_proposal(tenant)

    assert proposal_service.increment_view_count(p.id) == 1
    assert p.last_viewed_at is not None


def test_increment_on_missing_proposal_is_noop():
    assert proposal_service.increment_download_count(424242) is None
    assert proposal_service.increment_view_count(424242) is None
