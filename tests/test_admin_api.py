"""
Tests: /api/v1/admin — subscription metrics, cross-tenant listing, overrides.
"""

from datetime import timedelta

import pytest

from proposalhub.models import db as _db
from proposalhub.models.billing import BillingRecord
from proposalhub.utils.helpers import utcnow


@pytest.fixture()
def admin(make_tenant):
    return make_tenant(role="admin", plan_key="enterprise")


def _bill(tenant_id, amount, status="paid", days_ago=0):
    _db.session.add(BillingRecord(tenant_id=tenant_id, amount=amount, status=status,
                                  invoice_date=utcnow() - timedelta(days=days_ago)))
    _db.session.flush()


def test_subscription_metrics(client, make_tenant, admin, auth_headers):
    a = make_tenant(plan_key="starter", status="active")
    b = make_tenant(plan_key="professional", status="active")
    c = make_tenant(plan_key="starter", status="canceled")
    _bill(a.id, 29)
    _bill(b.id, 79)
    _bill(c.id, 29, days_ago=70)
    _bill(b.id, 79, status="failed")

    res = client.get("/api/v1/admin/subscription-metrics", headers=auth_headers(admin))

    assert res.status_code == 200
    body = res.get_json()
    # admin (enterprise/active) + a + b + c
    assert body["totalSubscriptions"] == 4
    assert body["activeSubscriptions"] == 3
    assert body["totalRevenue"] == 137.0
    assert body["monthlyRevenue"] == 108.0
    assert body["churnRate"] == 25.0
    assert body["averageRevenuePerUser"] == round(137 / 3, 2)
    breakdown = {row["plan"]: row["subscriptions"] for row in body["planBreakdown"]}
    assert breakdown["starter"] == 2


def test_metrics_with_no_subscriptions_has_zero_rates(client, make_tenant, auth_headers):
    admin = make_tenant(role="admin")

    body = client.get("/api/v1/admin/subscription-metrics", headers=auth_headers(admin)).get_json()

    assert body["totalSubscriptions"] == 0
    assert body["churnRate"] == 0
    assert body["averageRevenuePerUser"] == 0


def test_admin_lists_all_tenants_proposals(client, make_tenant, make_proposal, admin, auth_headers):
    make_proposal(make_tenant(), title="One")
    make_proposal(make_tenant(), title="Two", status="sent")

    body = client.get("/api/v1/admin/proposals", headers=auth_headers(admin)).get_json()
    assert body["total"] == 2

    sent = client.get("/api/v1/admin/proposals?status=sent", headers=auth_headers(admin)).get_json()
    assert [p["title"] for p in sent["items"]] == ["Two"]


def test_admin_status_override_records_admin_as_actor(client, make_tenant, make_proposal, admin,
                                                      auth_headers):
    owner = make_tenant()
    p = make_proposal(owner)

    res = client.patch(f"/api/v1/admin/proposals/{p.id}/status", json={"status": "rejected"},
                       headers=auth_headers(admin))

    assert res.status_code == 200
    entry = res.get_json()["history_entry"]
    assert entry["previous_status"] == "draft"
    assert entry["new_status"] == "rejected"
    assert entry["changed_by"] == admin.id


def test_admin_override_unknown_proposal_404(client, admin, auth_headers):
    res = client.patch("/api/v1/admin/proposals/999/status", json={"status": "sent"},
                       headers=auth_headers(admin))
    assert res.status_code == 404


@pytest.mark.parametrize("path", ["/api/v1/admin/subscription-metrics", "/api/v1/admin/proposals"])
def test_non_admin_is_forbidden(client, tenant, auth_headers, path):
    res = client.get(path, headers=auth_headers(tenant))
    assert res.status_code == 403
    assert res.get_json()["code"] == "ERR_FORBIDDEN"


def test_anonymous_admin_request_is_unauthorized(client):
    assert client.get("/api/v1/admin/proposals").status_code == 401
