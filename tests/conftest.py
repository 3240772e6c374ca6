"""
Shared pytest fixtures for the proposalhub test suite.

Provides:
    - app: Flask application (session-scoped, in-memory SQLite)
    - session: Per-test DB reset + plan seed + plan-cache flush (autouse)
    - client: Flask test client
    - make_tenant: factory for Tenant (+ optional Subscription) rows
    - tenant: a tenant on the professional plan
    - auth_headers: factory for Bearer headers minted with jwt_service
    - proposal_payload: a valid create-proposal body
    - make_proposal: factory creating proposals through proposal_service
"""

from datetime import timedelta

import email_validator
import pytest

from proposalhub import create_app
from proposalhub.models import db as _db
from proposalhub.models.billing import Subscription
from proposalhub.models.tenant import Tenant
from proposalhub.services import jwt_service, proposal_service
from proposalhub.services.usage_gate import ensure_default_plans
from proposalhub.utils.helpers import utcnow

# Fixture addresses live under the reserved ``.test`` TLD.
email_validator.TEST_ENVIRONMENT = True


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(autouse=True)
def session(app):
    """Per-test: open app context, seed plans, drop and recreate tables afterwards."""
    with app.app_context():
        ensure_default_plans()
        app.extensions["plan_cache"].invalidate()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def plan_cache(app):
    return app.extensions["plan_cache"]


# ── Domain factories ─────────────────────────────────────────────────────


@pytest.fixture()
def make_tenant():
    """Factory: make_tenant(email=..., plan_key="starter", status="active", ...)."""
    counter = {"n": 0}

    def _make(email=None, role="user", plan_key=None, status="active",
              trial_end_at=None, is_active=True):
        counter["n"] += 1
        t = Tenant(
            email=email or f"owner{counter['n']}@cleanco.test",
            full_name=f"Owner {counter['n']}",
            company_name="CleanCo",
            role=role,
            is_active=is_active,
        )
        _db.session.add(t)
        _db.session.flush()
        if plan_key is not None:
            now = utcnow()
            _db.session.add(Subscription(
                tenant_id=t.id,
                plan_key=plan_key,
                status=status,
                trial_end_at=trial_end_at,
                current_period_start=now,
                current_period_end=now + timedelta(days=30),
                canceled_at=now if status == "canceled" else None,
            ))
            _db.session.flush()
        return t

    return _make


@pytest.fixture()
def tenant(make_tenant):
    return make_tenant(plan_key="professional")


@pytest.fixture()
def auth_headers():
    """Factory: auth_headers(tenant, role=None) → {"Authorization": "Bearer ..."}."""

    def _headers(t, role=None):
        token = jwt_service.generate_access_token(t.id, role=role or t.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def proposal_payload():
    return {
        "title": "Office Deep Clean",
        "service_type": "commercial",
        "client_name": "Dana Client",
        "client_email": "dana@client.test",
        "client_company": "Client Corp",
        "contact_phone": "+1 555 0100",
        "service_location": "1 Main St, Springfield",
        "facility_size": 12000,
        "service_frequency": "weekly",
        "service_data": {"rooms": 14},
        "pricing_data": {
            "line_items": [{"description": "Weekly janitorial", "amount": 1200}],
            "total": 1200,
        },
    }


@pytest.fixture()
def make_proposal(proposal_payload):
    """Factory: make_proposal(tenant, **overrides) via proposal_service (no gate)."""

    def _make(t, **overrides):
        payload = dict(proposal_payload)
        payload.update(overrides)
        return proposal_service.create_proposal(t.id, payload, actor_id=t.id)

    return _make
