"""
Billing domain models — plan catalog, subscriptions, usage periods, invoices.

Models:
    - SubscriptionPlan: plan tiers and their monthly proposal limit.
    - Subscription: one per tenant; plan reference, status and trial window.
    - UsageRecord: proposals created by a tenant in one calendar-month period.
    - BillingRecord: invoice history fed by the payment provider (read-only here).
"""

from proposalhub.models import db
from proposalhub.models.base import TenantModel
from proposalhub.utils.helpers import iso, utcnow

# ── Constants ────────────────────────────────────────────────────────────────

SUBSCRIPTION_STATUSES = frozenset({"trial", "active", "canceled", "past_due"})
BILLING_STATUSES = frozenset({"paid", "pending", "failed"})

# proposal_limit None means unlimited
DEFAULT_PLANS = (
    {"key": "trial", "name": "Free Trial", "price": 0, "proposal_limit": 3},
    {"key": "starter", "name": "Starter", "price": 29, "proposal_limit": 10},
    {"key": "professional", "name": "Professional", "price": 79, "proposal_limit": 50},
    {"key": "enterprise", "name": "Enterprise", "price": 199, "proposal_limit": None},
)


class SubscriptionPlan(db.Model):
    __tablename__ = "subscription_plans"

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(50), unique=True, nullable=False)
    name = db.Column(db.String(100), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    proposal_limit = db.Column(
        db.Integer, nullable=True,
        comment="Monthly proposal quota; NULL = unlimited",
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self):
        return {
            "id": self.id,
            "key": self.key,
            "name": self.name,
            "price": float(self.price or 0),
            "proposal_limit": self.proposal_limit,
            "is_active": self.is_active,
        }


class Subscription(TenantModel):
    __tablename__ = "subscriptions"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", name="uq_subscription_tenant"),
    )

    id = db.Column(db.Integer, primary_key=True)
    plan_key = db.Column(db.String(50), nullable=False, default="trial")
    status = db.Column(
        db.String(20), nullable=False, default="trial",
        comment="trial | active | canceled | past_due",
    )
    trial_end_at = db.Column(db.DateTime(timezone=True))
    current_period_start = db.Column(db.DateTime(timezone=True))
    current_period_end = db.Column(db.DateTime(timezone=True))
    canceled_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    tenant = db.relationship("Tenant", back_populates="subscription")

    def to_dict(self):
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "plan_key": self.plan_key,
            "status": self.status,
            "trial_end_at": iso(self.trial_end_at),
            "current_period_start": iso(self.current_period_start),
            "current_period_end": iso(self.current_period_end),
            "canceled_at": iso(self.canceled_at),
        }


class UsageRecord(TenantModel):
    __tablename__ = "usage_records"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "period_start", name="uq_usage_records_tenant_period"),
    )

    id = db.Column(db.Integer, primary_key=True)
    period_start = db.Column(db.DateTime(timezone=True), nullable=False)
    period_end = db.Column(db.DateTime(timezone=True), nullable=False)
    proposals_count = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "period_start": iso(self.period_start),
            "period_end": iso(self.period_end),
            "proposals_count": self.proposals_count,
        }


class BillingRecord(TenantModel):
    __tablename__ = "billing_history"

    id = db.Column(db.Integer, primary_key=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="usd")
    status = db.Column(db.String(20), nullable=False, comment="paid | pending | failed")
    invoice_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
