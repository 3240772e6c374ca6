"""
Usage gate — decides whether a tenant may create another proposal.

The gate compares the tenant's proposal count for the current calendar-month
period with the limit of their plan. It is read-only: no reservation is held
between ``check_can_create_proposal`` and the insert that follows, so two
concurrent creations at the boundary can exceed the limit by one.

A tenant without a subscription row is treated as a trial on the ``trial``
plan. Store failures surface as UnavailableError and callers fail closed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from proposalhub.core.exceptions import NotFoundError, UnavailableError
from proposalhub.models import db
from proposalhub.models.billing import DEFAULT_PLANS, Subscription, SubscriptionPlan, UsageRecord
from proposalhub.models.tenant import Tenant
from proposalhub.utils.helpers import as_utc, commit_or_raise, iso, utcnow

logger = logging.getLogger(__name__)

REASON_LIMIT_REACHED = "PROPOSAL_LIMIT_REACHED"
REASON_SUBSCRIPTION_INACTIVE = "SUBSCRIPTION_INACTIVE"
REASON_TRIAL_EXPIRED = "TRIAL_EXPIRED"
REASON_USAGE_UNAVAILABLE = "USAGE_UNAVAILABLE"

INACTIVE_STATUSES = frozenset({"canceled", "past_due"})
TRIAL_PLAN_KEY = "trial"


@dataclass(frozen=True)
class PlanInfo:
    """Detached snapshot of a SubscriptionPlan row, safe to cache across requests."""

    key: str
    name: str
    proposal_limit: int | None

    @classmethod
    def from_row(cls, plan: SubscriptionPlan) -> "PlanInfo":
        return cls(key=plan.key, name=plan.name, proposal_limit=plan.proposal_limit)


@dataclass(frozen=True)
class UsageStatus:
    can_create: bool
    current_usage: int
    limit: int | None
    remaining: int | None
    is_trial: bool
    trial_end_at: datetime | None
    plan_name: str
    plan_key: str
    subscription_status: str
    reason: str | None = None

    @property
    def is_unlimited(self) -> bool:
        return self.limit is None

    def to_dict(self) -> dict:
        """HTTP shape for ``GET /api/v1/usage/check``."""
        return {
            "currentUsage": self.current_usage,
            "proposalLimit": self.limit,
            "canCreateProposal": self.can_create,
            "subscriptionPlan": self.plan_name,
            "subscriptionStatus": self.subscription_status,
            "remainingProposals": self.remaining,
            "isTrial": self.is_trial,
            "trialEndAt": iso(self.trial_end_at),
            "reason": self.reason,
        }


# ── Periods ──────────────────────────────────────────────────────────────────


def current_period(now: datetime | None = None) -> tuple[datetime, datetime]:
    """Return ``(start, end)`` of the calendar month containing ``now`` (UTC).

    ``end`` is exclusive: the first instant of the following month.
    """
    now = as_utc(now) or utcnow()
    start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    if now.month == 12:
        end = datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)
    return start, end


def _usage_row(tenant_id: int, period_start: datetime) -> UsageRecord | None:
    return (
        UsageRecord.query_for_tenant(tenant_id)
        .filter(UsageRecord.period_start == period_start)
        .first()
    )


# ── Plans ────────────────────────────────────────────────────────────────────


def _fallback_plan(plan_key: str) -> PlanInfo:
    for plan in DEFAULT_PLANS:
        if plan["key"] == plan_key:
            return PlanInfo(plan["key"], plan["name"], plan["proposal_limit"])
    logger.warning("Unknown plan key %r; applying trial limits", plan_key)
    return _fallback_plan(TRIAL_PLAN_KEY)


def load_plan(plan_key: str, plan_cache=None) -> PlanInfo:
    """Resolve ``plan_key`` through the cache, then the catalog, then the defaults."""

    def _loader():
        row = SubscriptionPlan.query.filter_by(key=plan_key).first()
        return PlanInfo.from_row(row) if row else None

    if plan_cache is not None:
        plan = plan_cache.get_or_load(plan_key, _loader)
    else:
        plan = _loader()
    return plan or _fallback_plan(plan_key)


def ensure_default_plans() -> int:
    """Seed the plan catalog when it is empty. Returns the number of rows added."""
    if SubscriptionPlan.query.count():
        return 0
    for plan in DEFAULT_PLANS:
        db.session.add(SubscriptionPlan(**plan))
    commit_or_raise("seed default plans")
    logger.info("Seeded %d default subscription plans", len(DEFAULT_PLANS))
    return len(DEFAULT_PLANS)


# ── Gate ─────────────────────────────────────────────────────────────────────


def check_can_create_proposal(tenant_id: int, plan_cache=None, now: datetime | None = None) -> UsageStatus:
    """Compute whether ``tenant_id`` may create a proposal right now.

    Raises:
        NotFoundError: Unknown tenant.
        UnavailableError: The data store could not be read.
    """
    now = as_utc(now) or utcnow()
    try:
        tenant = db.session.get(Tenant, tenant_id)
        if tenant is None:
            raise NotFoundError(resource="Tenant", resource_id=tenant_id)

        subscription = Subscription.query_for_tenant(tenant_id).first()
        if subscription is None:
            plan_key, status, trial_end_at = TRIAL_PLAN_KEY, "trial", None
        else:
            plan_key = subscription.plan_key
            status = subscription.status
            trial_end_at = as_utc(subscription.trial_end_at)

        plan = load_plan(plan_key, plan_cache)
        period_start, _ = current_period(now)
        usage = _usage_row(tenant_id, period_start)
        used = usage.proposals_count if usage else 0
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Usage check failed for tenant=%s", tenant_id)
        raise UnavailableError("Usage data unavailable") from exc

    limit = plan.proposal_limit
    remaining = None if limit is None else max(0, limit - used)
    is_trial = status == "trial"

    reason = None
    if status in INACTIVE_STATUSES:
        reason = REASON_SUBSCRIPTION_INACTIVE
    elif is_trial and trial_end_at is not None and trial_end_at <= now:
        reason = REASON_TRIAL_EXPIRED
    elif limit is not None and used >= limit:
        reason = REASON_LIMIT_REACHED

    result = UsageStatus(
        can_create=reason is None,
        current_usage=used,
        limit=limit,
        remaining=remaining,
        is_trial=is_trial,
        trial_end_at=trial_end_at,
        plan_name=plan.name,
        plan_key=plan.key,
        subscription_status=status,
        reason=reason,
    )
    logger.debug(
        "Usage check tenant=%s used=%s limit=%s can_create=%s",
        tenant_id, used, limit, result.can_create,
        extra={"tenant_id": tenant_id},
    )
    return result


def record_proposal_usage(tenant_id: int, now: datetime | None = None) -> UsageRecord:
    """Count one more proposal against the tenant's current period.

    One row per (tenant, period) is enforced by a unique constraint. When a
    concurrent first write wins the insert, the winner's row is re-read and
    incremented. Increments on an existing row are read-modify-write and may
    be lost under concurrency.
    """
    period_start, period_end = current_period(now)
    usage = _usage_row(tenant_id, period_start)
    if usage is None:
        usage = UsageRecord(
            tenant_id=tenant_id,
            period_start=period_start,
            period_end=period_end,
            proposals_count=1,
        )
        db.session.add(usage)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.info("Usage row for tenant %s created concurrently; incrementing it", tenant_id,
                        extra={"tenant_id": tenant_id})
            usage = _usage_row(tenant_id, period_start)
            if usage is None:
                raise
        except OperationalError as exc:
            db.session.rollback()
            raise UnavailableError("Data store unavailable during record proposal usage") from exc
        else:
            return usage

    usage.proposals_count = (usage.proposals_count or 0) + 1
    commit_or_raise("record proposal usage")
    return usage
