"""
Read-only engagement and subscription reporting.

proposal_analytics    per-proposal overview, per-share details, activity feed
subscription_metrics  admin-wide revenue, subscription and churn figures
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func

from proposalhub.models import db
from proposalhub.models.billing import BillingRecord, Subscription, SubscriptionPlan
from proposalhub.models.proposal import ProposalStatus, ProposalStatusHistory
from proposalhub.models.tracking import ProposalTracking, ProposalView
from proposalhub.services import proposal_service
from proposalhub.services.usage_gate import current_period
from proposalhub.utils.helpers import as_utc, iso, utcnow

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 20


def engagement_score(views: int, downloads: int) -> int:
    return min(100, views * 10 + downloads * 20)


def proposal_analytics(proposal_id: int, tenant_id: int) -> dict:
    proposal = proposal_service.get_proposal(proposal_id, tenant_id)
    trackings = (
        ProposalTracking.query.filter_by(proposal_id=proposal.id)
        .order_by(ProposalTracking.sent_at.desc())
        .all()
    )

    total_sent = len(trackings)
    opened = sum(1 for t in trackings if t.opened)
    total_views = proposal.view_count or 0
    total_downloads = proposal.download_count or 0
    time_values = [t.time_spent_seconds for t in trackings if t.time_spent_seconds]

    overview = {
        "total_sent": total_sent,
        "total_views": total_views,
        "total_downloads": total_downloads,
        "open_rate": round(opened / total_sent, 4) if total_sent else 0,
        "conversion_rate": 1 if proposal.status == ProposalStatus.ACCEPTED.value else 0,
        "average_time_spent": round(sum(time_values) / len(time_values), 1) if time_values else 0,
        "max_scroll_depth": max((t.max_scroll_depth or 0 for t in trackings), default=0),
        "engagement_score": engagement_score(total_views, total_downloads),
        "last_viewed_at": iso(proposal.last_viewed_at),
    }

    activity = []
    for entry in proposal_service.get_status_history(proposal.id, tenant_id):
        activity.append({
            "type": "status_change",
            "timestamp": as_utc(entry.changed_at),
            "description": f"Status changed to {entry.new_status}",
            "previous_status": entry.previous_status,
            "new_status": entry.new_status,
        })
    for t in trackings:
        activity.append({
            "type": "sent",
            "timestamp": as_utc(t.sent_at),
            "description": f"Sent to {t.recipient_email}" if t.recipient_email else "Shared",
            "tracking_id": t.tracking_id,
        })
    views = (
        ProposalView.query.filter_by(proposal_id=proposal.id)
        .order_by(ProposalView.viewed_at.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
        .all()
    )
    for v in views:
        activity.append({
            "type": "view",
            "timestamp": as_utc(v.viewed_at),
            "description": "Proposal viewed",
            "tracking_id": v.tracking_id,
        })

    activity = [a for a in activity if a["timestamp"] is not None]
    activity.sort(key=lambda a: a["timestamp"], reverse=True)
    recent = activity[:RECENT_ACTIVITY_LIMIT]
    for a in recent:
        a["timestamp"] = iso(a["timestamp"])

    return {
        "proposal_id": proposal.id,
        "status": proposal.status,
        "overview": overview,
        "tracking_details": [t.to_dict() for t in trackings],
        "recent_activity": recent,
    }


def subscription_metrics(now: datetime | None = None) -> dict:
    """Revenue and subscription totals across all tenants."""
    now = as_utc(now) or utcnow()
    period_start, period_end = current_period(now)

    paid = BillingRecord.query.filter(BillingRecord.status == "paid")
    total_revenue = db.session.query(func.coalesce(func.sum(BillingRecord.amount), 0)).filter(
        BillingRecord.status == "paid"
    ).scalar()
    monthly_revenue = sum(
        float(r.amount or 0)
        for r in paid.all()
        if period_start <= as_utc(r.invoice_date) < period_end
    )

    total_subs = Subscription.query.count()
    active_subs = Subscription.query.filter(Subscription.status == "active").count()
    canceled_subs = Subscription.query.filter(Subscription.status == "canceled").count()

    total_revenue = float(total_revenue or 0)
    metrics = {
        "totalRevenue": round(total_revenue, 2),
        "monthlyRevenue": round(monthly_revenue, 2),
        "totalSubscriptions": total_subs,
        "activeSubscriptions": active_subs,
        "churnRate": round(canceled_subs / total_subs * 100, 2) if total_subs else 0,
        "averageRevenuePerUser": round(total_revenue / active_subs, 2) if active_subs else 0,
        "planBreakdown": _plan_breakdown(),
    }
    logger.debug("Subscription metrics computed: %s", metrics)
    return metrics


def _plan_breakdown() -> list[dict]:
    counts = dict(
        db.session.query(Subscription.plan_key, func.count(Subscription.id))
        .group_by(Subscription.plan_key)
        .all()
    )
    return [
        {"plan": plan.key, "name": plan.name, "subscriptions": counts.get(plan.key, 0)}
        for plan in SubscriptionPlan.query.order_by(SubscriptionPlan.price).all()
    ]
