"""
Engagement tracker — ingests recipient interactions keyed by tracking token.

Every share of a proposal mints one ProposalTracking row whose opaque
``tracking_id`` is embedded in the email pixel, the view link and the
download link. Beacons update the aggregate on that row, append immutable
event rows and bump the proposal's denormalized counters.

Semantics:
    - opened_at / first_view_at / downloaded_at are first-write-wins.
    - user_agent / ip_address always reflect the latest caller.
    - max_scroll_depth is a running maximum; time is accumulated in whole seconds.
    - Views and downloads are not deduplicated: repeating a beacon counts twice.
    - Counters are read-modify-write; concurrent beacons may lose an update.
    - Event-row and proposal-counter writes after the aggregate commit are
      best-effort: failures are logged and the call still succeeds.

Open/scroll/time beacons on an unknown token are no-ops returning False.
View and download raise NotFoundError for an unknown token, or for a token
presented with another proposal's id. Clicks on an unknown token are dropped.
"""

from __future__ import annotations

import logging
import math
import secrets

from sqlalchemy.exc import SQLAlchemyError

from proposalhub.core.exceptions import InvalidArgumentError, NotFoundError, UnavailableError
from proposalhub.models import db
from proposalhub.models.tracking import (
    CLICK_ID_MAX,
    CLICK_TEXT_MAX,
    DELIVERY_METHODS,
    ProposalClick,
    ProposalDownload,
    ProposalTracking,
    ProposalView,
)
from proposalhub.services import proposal_service
from proposalhub.utils.helpers import commit_or_raise, truncate, utcnow

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "track_"
USER_AGENT_MAX = 500
REFERRER_MAX = 500


def _log_extra(tracking_id, event_type, proposal_id=None):
    return {"tracking_id": tracking_id, "event_type": event_type, "proposal_id": proposal_id}


def _best_effort(action: str, tracking_id: str, fn, *args, **kwargs):
    """Run a secondary write; log and swallow store failures."""
    try:
        return fn(*args, **kwargs)
    except (SQLAlchemyError, UnavailableError):
        db.session.rollback()
        logger.exception("Tracking %s failed for %s", action, tracking_id,
                         extra=_log_extra(tracking_id, action))
        return None


def _append_event(event) -> None:
    db.session.add(event)
    commit_or_raise(f"append {type(event).__name__}")


# ── Tokens ───────────────────────────────────────────────────────────────────


def generate_tracking_id() -> str:
    return f"{TOKEN_PREFIX}{secrets.token_urlsafe(18)}"


def create_tracking_token(
    proposal,
    recipient_email: str | None = None,
    delivery_method: str = "both",
    subject: str | None = None,
) -> ProposalTracking:
    """Mint a tracking token for one share of ``proposal``."""
    if not isinstance(delivery_method, str) or delivery_method not in DELIVERY_METHODS:
        raise InvalidArgumentError(
            f"delivery_method must be one of: {', '.join(sorted(DELIVERY_METHODS))}",
            field="delivery_method",
        )
    tracking = ProposalTracking(
        tracking_id=generate_tracking_id(),
        proposal_id=proposal.id,
        recipient_email=recipient_email,
        delivery_method=delivery_method,
        subject=truncate(subject, 255),
        sent_at=utcnow(),
    )
    db.session.add(tracking)
    commit_or_raise("create tracking token")
    logger.info("Tracking token minted for proposal %s", proposal.id,
                extra=_log_extra(tracking.tracking_id, "share", proposal.id))
    return tracking


def get_tracking(tracking_id: str | None) -> ProposalTracking | None:
    if not tracking_id or not isinstance(tracking_id, str):
        return None
    return ProposalTracking.query.filter_by(tracking_id=tracking_id).first()


def _require_tracking(tracking_id) -> ProposalTracking:
    tracking = get_tracking(tracking_id)
    if tracking is None:
        raise NotFoundError(resource="Tracking", resource_id=tracking_id)
    return tracking


def _touch_requester(tracking, user_agent, ip_address):
    tracking.user_agent = truncate(user_agent, USER_AGENT_MAX)
    tracking.ip_address = truncate(ip_address, 64)


# ── Beacons ──────────────────────────────────────────────────────────────────


def record_open(tracking_id, user_agent=None, ip_address=None, now=None) -> bool:
    """Mark the share as opened. Returns False (no-op) for an unknown token."""
    tracking = get_tracking(tracking_id)
    if tracking is None:
        logger.info("Email open for unknown token %s", tracking_id,
                    extra=_log_extra(tracking_id, "open"))
        return False

    tracking.opened = True
    if tracking.opened_at is None:
        tracking.opened_at = now or utcnow()
    _touch_requester(tracking, user_agent, ip_address)
    commit_or_raise("record open")
    return True


def _require_tracking_for(tracking_id, proposal_id) -> ProposalTracking:
    """The token's row; a ``proposal_id`` naming another proposal reads as not found."""
    tracking = _require_tracking(tracking_id)
    if proposal_id is not None and proposal_id != tracking.proposal_id:
        logger.warning("Token %s presented for proposal %s", tracking_id, proposal_id,
                       extra=_log_extra(tracking_id, "mismatch", proposal_id))
        raise NotFoundError(resource="Tracking", resource_id=tracking_id)
    return tracking


def record_view(tracking_id, proposal_id=None, user_agent=None, ip_address=None,
                referrer=None, now=None) -> ProposalTracking:
    """Count a view on the token and on its proposal, and log a ProposalView.

    Counters always land on the token's own proposal. A supplied
    ``proposal_id`` must match it.
    """
    now = now or utcnow()
    tracking = _require_tracking_for(tracking_id, proposal_id)
    proposal_id = tracking.proposal_id

    tracking.viewed = True
    tracking.view_count = (tracking.view_count or 0) + 1
    if tracking.first_view_at is None:
        tracking.first_view_at = now
    tracking.last_viewed_at = now
    _touch_requester(tracking, user_agent, ip_address)
    commit_or_raise("record view")

    _best_effort("view event", tracking_id, _append_event, ProposalView(
        proposal_id=proposal_id,
        tracking_id=tracking_id,
        ip_address=truncate(ip_address, 64),
        user_agent=truncate(user_agent, USER_AGENT_MAX),
        referrer=truncate(referrer, REFERRER_MAX),
        viewed_at=now,
    ))
    _best_effort("view counter", tracking_id,
                 proposal_service.increment_view_count, proposal_id, now=now)

    logger.debug("View recorded", extra=_log_extra(tracking_id, "view", proposal_id))
    return tracking


def record_download(tracking_id, proposal_id=None, user_agent=None, ip_address=None,
                    now=None) -> ProposalTracking:
    """Count a download on the token and on its proposal, and log a ProposalDownload."""
    now = now or utcnow()
    tracking = _require_tracking_for(tracking_id, proposal_id)
    proposal_id = tracking.proposal_id

    tracking.downloaded = True
    tracking.download_count = (tracking.download_count or 0) + 1
    if tracking.downloaded_at is None:
        tracking.downloaded_at = now
    _touch_requester(tracking, user_agent, ip_address)
    commit_or_raise("record download")

    _best_effort("download event", tracking_id, _append_event, ProposalDownload(
        proposal_id=proposal_id,
        tracking_id=tracking_id,
        ip_address=truncate(ip_address, 64),
        user_agent=truncate(user_agent, USER_AGENT_MAX),
        downloaded_at=now,
    ))
    _best_effort("download counter", tracking_id,
                 proposal_service.increment_download_count, proposal_id)

    logger.debug("Download recorded", extra=_log_extra(tracking_id, "download", proposal_id))
    return tracking


def record_scroll_depth(tracking_id, percent) -> bool:
    """Raise max_scroll_depth to ``percent`` if higher.

    Raises:
        InvalidArgumentError: ``percent`` is not an int in [0, 100].
    """
    if isinstance(percent, bool) or not isinstance(percent, int) or not 0 <= percent <= 100:
        raise InvalidArgumentError("scroll_percent must be an integer between 0 and 100",
                                   field="scroll_percent")
    tracking = get_tracking(tracking_id)
    if tracking is None:
        return False
    if percent > (tracking.max_scroll_depth or 0):
        tracking.max_scroll_depth = percent
        commit_or_raise("record scroll depth")
    return True


def record_time_spent(tracking_id, milliseconds) -> bool:
    """Add ``floor(milliseconds / 1000)`` seconds to the token.

    Raises:
        InvalidArgumentError: negative, non-finite or non-numeric input.
    """
    if (
        isinstance(milliseconds, bool)
        or not isinstance(milliseconds, (int, float))
        or not math.isfinite(milliseconds)
        or milliseconds < 0
    ):
        raise InvalidArgumentError("time_spent must be a non-negative number of milliseconds",
                                   field="time_spent")
    tracking = get_tracking(tracking_id)
    if tracking is None:
        return False
    seconds = int(milliseconds // 1000)
    if seconds:
        tracking.time_spent_seconds = (tracking.time_spent_seconds or 0) + seconds
        commit_or_raise("record time spent")
    return True


def record_click(tracking_id, element_type, element_text=None, element_id=None,
                 element_class=None) -> ProposalClick | None:
    """Append a ProposalClick with bounded descriptive fields.

    Returns None (nothing stored) when the token is unknown.
    """
    if not tracking_id or not isinstance(tracking_id, str):
        raise InvalidArgumentError("tracking_id is required", field="tracking_id")
    if not element_type or not isinstance(element_type, str):
        raise InvalidArgumentError("element_type is required", field="element_type")
    if get_tracking(tracking_id) is None:
        logger.info("Click for unknown token %s dropped", tracking_id,
                    extra=_log_extra(tracking_id, "click"))
        return None

    click = ProposalClick(
        tracking_id=truncate(tracking_id, 64),
        element_type=truncate(element_type, CLICK_ID_MAX),
        element_text=truncate(element_text, CLICK_TEXT_MAX),
        element_id=truncate(element_id, CLICK_ID_MAX),
        element_class=truncate(element_class, CLICK_TEXT_MAX),
    )
    _append_event(click)
    return click
