"""
Engagement tracking models.

Models:
    - ProposalTracking: per-share aggregate keyed by an opaque tracking_id.
    - ProposalView / ProposalDownload / ProposalClick: immutable event rows.

Aggregate invariants (maintained by services.tracking_service):
    - view_count, download_count, time_spent_seconds never decrease
    - max_scroll_depth is a running maximum in [0, 100]
    - opened_at, first_view_at, downloaded_at are written at most once
"""

from proposalhub.models import db
from proposalhub.utils.helpers import iso, utcnow

DELIVERY_METHODS = frozenset({"pdf_only", "online_only", "both"})

# Caps for untrusted click metadata
CLICK_TEXT_MAX = 255
CLICK_ID_MAX = 100


class ProposalTracking(db.Model):
    __tablename__ = "proposal_tracking"

    id = db.Column(db.Integer, primary_key=True)
    tracking_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    proposal_id = db.Column(
        db.Integer,
        db.ForeignKey("proposals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Share metadata
    recipient_email = db.Column(db.String(200))
    delivery_method = db.Column(db.String(20), default="both")
    subject = db.Column(db.String(255))
    sent_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    # Email open
    opened = db.Column(db.Boolean, nullable=False, default=False)
    opened_at = db.Column(db.DateTime(timezone=True))

    # Views
    viewed = db.Column(db.Boolean, nullable=False, default=False)
    first_view_at = db.Column(db.DateTime(timezone=True))
    last_viewed_at = db.Column(db.DateTime(timezone=True))
    view_count = db.Column(db.Integer, nullable=False, default=0)

    # Downloads
    downloaded = db.Column(db.Boolean, nullable=False, default=False)
    downloaded_at = db.Column(db.DateTime(timezone=True))
    download_count = db.Column(db.Integer, nullable=False, default=0)

    # Reading depth
    max_scroll_depth = db.Column(db.Integer, nullable=False, default=0)
    time_spent_seconds = db.Column(db.Integer, nullable=False, default=0)

    # Most recent requester
    user_agent = db.Column(db.String(500))
    ip_address = db.Column(db.String(64))

    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    proposal = db.relationship("Proposal", back_populates="trackings")

    def to_dict(self):
        return {
            "id": self.id,
            "tracking_id": self.tracking_id,
            "proposal_id": self.proposal_id,
            "recipient_email": self.recipient_email,
            "delivery_method": self.delivery_method,
            "subject": self.subject,
            "sent_at": iso(self.sent_at),
            "opened": bool(self.opened),
            "opened_at": iso(self.opened_at),
            "viewed": bool(self.viewed),
            "first_view_at": iso(self.first_view_at),
            "last_viewed_at": iso(self.last_viewed_at),
            "view_count": self.view_count or 0,
            "downloaded": bool(self.downloaded),
            "downloaded_at": iso(self.downloaded_at),
            "download_count": self.download_count or 0,
            "max_scroll_depth": self.max_scroll_depth or 0,
            "time_spent_seconds": self.time_spent_seconds or 0,
        }


class ProposalView(db.Model):
    __tablename__ = "proposal_views"

    id = db.Column(db.Integer, primary_key=True)
    proposal_id = db.Column(
        db.Integer,
        db.ForeignKey("proposals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tracking_id = db.Column(db.String(64), index=True)
    ip_address = db.Column(db.String(64))
    user_agent = db.Column(db.String(500))
    referrer = db.Column(db.String(500))
    viewed_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "proposal_id": self.proposal_id,
            "tracking_id": self.tracking_id,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "referrer": self.referrer,
            "viewed_at": iso(self.viewed_at),
        }


class ProposalDownload(db.Model):
    __tablename__ = "proposal_downloads"

    id = db.Column(db.Integer, primary_key=True)
    proposal_id = db.Column(
        db.Integer,
        db.ForeignKey("proposals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tracking_id = db.Column(db.String(64), index=True)
    ip_address = db.Column(db.String(64))
    user_agent = db.Column(db.String(500))
    downloaded_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)


class ProposalClick(db.Model):
    __tablename__ = "proposal_click_tracking"

    id = db.Column(db.Integer, primary_key=True)
    tracking_id = db.Column(db.String(64), nullable=False, index=True)
    element_type = db.Column(db.String(CLICK_ID_MAX), nullable=False)
    element_text = db.Column(db.String(CLICK_TEXT_MAX))
    element_id = db.Column(db.String(CLICK_ID_MAX))
    element_class = db.Column(db.String(CLICK_TEXT_MAX))
    clicked_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "tracking_id": self.tracking_id,
            "element_type": self.element_type,
            "element_text": self.element_text,
            "element_id": self.element_id,
            "element_class": self.element_class,
            "clicked_at": iso(self.clicked_at),
        }
