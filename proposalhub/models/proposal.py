"""
Proposal domain models.

Models:
    - Proposal: a client-facing cleaning-services proposal owned by a tenant.
    - ProposalStatusHistory: immutable, append-only record of status changes.
    - PdfExport: immutable record of each authenticated PDF export.

Status is validated only against ``ProposalStatus``; there is no transition
table, so ``draft`` may move straight to ``accepted`` or ``rejected``.
"""

import enum

from proposalhub.models import db
from proposalhub.models.base import TenantModel
from proposalhub.utils.helpers import iso, utcnow


class ProposalStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


PROPOSAL_STATUSES = frozenset(s.value for s in ProposalStatus)

SERVICE_TYPES = frozenset({"residential", "commercial", "carpet", "window", "floor"})

SERVICE_FREQUENCIES = frozenset({
    "one-time", "1x-month", "bi-weekly", "weekly",
    "2x-week", "3x-week", "5x-week", "daily",
})


class Proposal(TenantModel):
    __tablename__ = "proposals"
    __table_args__ = (
        db.Index("ix_proposals_tenant_status", "tenant_id", "status"),
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    service_type = db.Column(db.String(30), nullable=False)

    # Client contact
    client_name = db.Column(db.String(200), nullable=False)
    client_email = db.Column(db.String(200), nullable=False)
    client_company = db.Column(db.String(200))
    contact_phone = db.Column(db.String(50))
    service_location = db.Column(db.String(500))

    facility_size = db.Column(db.Integer)
    service_frequency = db.Column(db.String(20))

    # Opaque to this service
    service_data = db.Column(db.JSON, default=dict)
    pricing_data = db.Column(db.JSON, default=dict)

    status = db.Column(
        db.String(20), nullable=False, default=ProposalStatus.DRAFT.value,
        comment="draft | sent | accepted | rejected",
    )

    # Denormalized engagement counters (only ever increase)
    view_count = db.Column(db.Integer, nullable=False, default=0)
    download_count = db.Column(db.Integer, nullable=False, default=0)
    last_viewed_at = db.Column(db.DateTime(timezone=True))

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    tenant = db.relationship("Tenant", back_populates="proposals")
    status_history = db.relationship(
        "ProposalStatusHistory", back_populates="proposal",
        lazy="dynamic", cascade="all, delete-orphan", passive_deletes=True,
    )
    trackings = db.relationship(
        "ProposalTracking", back_populates="proposal",
        lazy="dynamic", cascade="all, delete-orphan", passive_deletes=True,
    )
    exports = db.relationship(
        "PdfExport", back_populates="proposal",
        lazy="dynamic", cascade="all, delete-orphan", passive_deletes=True,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "title": self.title,
            "service_type": self.service_type,
            "client_name": self.client_name,
            "client_email": self.client_email,
            "client_company": self.client_company,
            "contact_phone": self.contact_phone,
            "service_location": self.service_location,
            "facility_size": self.facility_size,
            "service_frequency": self.service_frequency,
            "service_data": self.service_data or {},
            "pricing_data": self.pricing_data or {},
            "status": self.status,
            "view_count": self.view_count or 0,
            "download_count": self.download_count or 0,
            "last_viewed_at": iso(self.last_viewed_at),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Proposal #{self.id} {self.status}>"


class ProposalStatusHistory(db.Model):
    """
    One row per status change. Rows are never updated or deleted.

    ``previous_status`` is NULL only for a status force-set at creation.
    """

    __tablename__ = "proposal_status_history"
    __table_args__ = (
        db.Index("ix_status_history_proposal_changed", "proposal_id", "changed_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    proposal_id = db.Column(
        db.Integer,
        db.ForeignKey("proposals.id", ondelete="CASCADE"),
        nullable=False,
    )
    previous_status = db.Column(db.String(20), nullable=True)
    new_status = db.Column(db.String(20), nullable=False)
    changed_by = db.Column(
        db.Integer,
        db.ForeignKey("tenants.id", ondelete="SET NULL"),
        nullable=True,
        comment="Tenant or admin id that made the change",
    )
    note = db.Column(db.Text)
    changed_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    proposal = db.relationship("Proposal", back_populates="status_history")

    def to_dict(self):
        return {
            "id": self.id,
            "proposal_id": self.proposal_id,
            "previous_status": self.previous_status,
            "new_status": self.new_status,
            "changed_by": self.changed_by,
            "note": self.note,
            "changed_at": iso(self.changed_at),
        }


class PdfExport(TenantModel):
    __tablename__ = "pdf_exports"

    id = db.Column(db.Integer, primary_key=True)
    proposal_id = db.Column(
        db.Integer,
        db.ForeignKey("proposals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_size = db.Column(db.Integer, nullable=False)
    template_used = db.Column(db.String(50), nullable=False)
    exported_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    proposal = db.relationship("Proposal", back_populates="exports")

    def to_dict(self):
        return {
            "id": self.id,
            "proposal_id": self.proposal_id,
            "tenant_id": self.tenant_id,
            "file_size": self.file_size,
            "template_used": self.template_used,
            "exported_at": iso(self.exported_at),
        }
