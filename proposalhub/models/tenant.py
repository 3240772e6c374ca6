"""
Tenant model — the account that owns proposals and is billed by plan.

Tenant ids are the ``sub`` claim of access tokens issued by the hosted
identity provider. Rows are created at signup and never hard-deleted here.
"""

from proposalhub.models import db
from proposalhub.utils.helpers import iso, utcnow

TENANT_ROLES = frozenset({"user", "admin"})


class Tenant(db.Model):
    __tablename__ = "tenants"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), unique=True, nullable=False)
    full_name = db.Column(db.String(200))
    company_name = db.Column(db.String(200))
    role = db.Column(db.String(20), nullable=False, default="user")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    subscription = db.relationship(
        "Subscription", back_populates="tenant", uselist=False, cascade="all, delete-orphan",
    )
    proposals = db.relationship("Proposal", back_populates="tenant", lazy="dynamic")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "company_name": self.company_name,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Tenant #{self.id} {self.email}>"
