"""
Tenant ownership mixin.

Rows owned by a tenant (subscriptions, usage periods, invoices, proposals,
PDF exports) subclass ``TenantModel``. The ``tenant_id`` FK cascades on tenant
deletion.
"""

from proposalhub.models import db


class TenantModel(db.Model):
    __abstract__ = True

    tenant_id = db.Column(
        db.Integer,
        db.ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    @classmethod
    def query_for_tenant(cls, tenant_id):
        return cls.query.filter_by(tenant_id=tenant_id)

    @classmethod
    def scoped(cls, tenant_id=None):
        """Rows of ``tenant_id``; every tenant's rows when it is None (admin views)."""
        return cls.query if tenant_id is None else cls.query_for_tenant(tenant_id)
