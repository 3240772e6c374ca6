"""proposalhub_baseline

Create tenant, billing, proposal and engagement-tracking tables.

Revision ID: a1f0c3d9e2b4
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "a1f0c3d9e2b4"
down_revision = None
branch_labels = None
depends_on = None


def _ts(name, nullable=True):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "tenants" not in existing_tables:
        op.create_table(
            "tenants",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("full_name", sa.String(length=200), nullable=True),
            sa.Column("company_name", sa.String(length=200), nullable=True),
            sa.Column("role", sa.String(length=20), nullable=False, server_default="user"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            _ts("created_at"),
            _ts("updated_at"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )

    if "subscription_plans" not in existing_tables:
        op.create_table(
            "subscription_plans",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("key", sa.String(length=50), nullable=False),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default="0"),
            sa.Column("proposal_limit", sa.Integer(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("key"),
        )

    if "subscriptions" not in existing_tables:
        op.create_table(
            "subscriptions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("plan_key", sa.String(length=50), nullable=False, server_default="trial"),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="trial"),
            _ts("trial_end_at"),
            _ts("current_period_start"),
            _ts("current_period_end"),
            _ts("canceled_at"),
            _ts("created_at"),
            _ts("updated_at"),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("tenant_id", name="uq_subscription_tenant"),
        )
        op.create_index("ix_subscriptions_tenant_id", "subscriptions", ["tenant_id"])

    if "usage_records" not in existing_tables:
        op.create_table(
            "usage_records",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            _ts("period_start", nullable=False),
            _ts("period_end", nullable=False),
            sa.Column("proposals_count", sa.Integer(), nullable=False, server_default="0"),
            _ts("updated_at"),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("tenant_id", "period_start", name="uq_usage_records_tenant_period"),
        )
        op.create_index("ix_usage_records_tenant_id", "usage_records", ["tenant_id"])

    if "billing_history" not in existing_tables:
        op.create_table(
            "billing_history",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("amount", sa.Numeric(10, 2), nullable=False),
            sa.Column("currency", sa.String(length=3), nullable=False, server_default="usd"),
            sa.Column("status", sa.String(length=20), nullable=False),
            _ts("invoice_date", nullable=False),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_billing_history_tenant_id", "billing_history", ["tenant_id"])

    if "proposals" not in existing_tables:
        op.create_table(
            "proposals",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("service_type", sa.String(length=30), nullable=False),
            sa.Column("client_name", sa.String(length=200), nullable=False),
            sa.Column("client_email", sa.String(length=200), nullable=False),
            sa.Column("client_company", sa.String(length=200), nullable=True),
            sa.Column("contact_phone", sa.String(length=50), nullable=True),
            sa.Column("service_location", sa.String(length=500), nullable=True),
            sa.Column("facility_size", sa.Integer(), nullable=True),
            sa.Column("service_frequency", sa.String(length=20), nullable=True),
            sa.Column("service_data", sa.JSON(), nullable=True),
            sa.Column("pricing_data", sa.JSON(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
            sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("download_count", sa.Integer(), nullable=False, server_default="0"),
            _ts("last_viewed_at"),
            _ts("created_at"),
            _ts("updated_at"),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_proposals_tenant_id", "proposals", ["tenant_id"])
        op.create_index("ix_proposals_tenant_status", "proposals", ["tenant_id", "status"])

    if "proposal_status_history" not in existing_tables:
        op.create_table(
            "proposal_status_history",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("proposal_id", sa.Integer(), nullable=False),
            sa.Column("previous_status", sa.String(length=20), nullable=True),
            sa.Column("new_status", sa.String(length=20), nullable=False),
            sa.Column("changed_by", sa.Integer(), nullable=True),
            sa.Column("note", sa.Text(), nullable=True),
            _ts("changed_at", nullable=False),
            sa.ForeignKeyConstraint(["proposal_id"], ["proposals.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["changed_by"], ["tenants.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_status_history_proposal_changed", "proposal_status_history", ["proposal_id", "changed_at"],
        )

    if "pdf_exports" not in existing_tables:
        op.create_table(
            "pdf_exports",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("proposal_id", sa.Integer(), nullable=False),
            sa.Column("file_size", sa.Integer(), nullable=False),
            sa.Column("template_used", sa.String(length=50), nullable=False),
            _ts("exported_at", nullable=False),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["proposal_id"], ["proposals.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_pdf_exports_tenant_id", "pdf_exports", ["tenant_id"])
        op.create_index("ix_pdf_exports_proposal_id", "pdf_exports", ["proposal_id"])

    if "proposal_tracking" not in existing_tables:
        op.create_table(
            "proposal_tracking",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tracking_id", sa.String(length=64), nullable=False),
            sa.Column("proposal_id", sa.Integer(), nullable=False),
            sa.Column("recipient_email", sa.String(length=200), nullable=True),
            sa.Column("delivery_method", sa.String(length=20), nullable=True),
            sa.Column("subject", sa.String(length=255), nullable=True),
            _ts("sent_at"),
            sa.Column("opened", sa.Boolean(), nullable=False, server_default=sa.false()),
            _ts("opened_at"),
            sa.Column("viewed", sa.Boolean(), nullable=False, server_default=sa.false()),
            _ts("first_view_at"),
            _ts("last_viewed_at"),
            sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("downloaded", sa.Boolean(), nullable=False, server_default=sa.false()),
            _ts("downloaded_at"),
            sa.Column("download_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("max_scroll_depth", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("time_spent_seconds", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("user_agent", sa.String(length=500), nullable=True),
            sa.Column("ip_address", sa.String(length=64), nullable=True),
            _ts("updated_at"),
            sa.ForeignKeyConstraint(["proposal_id"], ["proposals.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_proposal_tracking_tracking_id", "proposal_tracking", ["tracking_id"], unique=True)
        op.create_index("ix_proposal_tracking_proposal_id", "proposal_tracking", ["proposal_id"])

    for table, ts_col in (("proposal_views", "viewed_at"), ("proposal_downloads", "downloaded_at")):
        if table in existing_tables:
            continue
        columns = [
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("proposal_id", sa.Integer(), nullable=False),
            sa.Column("tracking_id", sa.String(length=64), nullable=True),
            sa.Column("ip_address", sa.String(length=64), nullable=True),
            sa.Column("user_agent", sa.String(length=500), nullable=True),
        ]
        if table == "proposal_views":
            columns.append(sa.Column("referrer", sa.String(length=500), nullable=True))
        op.create_table(
            table,
            *columns,
            _ts(ts_col, nullable=False),
            sa.ForeignKeyConstraint(["proposal_id"], ["proposals.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(f"ix_{table}_proposal_id", table, ["proposal_id"])
        op.create_index(f"ix_{table}_tracking_id", table, ["tracking_id"])

    if "proposal_click_tracking" not in existing_tables:
        op.create_table(
            "proposal_click_tracking",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tracking_id", sa.String(length=64), nullable=False),
            sa.Column("element_type", sa.String(length=100), nullable=False),
            sa.Column("element_text", sa.String(length=255), nullable=True),
            sa.Column("element_id", sa.String(length=100), nullable=True),
            sa.Column("element_class", sa.String(length=255), nullable=True),
            _ts("clicked_at", nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_proposal_click_tracking_tracking_id", "proposal_click_tracking", ["tracking_id"],
        )


def downgrade():
    for table in (
        "proposal_click_tracking",
        "proposal_downloads",
        "proposal_views",
        "proposal_tracking",
        "pdf_exports",
        "proposal_status_history",
        "proposals",
        "billing_history",
        "usage_records",
        "subscriptions",
        "subscription_plans",
        "tenants",
    ):
        op.drop_table(table)
