"""initial schema: users, reports, usage_logs

Revision ID: 0001
Revises:
Create Date: 2025-01-15 10:00:00
"""

from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

auth_provider = sa.Enum("credentials", "google", name="auth_provider")
user_role = sa.Enum("user", "admin", "superadmin", name="user_role")
subscription_plan = sa.Enum("free", "starter", "professional", name="subscription_plan")
subscription_status = sa.Enum("active", "canceled", "past_due", name="subscription_status")
usage_action = sa.Enum("report_generated", "cells_used", "limit_reached", name="usage_action")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("password", sa.String(length=255), nullable=True),
        sa.Column("image", sa.String(length=500), nullable=True),
        sa.Column("provider", auth_provider, server_default="credentials", nullable=False),
        sa.Column("role", user_role, server_default="user", nullable=False),
        sa.Column("subscription_plan", subscription_plan, server_default="free", nullable=False),
        sa.Column("subscription_status", subscription_status, server_default="active", nullable=False),
        sa.Column("stripe_customer_id", sa.String(length=255), nullable=True),
        sa.Column("stripe_subscription_id", sa.String(length=255), nullable=True),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("monthly_cells_used", sa.Integer(), server_default="0", nullable=False),
        sa.Column("monthly_reports_used", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_cells_used", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_reset_date", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("reset_token", sa.String(length=255), nullable=True),
        sa.Column("reset_token_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_reset_token", "users", ["reset_token"])

    op.create_table(
        "reports",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("charts", sa.JSON(), nullable=True),
        sa.Column("settings", sa.JSON(), nullable=True),
        sa.Column("cells_used", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_reports_user_id_users", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_reports"),
    )
    op.create_index("ix_reports_user_id", "reports", ["user_id"])

    op.create_table(
        "usage_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("report_id", sa.Integer(), nullable=True),
        sa.Column("action_type", usage_action, nullable=False),
        sa.Column("cells_used", sa.Integer(), server_default="0", nullable=False),
        sa.Column("reports_used", sa.Integer(), server_default="0", nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_usage_logs_user_id_users", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["report_id"], ["reports.id"], name="fk_usage_logs_report_id_reports", ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_usage_logs"),
    )
    op.create_index("ix_usage_logs_user_id", "usage_logs", ["user_id"])
    op.create_index("ix_usage_logs_created_at", "usage_logs", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_usage_logs_created_at", table_name="usage_logs")
    op.drop_index("ix_usage_logs_user_id", table_name="usage_logs")
    op.drop_table("usage_logs")
    op.drop_index("ix_reports_user_id", table_name="reports")
    op.drop_table("reports")
    op.drop_index("ix_users_reset_token", table_name="users")
    op.drop_table("users")
    bind = op.get_bind()
    for enum in (usage_action, subscription_status, subscription_plan, user_role, auth_provider):
        enum.drop(bind, checkfirst=True)
