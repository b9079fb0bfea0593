"""create otp_tokens table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "otp_tokens",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("otp_hash", sa.String(255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("attempts_left", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("status IN ('PENDING', 'USED', 'EXPIRED')", name="otp_status_enum"),
    )
    op.create_index("ix_otp_tokens_user_id", "otp_tokens", ["user_id"])
    op.create_index("ix_otp_tokens_user_status", "otp_tokens", ["user_id", "status"])


def downgrade():
    op.drop_index("ix_otp_tokens_user_status", table_name="otp_tokens")
    op.drop_index("ix_otp_tokens_user_id", table_name="otp_tokens")
    op.drop_table("otp_tokens")
