"""create users table

Revision ID: 001
Revises: 
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision  = "001"
down_revision = None
branch_labels = None
depends_on    = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id",             sa.String(36),              primary_key=True),
        sa.Column("email",          sa.String(255),             nullable=False),
        sa.Column("wallet_address", sa.String(255),             nullable=True),
        sa.Column("username",       sa.String(50),              nullable=True),
        sa.Column("role",           sa.String(20),              nullable=False, server_default="user"),
        sa.Column("github",         sa.String(100),             nullable=True),
        sa.Column("first_name",     sa.String(120),             nullable=True),
        sa.Column("last_name",      sa.String(120),             nullable=True),
        sa.Column("display_name",   sa.String(120),             nullable=True),
        sa.Column("bio",            sa.Text(),                  nullable=True),
        sa.Column("location",       sa.String(120),             nullable=True),
        sa.Column("skills",         sa.JSON(),                  nullable=True),
        sa.Column("socials",        sa.Text(),                  nullable=True),
        sa.Column("xp_points",      sa.Integer(),               nullable=False, server_default="0"),
        sa.Column("created_at",     sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at",     sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("email",          name="uq_users_email"),
        sa.UniqueConstraint("wallet_address", name="uq_users_wallet_address"),
    )
    op.create_index("ix_users_email",    "users", ["email"],    unique=False)
    op.create_index("ix_users_username", "users", ["username"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_users_username", table_name="users")
    op.drop_index("ix_users_email",    table_name="users")
    op.drop_table("users")
