"""Users table.

Credentials, verification and reset tokens, lockout counters, Google
linkage and referral attributes all live on one row per account.

Revision ID: 001_users
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_users"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the users table with its indexes and constraints."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("name", sa.String(128), nullable=True),
        sa.Column("profile_picture", sa.Text(), server_default="", nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=True),
        sa.Column("is_verified", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("google_id", sa.String(255), nullable=True),
        # Verification / reset
        sa.Column("verification_token", sa.String(128), nullable=True),
        sa.Column("verification_token_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reset_token", sa.String(128), nullable=True),
        sa.Column("reset_token_expiry", sa.DateTime(timezone=True), nullable=True),
        # Account guard
        sa.Column("login_attempts", sa.Integer(), server_default="0", nullable=False),
        sa.Column("account_locked", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        # Referral program
        sa.Column("referral_code", sa.String(8), nullable=True),
        sa.Column("referred_by", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("sawab_points", sa.Integer(), server_default="0", nullable=False),
        sa.Column("referral_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("password_hash IS NOT NULL OR google_id IS NOT NULL", name="ck_users_has_credential"),
        sa.CheckConstraint("sawab_points >= 0", name="ck_users_sawab_points_non_negative"),
        sa.CheckConstraint("referral_count >= 0", name="ck_users_referral_count_non_negative"),
    )

    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_referral_code", "users", ["referral_code"], unique=True)
    op.create_index("ix_users_google_id", "users", ["google_id"], unique=True)
    op.create_index("ix_users_verification_token", "users", ["verification_token"])
    op.create_index("ix_users_reset_token", "users", ["reset_token"])


def downgrade() -> None:
    """Drop the users table."""
    op.drop_index("ix_users_reset_token", table_name="users")
    op.drop_index("ix_users_verification_token", table_name="users")
    op.drop_index("ix_users_google_id", table_name="users")
    op.drop_index("ix_users_referral_code", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
