"""ORM models.

A single ``users`` table holds credentials, verification and reset state,
lockout counters, Google linkage and referral attributes.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from nurnexus.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_email", "email", unique=True),
        Index("ix_users_referral_code", "referral_code", unique=True),
        Index("ix_users_google_id", "google_id", unique=True),
        Index("ix_users_verification_token", "verification_token"),
        Index("ix_users_reset_token", "reset_token"),
        CheckConstraint(
            "password_hash IS NOT NULL OR google_id IS NOT NULL",
            name="ck_users_has_credential",
        ),
        CheckConstraint("sawab_points >= 0", name="ck_users_sawab_points_non_negative"),
        CheckConstraint("referral_count >= 0", name="ck_users_referral_count_non_negative"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    profile_picture: Mapped[str] = mapped_column(Text, default="", server_default="")
    password_hash: Mapped[str | None] = mapped_column(String(256), nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())
    google_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # --- Verification / reset ---
    verification_token: Mapped[str | None] = mapped_column(String(128), nullable=True)
    verification_token_expiry: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reset_token: Mapped[str | None] = mapped_column(String(128), nullable=True)
    reset_token_expiry: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # --- Account guard ---
    login_attempts: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    account_locked: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # --- Referral program ---
    referral_code: Mapped[str | None] = mapped_column(String(8), nullable=True)
    referred_by: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    sawab_points: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    referral_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )
