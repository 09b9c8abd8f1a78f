"""Referral code generation.

Codes are up to 8 uppercase alphanumeric characters: a fragment of the
owner's id followed by random hex. Uniqueness is checked with a query and
finally enforced by the unique index on ``users.referral_code``.
"""

from __future__ import annotations

import re
import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nurnexus.db.models import User

REFERRAL_CODE_LENGTH = 8
REFERRAL_CODE_MAX_ATTEMPTS = 10

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def generate_referral_code(user_id: str) -> str:
    """Derive a candidate code from the user id plus 3 random bytes."""
    base = str(user_id)[:6] + secrets.token_hex(3)
    return _NON_ALNUM.sub("", base).upper()[:REFERRAL_CODE_LENGTH]


def normalize_referral_code(code: str | None) -> str:
    """Normalize a code for case-insensitive lookup."""
    return (code or "").strip().upper()


async def referral_code_taken(db: AsyncSession, code: str) -> bool:
    """True when some user already holds ``code``."""
    existing = await db.execute(select(User.id).where(User.referral_code == code))
    return existing.scalar_one_or_none() is not None

