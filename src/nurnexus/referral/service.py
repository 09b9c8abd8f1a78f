"""
Referral and sawab points business logic.

Point balances only ever move through SQL increments. Applying a code
touches two rows (caller and referrer) and both updates commit together.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from nurnexus.db.models import User
from nurnexus.errors import AlreadyReferredError, CodeGenerationExhausted, NotFoundError, SelfReferralError
from nurnexus.referral.codes import (
    REFERRAL_CODE_MAX_ATTEMPTS,
    generate_referral_code,
    normalize_referral_code,
    referral_code_taken,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

REFERRER_BONUS = 5
REFERRED_BONUS = 2
SHARE_BONUS = 2


async def ensure_referral_code(db: AsyncSession, user: User) -> User:
    """
    Assign a referral code on first access. Idempotent.

    The assignment only applies while the column is still NULL, so two
    concurrent first reads settle on one code. A unique-index collision
    with another user's code triggers a fresh candidate. Taken candidates and
    index collisions share one attempt budget.
    """
    if user.referral_code:
        return user

    user_id = user.id
    for _ in range(REFERRAL_CODE_MAX_ATTEMPTS):
        code = generate_referral_code(user_id)
        if await referral_code_taken(db, code):
            continue
        try:
            await db.execute(
                update(User)
                .where(User.id == user_id, User.referral_code.is_(None))
                .values(referral_code=code)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning("referral_code_collision", user_id=user_id, code=code)
            continue
        await db.refresh(user)
        logger.info("referral_code_assigned", user_id=user_id, code=user.referral_code)
        return user
    raise CodeGenerationExhausted


async def get_referral_info(db: AsyncSession, user: User) -> dict[str, object]:
    """Referral code, count and points for ``user``."""
    user = await ensure_referral_code(db, user)
    return {
        "referral_code": user.referral_code,
        "referral_count": user.referral_count,
        "sawab_points": user.sawab_points,
    }


async def apply_referral_code(db: AsyncSession, user: User, code: str | None) -> int:
    """
    Redeem another user's referral code.

    Returns:
        The caller's new sawab points balance.

    Raises:
        NotFoundError: Unknown code.
        SelfReferralError: The code belongs to the caller.
        AlreadyReferredError: The caller has already redeemed a code.
    """
    code = normalize_referral_code(code)
    referrer = None
    if code:
        result = await db.execute(select(User).where(User.referral_code == code))
        referrer = result.scalar_one_or_none()
    if referrer is None:
        msg = "Invalid referral code"
        raise NotFoundError(msg)

    user_id = user.id
    referrer_id = referrer.id
    if referrer_id == user_id:
        raise SelfReferralError
    if user.referred_by:
        raise AlreadyReferredError

    try:
        result = await db.execute(
            update(User)
            .where(User.id == user_id, User.referred_by.is_(None))
            .values(referred_by=referrer_id, sawab_points=User.sawab_points + REFERRED_BONUS)
            .returning(User.sawab_points)
            .execution_options(synchronize_session=False)
        )
        points = result.scalar_one_or_none()
        if points is None:
            # Another request linked this account first.
            raise AlreadyReferredError

        await db.execute(
            update(User)
            .where(User.id == referrer_id)
            .values(
                sawab_points=User.sawab_points + REFERRER_BONUS,
                referral_count=User.referral_count + 1,
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(user)
    logger.info("referral_applied", user_id=user_id, referrer_id=referrer_id, code=code)
    return int(points)


async def share_referral_link(db: AsyncSession, user: User) -> int:
    """Award the share bonus. Returns the new balance."""
    user_id = user.id
    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(sawab_points=User.sawab_points + SHARE_BONUS)
        .returning(User.sawab_points)
        .execution_options(synchronize_session=False)
    )
    points = result.scalar_one()
    await db.commit()
    await db.refresh(user)
    logger.info("referral_shared", user_id=user_id, sawab_points=points)
    return int(points)


def get_sawab_points(user: User) -> int:
    return user.sawab_points
