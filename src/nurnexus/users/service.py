"""User profile business logic."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from nurnexus.db.models import User
from nurnexus.errors import ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def update_profile(
    db: AsyncSession,
    user: User,
    name: str | None = None,
    profile_picture: str | None = None,
) -> User:
    """
    Update user profile fields. Fields left as None are unchanged.

    Raises:
        ValidationError: If the name is blank.
    """
    changed: list[str] = []
    if name is not None:
        name = name.strip()
        if not name:
            msg = "Name cannot be empty"
            raise ValidationError(msg)
        user.name = name
        changed.append("name")

    if profile_picture is not None:
        user.profile_picture = profile_picture.strip()
        changed.append("profile_picture")

    if changed:
        await db.flush()
        logger.info("profile_updated", user_id=user.id, fields=changed)
    return user
