"""Referral router: codes, redemption and sawab points."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from nurnexus.auth.dependencies import get_current_user
from nurnexus.database import get_session
from nurnexus.db.models import User
from nurnexus.referral.schemas import (
    ApplyReferralRequest,
    PointsAwardResponse,
    ReferralInfoResponse,
    SawabPointsResponse,
)
from nurnexus.referral.service import (
    apply_referral_code,
    get_referral_info,
    get_sawab_points,
    share_referral_link,
)

router = APIRouter(prefix="/api/referral", tags=["Referral"])


@router.get("", response_model=ReferralInfoResponse)
async def referral_info(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ReferralInfoResponse:
    """Get the caller's referral code, creating it on first access."""
    info = await get_referral_info(db, user)
    return ReferralInfoResponse(**info)


@router.post("/apply", response_model=PointsAwardResponse)
async def apply_code(
    body: ApplyReferralRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PointsAwardResponse:
    points = await apply_referral_code(db, user, body.referral_code)
    return PointsAwardResponse(message="Referral code applied successfully", sawab_points=points)


@router.post("/share", response_model=PointsAwardResponse)
async def share(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PointsAwardResponse:
    points = await share_referral_link(db, user)
    return PointsAwardResponse(message="Points awarded for sharing", sawab_points=points)


@router.get("/points", response_model=SawabPointsResponse)
async def points(user: User = Depends(get_current_user)) -> SawabPointsResponse:
    return SawabPointsResponse(sawab_points=get_sawab_points(user))
