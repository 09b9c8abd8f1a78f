"""Request/response schemas for the referral program."""

from __future__ import annotations

from nurnexus.schemas import CamelModel


class ApplyReferralRequest(CamelModel):
    referral_code: str | None = None


class ReferralInfoResponse(CamelModel):
    referral_code: str
    referral_count: int = 0
    sawab_points: int = 0


class PointsAwardResponse(CamelModel):
    """Message plus the caller's updated balance."""

    message: str
    sawab_points: int


class SawabPointsResponse(CamelModel):
    sawab_points: int
