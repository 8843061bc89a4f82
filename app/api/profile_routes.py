"""Pulseboard — Social Profile API Routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_current_user_id, get_profile_service, to_http_error
from app.core.errors import PulseboardError
from app.core.logging import get_logger
from app.models.entity_models import CamelModel, DeleteResult, SocialProfile
from app.services.profile_service import SocialProfileService

logger = get_logger("api.profiles")

router = APIRouter(prefix="/api/social-profiles", tags=["Social Profiles"])


# ── Request Models ──


class ProfileCreate(CamelModel):
    platform: str
    username: str
    profile_url: str
    connected: bool = True
    followers: int = 0


class ProfileUpdate(CamelModel):
    username: Optional[str] = None
    profile_url: Optional[str] = None
    connected: Optional[bool] = None
    followers: Optional[int] = None


async def _owned(service: SocialProfileService, profile_id: str, user_id: str) -> SocialProfile:
    profile = await service.get_profile_by_id(profile_id)
    if profile is None or profile.user_id != user_id:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


# ── Endpoints ──


@router.get("", response_model=List[SocialProfile])
async def list_profiles(
    user_id: str = Depends(get_current_user_id),
    service: SocialProfileService = Depends(get_profile_service),
):
    """All social profiles linked by the current user."""
    try:
        return await service.get_profiles_by_user_id(user_id)
    except PulseboardError as e:
        raise to_http_error(e) from e


@router.post("", response_model=SocialProfile, status_code=201)
async def add_profile(
    body: ProfileCreate,
    user_id: str = Depends(get_current_user_id),
    service: SocialProfileService = Depends(get_profile_service),
):
    try:
        return await service.add_profile({**body.model_dump(), "user_id": user_id})
    except PulseboardError as e:
        raise to_http_error(e) from e


@router.put("/{profile_id}", response_model=SocialProfile)
async def update_profile(
    profile_id: str,
    body: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    service: SocialProfileService = Depends(get_profile_service),
):
    try:
        await _owned(service, profile_id, user_id)
        updated = await service.update_profile(profile_id, body.model_dump(exclude_unset=True))
    except PulseboardError as e:
        raise to_http_error(e) from e
    if updated is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return updated


@router.delete("/{profile_id}", response_model=DeleteResult)
async def delete_profile(
    profile_id: str,
    user_id: str = Depends(get_current_user_id),
    service: SocialProfileService = Depends(get_profile_service),
):
    try:
        await _owned(service, profile_id, user_id)
        return await service.delete_profile(profile_id)
    except PulseboardError as e:
        raise to_http_error(e) from e
