from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.controllers.profile_controller import get_profile, list_profiles, update_role, upsert_profile
from app.core.database import get_db
from app.core.dependencies import RequestSession, get_request_session, require_session
from app.schemas.profile import (
    Profile,
    ProfileListResponse,
    ProfileResponse,
    ProfileUpsert,
    RoleInfo,
    RoleUpdate,
    RoleUpdateResponse,
)

router = APIRouter(prefix="/auth/profile", tags=["Profile"])


@router.get(
    "",
    summary="Get profile",
    description="Lookup by `walletAddress` or `email`; falls back to the caller's session. `all=true` lists every profile.",
)
async def read_profile(
    wallet_address: str | None = Query(None, alias="walletAddress", min_length=1),
    email: str | None = Query(None),
    all_profiles: bool = Query(False, alias="all"),
    session: RequestSession | None = Depends(get_request_session),
    db: AsyncSession = Depends(get_db),
):
    if all_profiles:
        users = await list_profiles(db)
        return ProfileListResponse(profiles=[Profile.from_user(u) for u in users])

    user = await get_profile(db, wallet_address, email, session)
    return ProfileResponse(profile=Profile.from_user(user))


@router.post("", response_model=ProfileResponse, summary="Create or update profile")
async def save_profile(
    payload: ProfileUpsert,
    db: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    user = await upsert_profile(db, payload)
    return ProfileResponse(profile=Profile.from_user(user))


@router.patch("/role", response_model=RoleUpdateResponse, summary="Change a user's role")
async def change_role(
    payload: RoleUpdate,
    session: RequestSession = Depends(require_session),
    db: AsyncSession = Depends(get_db),
) -> RoleUpdateResponse:
    user = await update_role(db, payload, session)
    return RoleUpdateResponse(
        user=RoleInfo(email=user.email, role=user.role, updated_at=user.updated_at)
    )
