"""Profile routes: one per access tier, plus the diagnostic directory dump."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from oauthgate.api.dependencies import (
    AuthenticatedUserDep,
    DirectoryDep,
    RegisteredUserDep,
    SettingsDep,
)
from oauthgate.schemas.user import ProfileOut, UserList, UserOut

router = APIRouter(prefix="/api", tags=["profile"])


@router.get("/profile", response_model=ProfileOut)
async def get_profile(user: RegisteredUserDep) -> ProfileOut:
    """Fully gated: requires a completed registration."""
    return ProfileOut(
        message="Protected route accessed successfully",
        user=UserOut.model_validate(user),
    )


@router.get("/basic-profile", response_model=ProfileOut)
async def get_basic_profile(user: AuthenticatedUserDep) -> ProfileOut:
    """Authenticated only; available before registration completes."""
    return ProfileOut(
        message="Basic profile accessed successfully",
        user=UserOut.model_validate(user),
    )


@router.get("/users", response_model=UserList)
async def list_users(directory: DirectoryDep, settings: SettingsDep) -> UserList:
    """Dump the directory. Disabled in production unless EXPOSE_USER_DIRECTORY is set."""
    if not settings.user_directory_exposed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    users = await directory.all()
    return UserList(total=len(users), items=[UserOut.model_validate(u) for u in users])
