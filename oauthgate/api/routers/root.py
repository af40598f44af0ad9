"""Liveness routes."""

from __future__ import annotations

from fastapi import APIRouter

from oauthgate.core.config import APP_VERSION
from oauthgate.api.dependencies import OptionalUserDep

router = APIRouter(tags=["health"])


@router.get("/")
async def index(user: OptionalUserDep) -> dict[str, object]:
    return {
        "message": "Google OAuth API Server",
        "status": "running",
        "authenticated": user is not None,
    }


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": APP_VERSION}
