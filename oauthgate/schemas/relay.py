"""Wire format of the backend-of-record relay call."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RelayRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    google_id: str = Field(alias="googleId")
    email: str
    name: str
    picture: str | None = None
    access_token: str = Field(alias="accessToken")


class RelayResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    success: bool = False
    token: str | None = None
    user: dict[str, Any] | None = None
    is_new_user: bool | None = Field(default=None, alias="isNewUser")
    message: str | None = None
