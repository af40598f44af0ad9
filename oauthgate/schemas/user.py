"""Schemas for user and auth resources."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class UserOut(BaseModel):
    """Public view of a directory record. The provider access token is never exposed."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    provider_id: str = Field(alias="googleId")
    email: str
    display_name: str = Field(alias="name")
    picture_url: str | None = Field(default=None, alias="picture")
    created_at: datetime = Field(alias="createdAt")
    last_login_at: datetime = Field(alias="lastLoginAt")
    is_registration_complete: bool = Field(alias="isRegistrationComplete")
    registration_completed_at: datetime | None = Field(
        default=None, alias="registrationCompletedAt"
    )
    phone: str | None = None
    date_of_birth: date | None = Field(default=None, alias="dateOfBirth")
    address: dict[str, Any] | str | None = None
    preferences: dict[str, Any] | None = None


class UserList(BaseModel):
    total: int
    items: list[UserOut]


class AuthStatusOut(BaseModel):
    authenticated: bool
    user: UserOut | None = None


class RegistrationIn(BaseModel):
    # phone is validated by the directory so a missing value maps to 400
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    phone: str | None = Field(default=None, max_length=50)
    date_of_birth: date | None = Field(default=None, alias="dateOfBirth")
    address: dict[str, Any] | str | None = None
    preferences: dict[str, Any] | None = None

    def to_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class RegistrationOut(BaseModel):
    message: str = "Registration completed successfully"
    user: UserOut


class RegistrationFieldsOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: bool
    date_of_birth: bool = Field(alias="dateOfBirth")
    address: bool
    preferences: bool


class RegistrationStatusOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_registration_complete: bool = Field(alias="isRegistrationComplete")
    registration_completed_at: datetime | None = Field(
        default=None, alias="registrationCompletedAt"
    )
    fields: RegistrationFieldsOut


class ProfileOut(BaseModel):
    message: str
    user: UserOut
