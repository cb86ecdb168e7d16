"""Pydantic schemas for push token registration and preferences."""

from uuid import UUID

from pydantic import BaseModel, Field

from projectpush.models.push_token import Platform


class PushTokenRegister(BaseModel):
    token: str | None = Field(default=None, max_length=500)
    platform: Platform | None = None
    device_id: str | None = Field(default=None, max_length=255)
    device_name: str | None = Field(default=None, max_length=255)
    preferences: dict[str, bool] | None = None


class PushTokenUnregister(BaseModel):
    token: str | None = None


class PushTokenRegisterResponse(BaseModel):
    token_id: UUID


class PreferencesUpdate(BaseModel):
    preferences: dict[str, bool] | None = None


class PreferencesResponse(BaseModel):
    preferences: dict[str, bool]


class SuccessResponse(BaseModel):
    success: bool = True
