"""Pydantic schemas for Notification."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from projectpush.models.notification import NotificationPriority, NotificationType


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    title: str
    body: str
    type: str
    data: dict[str, Any] | None = None
    status: str
    priority: str
    channel_id: str | None = None
    project_id: UUID | None = None
    client_id: UUID | None = None
    error_message: str | None = None
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    read_at: datetime | None = None
    created_at: datetime


class PaginationResponse(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    pagination: PaginationResponse
    unread_count: int


class NotificationSend(BaseModel):
    """Admin request to notify a single user.

    Required fields are optional here so that a missing one is reported
    as a missing field rather than a schema error.
    """

    user_id: UUID | None = None
    title: str | None = Field(default=None, max_length=255)
    body: str | None = None
    type: NotificationType | None = None
    data: dict[str, Any] | None = None
    priority: NotificationPriority | None = None
    channel_id: str | None = Field(default=None, max_length=100)
    project_id: UUID | None = None
    client_id: UUID | None = None


class DeliveryStats(BaseModel):
    sent: int
    failed: int


class NotificationSendResponse(BaseModel):
    notification_id: UUID
    push_sent: bool
    outcome: str
    stats: DeliveryStats


class NotificationBroadcast(BaseModel):
    user_ids: list[UUID] | None = None
    title: str | None = Field(default=None, max_length=255)
    body: str | None = None
    type: NotificationType | None = None
    data: dict[str, Any] | None = None
    priority: NotificationPriority | None = None


class BroadcastStats(BaseModel):
    users: int
    tokens: int
    sent: int
    failed: int


class NotificationBroadcastResponse(BaseModel):
    stats: BroadcastStats


class NotificationStatsResponse(BaseModel):
    stats: dict[str, Any]
