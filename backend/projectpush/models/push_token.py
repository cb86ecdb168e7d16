"""PushToken model: per-device delivery addresses and their preferences."""

from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Index,
    String,
    UniqueConstraint,
    func,
)

from projectpush.core.database import Base
from projectpush.models.shared import UUIDType, generate_uuid, utc_now


class Platform(str, Enum):
    IOS = "ios"
    ANDROID = "android"
    WEB = "web"


class PreferenceKey(str, Enum):
    """Keys of the per-token preference blob, as the mobile client names them."""

    PROJECT_UPDATES = "projectUpdates"
    PAYMENTS = "payments"
    MESSAGES = "messages"
    REMINDERS = "reminders"
    MARKETING = "marketing"


def default_preferences() -> dict[str, Any]:
    """Every category on except marketing."""
    return {
        PreferenceKey.PROJECT_UPDATES.value: True,
        PreferenceKey.PAYMENTS.value: True,
        PreferenceKey.MESSAGES.value: True,
        PreferenceKey.REMINDERS.value: True,
        PreferenceKey.MARKETING.value: False,
    }


class PushToken(Base):
    """PushToken model - one row per (user, device address).

    Rows are soft-deleted through ``is_active`` and never purged, so that
    past registrations stay auditable.
    """

    __tablename__ = "push_tokens"
    __table_args__ = (
        UniqueConstraint("user_id", "token", name="uq_push_tokens_user_id_token"),
        Index("ix_push_tokens_token", "token"),
        Index("ix_push_tokens_user_id", "user_id"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    user_id = Column(UUIDType, nullable=False)
    token = Column(String(500), nullable=False)
    platform = Column(String(20), nullable=False, default=Platform.ANDROID.value)
    device_id = Column(String(255), nullable=True)
    device_name = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    preferences = Column(JSON, nullable=True, default=default_preferences)

    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
    )
