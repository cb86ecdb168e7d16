"""Notification model: logical notifications and their delivery status."""

from enum import Enum

from sqlalchemy import JSON, Column, DateTime, Index, String, Text, func

from projectpush.core.database import Base
from projectpush.models.shared import UUIDType, generate_uuid, utc_now


class NotificationType(str, Enum):
    PROJECT_UPDATE = "project_update"
    PROJECT_APPROVED = "project_approved"
    PROJECT_REJECTED = "project_rejected"
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_PENDING = "payment_pending"
    MESSAGE = "message"
    REMINDER = "reminder"
    SYSTEM = "system"
    GENERAL = "general"


class NotificationStatus(str, Enum):
    """Delivery lifecycle: pending -> sent | failed, then read on request.

    DELIVERED is reserved for provider delivery receipts; nothing in this
    service assigns it.
    """

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    READ = "read"


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


DEFAULT_CHANNEL_ID = "default"


class Notification(Base):
    """Notification model - one row per recipient per send attempt."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_id", "user_id"),
        Index("ix_notifications_status", "status"),
        Index("ix_notifications_type", "type"),
        Index("ix_notifications_created_at", "created_at"),
        Index("ix_notifications_user_id_status", "user_id", "status"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    user_id = Column(UUIDType, nullable=False)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    type = Column(String(50), nullable=False, default=NotificationType.GENERAL.value)
    data = Column(JSON, nullable=True, default=dict)
    status = Column(String(20), nullable=False, default=NotificationStatus.PENDING.value)
    priority = Column(String(20), nullable=False, default=NotificationPriority.NORMAL.value)
    channel_id = Column(String(100), nullable=True, default=DEFAULT_CHANNEL_ID)

    project_id = Column(UUIDType, nullable=True)
    client_id = Column(UUIDType, nullable=True)

    receipt_id = Column(String(255), nullable=True)
    error_message = Column(Text, nullable=True)

    sent_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
    )
