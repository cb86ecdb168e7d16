"""Service for push token registration and notification delivery."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from projectpush.core.exceptions import (
    InvalidAddressFormatError,
    MissingFieldError,
    NotificationError,
    NotificationNotFoundError,
)
from projectpush.models.notification import (
    DEFAULT_CHANNEL_ID,
    Notification,
    NotificationPriority,
    NotificationType,
)
from projectpush.models.push_token import PushToken
from projectpush.repositories.notification_repository import NotificationRepository
from projectpush.repositories.push_token_repository import PushTokenRepository
from projectpush.services.dispatch_engine import (
    BroadcastResult,
    DispatchEngine,
    DispatchResult,
)
from projectpush.services.push_gateway import PushGateway, is_valid_push_address

logger = logging.getLogger(__name__)


@dataclass
class NotificationPage:
    items: list[Notification]
    total: int
    page: int
    limit: int
    unread_count: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC)


class NotificationService:
    """Public entry point for the notification subsystem."""

    def __init__(self, db: Session, gateway: PushGateway):
        self.db = db
        self.token_repo = PushTokenRepository(db)
        self.notification_repo = NotificationRepository(db)
        self.engine = DispatchEngine(db, gateway)

    # ── Push tokens ───────────────────────────────────────────────

    def register_token(
        self,
        user_id: UUID,
        token: str | None,
        platform: str | None = None,
        device_id: str | None = None,
        device_name: str | None = None,
        preferences: dict[str, Any] | None = None,
    ) -> PushToken:
        """Register a device address for ``user_id``, or refresh an existing one."""
        if not token:
            raise MissingFieldError("token")
        if not is_valid_push_address(token):
            raise InvalidAddressFormatError(token)

        logger.info("Registering push token for user %s (platform=%s)", user_id, platform)
        push_token = self.token_repo.upsert(
            user_id=user_id,
            token=token,
            platform=platform,
            device_id=device_id,
            device_name=device_name,
            preferences=preferences,
        )
        logger.info("Push token %s registered for user %s", push_token.id, user_id)
        return push_token

    def unregister_token(self, user_id: UUID, token: str | None) -> None:
        """Deactivate a device address. Unknown tokens are ignored."""
        if not token:
            raise MissingFieldError("token")
        if self.token_repo.deactivate(user_id, token):
            logger.info("Push token deactivated for user %s", user_id)

    def update_preferences(
        self, user_id: UUID, preferences: dict[str, Any] | None
    ) -> dict[str, Any]:
        """Replace the preference blob on every active token of the user."""
        if preferences is None:
            raise MissingFieldError("preferences")
        count = self.token_repo.set_preferences_for_user(user_id, preferences)
        logger.info("Updated notification preferences on %d tokens of user %s", count, user_id)
        return preferences

    # ── Delivery ──────────────────────────────────────────────────

    def send_notification(
        self,
        user_id: UUID | None,
        title: str | None,
        body: str | None,
        type: NotificationType | str | None = None,
        data: dict[str, Any] | None = None,
        priority: NotificationPriority | str | None = None,
        channel_id: str | None = None,
        project_id: UUID | None = None,
        client_id: UUID | None = None,
    ) -> DispatchResult:
        """Send a notification to one user.

        Delivery problems never raise: inspect ``push_sent`` and the
        counts on the returned result.
        """
        missing = [
            name
            for name, value in (("user_id", user_id), ("title", title), ("body", body))
            if not value
        ]
        if missing:
            raise MissingFieldError(*missing)

        logger.info("Sending %s notification to user %s", type or "general", user_id)
        return self.engine.dispatch(
            user_id=user_id,  # type: ignore[arg-type]
            title=title,  # type: ignore[arg-type]
            body=body,  # type: ignore[arg-type]
            type=NotificationType(type or NotificationType.GENERAL),
            data=data,
            priority=NotificationPriority(priority or NotificationPriority.NORMAL),
            channel_id=channel_id or DEFAULT_CHANNEL_ID,
            project_id=project_id,
            client_id=client_id,
        )

    def broadcast_notification(
        self,
        user_ids: list[UUID] | None,
        title: str | None,
        body: str | None,
        type: NotificationType | str | None = None,
        data: dict[str, Any] | None = None,
        priority: NotificationPriority | str | None = None,
    ) -> BroadcastResult:
        """Send the same notification to many users in one batched submission."""
        if not user_ids:
            raise MissingFieldError("user_ids")
        missing = [name for name, value in (("title", title), ("body", body)) if not value]
        if missing:
            raise MissingFieldError(*missing)

        logger.info("Broadcasting notification to %d users", len(user_ids))
        return self.engine.broadcast(
            user_ids=user_ids,
            title=title,  # type: ignore[arg-type]
            body=body,  # type: ignore[arg-type]
            type=NotificationType(type or NotificationType.GENERAL),
            data=data,
            priority=NotificationPriority(priority or NotificationPriority.NORMAL),
        )

    def send_to_user(
        self,
        user_id: UUID,
        title: str,
        body: str,
        type: NotificationType | str = NotificationType.GENERAL,
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Internal helper for other subsystems; reports failures instead of raising."""
        try:
            result = self.send_notification(user_id, title, body, type=type, data=data)
        except NotificationError as exc:
            logger.exception("Error sending notification to user %s", user_id)
            return {"success": False, "reason": exc.message}
        except ValueError as exc:
            logger.exception("Invalid notification for user %s", user_id)
            return {"success": False, "reason": str(exc)}

        response: dict[str, Any] = {
            "success": result.push_sent,
            "notification_id": result.notification_id,
        }
        if not result.push_sent:
            response["reason"] = result.outcome.value
        return response

    # ── Inbox ─────────────────────────────────────────────────────

    def list_notifications(
        self,
        user_id: UUID,
        page: int = 1,
        limit: int = 20,
        status: str | None = None,
        type: str | None = None,
    ) -> NotificationPage:
        skip = (page - 1) * limit
        items = self.notification_repo.get_all(
            user_id, skip=skip, limit=limit, status=status, type=type
        )
        return NotificationPage(
            items=items,
            total=self.notification_repo.count(user_id, status=status, type=type),
            page=page,
            limit=limit,
            unread_count=self.notification_repo.count_unread(user_id),
        )

    def _get_owned(self, user_id: UUID, notification_id: UUID) -> Notification:
        notification = self.notification_repo.get_for_user(notification_id, user_id)
        if notification is None:
            raise NotificationNotFoundError()
        return notification

    def mark_read(self, user_id: UUID, notification_id: UUID) -> Notification:
        """Mark one notification read, whatever its delivery status."""
        return self.notification_repo.mark_as_read(self._get_owned(user_id, notification_id))

    def mark_all_read(self, user_id: UUID) -> int:
        return self.notification_repo.mark_all_as_read(user_id)

    def delete_notification(self, user_id: UUID, notification_id: UUID) -> None:
        self.notification_repo.delete(self._get_owned(user_id, notification_id))

    # ── Reporting ─────────────────────────────────────────────────

    def get_stats(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> dict[str, Any]:
        start_date = _as_utc(start_date)
        end_date = _as_utc(end_date)
        return {
            "notifications": {
                "by_status": self.notification_repo.count_by_status(start_date, end_date),
                "by_type": self.notification_repo.count_by_type(start_date, end_date),
            },
            "tokens": {
                "active": self.token_repo.count_active(),
                "unique_users": self.token_repo.count_users_with_active_tokens(),
            },
        }
