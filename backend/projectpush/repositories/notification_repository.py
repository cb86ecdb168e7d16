"""Repository for Notification CRUD operations."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from projectpush.core.exceptions import PersistenceError
from projectpush.models.notification import (
    DEFAULT_CHANNEL_ID,
    Notification,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from projectpush.models.shared import generate_uuid, utc_now


class NotificationRepository:
    def __init__(self, db: Session):
        self.db = db

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError(f"Failed to write notification: {exc}") from exc

    def create(
        self,
        *,
        user_id: UUID,
        title: str,
        body: str,
        type: str = NotificationType.GENERAL.value,
        data: dict[str, Any] | None = None,
        priority: str = NotificationPriority.NORMAL.value,
        channel_id: str | None = DEFAULT_CHANNEL_ID,
        project_id: UUID | None = None,
        client_id: UUID | None = None,
    ) -> Notification:
        notification = Notification(
            id=generate_uuid(),
            user_id=user_id,
            title=title,
            body=body,
            type=type,
            data=data or {},
            priority=priority,
            channel_id=channel_id,
            project_id=project_id,
            client_id=client_id,
            status=NotificationStatus.PENDING.value,
        )
        self.db.add(notification)
        self._commit()
        self.db.refresh(notification)
        return notification

    def bulk_create(
        self,
        *,
        user_ids: list[UUID],
        title: str,
        body: str,
        type: str = NotificationType.GENERAL.value,
        data: dict[str, Any] | None = None,
        priority: str = NotificationPriority.NORMAL.value,
        channel_id: str | None = DEFAULT_CHANNEL_ID,
    ) -> list[Notification]:
        """Create one pending notification per user in a single commit."""
        notifications = [
            Notification(
                id=generate_uuid(),
                user_id=user_id,
                title=title,
                body=body,
                type=type,
                data=dict(data or {}),
                priority=priority,
                channel_id=channel_id,
                status=NotificationStatus.PENDING.value,
            )
            for user_id in user_ids
        ]
        self.db.add_all(notifications)
        self._commit()
        for notification in notifications:
            self.db.refresh(notification)
        return notifications

    def get_for_user(self, notification_id: UUID, user_id: UUID) -> Notification | None:
        return (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
        )

    def _filtered(
        self,
        user_id: UUID,
        status: str | None = None,
        type: str | None = None,
    ) -> Query:  # type: ignore[type-arg]
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if status is not None:
            query = query.filter(Notification.status == status)
        if type is not None:
            query = query.filter(Notification.type == type)
        return query

    def get_all(
        self,
        user_id: UUID,
        skip: int = 0,
        limit: int = 20,
        status: str | None = None,
        type: str | None = None,
    ) -> list[Notification]:
        return (
            self._filtered(user_id, status=status, type=type)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def count(
        self,
        user_id: UUID,
        status: str | None = None,
        type: str | None = None,
    ) -> int:
        return self._filtered(user_id, status=status, type=type).count()

    def count_unread(self, user_id: UUID) -> int:
        return (
            self.db.query(Notification)
            .filter(
                Notification.user_id == user_id,
                Notification.status != NotificationStatus.READ.value,
            )
            .count()
        )

    def mark_sent(self, notification: Notification, receipt_id: str | None = None) -> Notification:
        notification.status = NotificationStatus.SENT.value  # type: ignore[assignment]
        notification.sent_at = utc_now()  # type: ignore[assignment]
        notification.receipt_id = receipt_id  # type: ignore[assignment]
        self._commit()
        self.db.refresh(notification)
        return notification

    def mark_failed(self, notification: Notification, error_message: str) -> Notification:
        notification.status = NotificationStatus.FAILED.value  # type: ignore[assignment]
        notification.error_message = error_message  # type: ignore[assignment]
        self._commit()
        self.db.refresh(notification)
        return notification

    def mark_many_sent(self, notification_ids: list[UUID]) -> int:
        if not notification_ids:
            return 0
        now = utc_now()
        count = (
            self.db.query(Notification)
            .filter(Notification.id.in_(notification_ids))
            .update(
                {
                    "status": NotificationStatus.SENT.value,
                    "sent_at": now,
                    "updated_at": now,
                },
                synchronize_session=False,
            )
        )
        self._commit()
        return count

    def mark_as_read(self, notification: Notification) -> Notification:
        """Set status to read. A record already read keeps its first ``read_at``."""
        if notification.status == NotificationStatus.READ.value:
            return notification
        notification.status = NotificationStatus.READ.value  # type: ignore[assignment]
        notification.read_at = utc_now()  # type: ignore[assignment]
        self._commit()
        self.db.refresh(notification)
        return notification

    def mark_all_as_read(self, user_id: UUID) -> int:
        now = utc_now()
        count = (
            self.db.query(Notification)
            .filter(
                Notification.user_id == user_id,
                Notification.status != NotificationStatus.READ.value,
            )
            .update(
                {
                    "status": NotificationStatus.READ.value,
                    "read_at": now,
                    "updated_at": now,
                },
                synchronize_session=False,
            )
        )
        self._commit()
        return count

    def delete(self, notification: Notification) -> None:
        self.db.delete(notification)
        self._commit()

    def _date_range(
        self,
        column: Any,
        start_date: datetime | None,
        end_date: datetime | None,
    ) -> Query:  # type: ignore[type-arg]
        query = self.db.query(column, func.count(Notification.id))
        if start_date is not None:
            query = query.filter(Notification.created_at >= start_date)
        if end_date is not None:
            query = query.filter(Notification.created_at <= end_date)
        return query.group_by(column)

    def count_by_status(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> dict[str, int]:
        rows = self._date_range(Notification.status, start_date, end_date).all()
        return {str(status): int(count) for status, count in rows}

    def count_by_type(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> dict[str, int]:
        rows = self._date_range(Notification.type, start_date, end_date).all()
        return {str(type_): int(count) for type_, count in rows}
