"""Repository for PushToken registration and lookup."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from projectpush.core.exceptions import PersistenceError
from projectpush.models.push_token import Platform, PushToken, default_preferences
from projectpush.models.shared import generate_uuid, utc_now

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class PushTokenRepository:
    def __init__(self, db: Session):
        self.db = db

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError(f"Failed to write push token: {exc}") from exc

    def get(self, user_id: UUID, token: str) -> PushToken | None:
        return (
            self.db.query(PushToken)
            .filter(PushToken.user_id == user_id, PushToken.token == token)
            .first()
        )

    def upsert(
        self,
        *,
        user_id: UUID,
        token: str,
        platform: str | None = None,
        device_id: str | None = None,
        device_name: str | None = None,
        preferences: dict[str, Any] | None = None,
    ) -> PushToken:
        """Insert or refresh the (user_id, token) row.

        Omitted fields keep their stored values on update. The row is
        always reactivated and its ``last_used_at`` refreshed.
        """
        now = utc_now()
        updates: dict[str, Any] = {"is_active": True, "last_used_at": now, "updated_at": now}
        if platform:
            updates["platform"] = platform
        if device_id:
            updates["device_id"] = device_id
        if device_name:
            updates["device_name"] = device_name
        if preferences is not None:
            updates["preferences"] = preferences

        values: dict[str, Any] = {
            "id": generate_uuid(),
            "user_id": user_id,
            "token": token,
            "platform": platform or Platform.ANDROID.value,
            "device_id": device_id,
            "device_name": device_name,
            "is_active": True,
            "last_used_at": now,
            "preferences": preferences if preferences is not None else default_preferences(),
            "created_at": now,
            "updated_at": now,
        }

        insert = _UPSERT_DIALECTS.get(self.db.get_bind().dialect.name)
        try:
            if insert is not None:
                stmt = insert(PushToken).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=["user_id", "token"],
                    set_=updates,
                )
                self.db.execute(stmt)
            else:
                self._insert_or_update(values, updates)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError(f"Failed to register push token: {exc}") from exc
        self._commit()

        row = self.get(user_id, token)
        if row is None:
            raise PersistenceError("Push token vanished after upsert")
        self.db.refresh(row)
        return row

    def _insert_or_update(self, values: dict[str, Any], updates: dict[str, Any]) -> None:
        # Dialects without ON CONFLICT: the unique constraint still decides.
        try:
            with self.db.begin_nested():
                self.db.add(PushToken(**values))
        except IntegrityError:
            (
                self.db.query(PushToken)
                .filter(
                    PushToken.user_id == values["user_id"],
                    PushToken.token == values["token"],
                )
                .update(updates, synchronize_session=False)
            )

    def deactivate(self, user_id: UUID, token: str) -> bool:
        """Soft-delete the token. Returns False when no such row exists."""
        count = (
            self.db.query(PushToken)
            .filter(PushToken.user_id == user_id, PushToken.token == token)
            .update({"is_active": False, "updated_at": utc_now()}, synchronize_session=False)
        )
        self._commit()
        return count > 0

    def set_preferences_for_user(self, user_id: UUID, preferences: dict[str, Any]) -> int:
        count = (
            self.db.query(PushToken)
            .filter(PushToken.user_id == user_id, PushToken.is_active == True)  # noqa: E712
            .update(
                {"preferences": preferences, "updated_at": utc_now()},
                synchronize_session=False,
            )
        )
        self._commit()
        return count

    def list_active(self, user_id: UUID) -> list[PushToken]:
        return (
            self.db.query(PushToken)
            .filter(PushToken.user_id == user_id, PushToken.is_active == True)  # noqa: E712
            .order_by(PushToken.created_at)
            .all()
        )

    def list_active_for_users(self, user_ids: list[UUID]) -> list[PushToken]:
        if not user_ids:
            return []
        return (
            self.db.query(PushToken)
            .filter(PushToken.user_id.in_(user_ids), PushToken.is_active == True)  # noqa: E712
            .order_by(PushToken.created_at)
            .all()
        )

    def touch(self, token_ids: list[UUID]) -> None:
        """Refresh ``last_used_at`` for tokens the gateway accepted."""
        if not token_ids:
            return
        (
            self.db.query(PushToken)
            .filter(PushToken.id.in_(token_ids))
            .update({"last_used_at": utc_now()}, synchronize_session=False)
        )
        self._commit()

    def count_active(self) -> int:
        return (
            self.db.query(PushToken)
            .filter(PushToken.is_active == True)  # noqa: E712
            .count()
        )

    def count_users_with_active_tokens(self) -> int:
        return (
            self.db.query(func.count(func.distinct(PushToken.user_id)))
            .filter(PushToken.is_active == True)  # noqa: E712
            .scalar()
            or 0
        )
