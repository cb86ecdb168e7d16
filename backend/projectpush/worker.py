import logging
from typing import Any
from uuid import UUID

from projectpush.core.database import SessionLocal
from projectpush.services.notification_service import NotificationService
from projectpush.services.push_gateway import get_push_gateway
from projectpush.tasks import redis_settings

logger = logging.getLogger(__name__)


async def send_to_user_task(
    ctx: dict[str, Any],
    user_id: str,
    title: str,
    body: str,
    type: str = "general",
    data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Background task: deliver a notification queued by another subsystem."""
    db = SessionLocal()
    try:
        service = NotificationService(db, get_push_gateway())
        result = service.send_to_user(UUID(user_id), title, body, type=type, data=data)
        if not result["success"]:
            logger.info(
                "Queued notification for user %s not delivered: %s",
                user_id,
                result.get("reason"),
            )
        return {
            **result,
            "notification_id": (
                str(result["notification_id"]) if result.get("notification_id") else None
            ),
        }
    finally:
        db.close()


class WorkerSettings:
    functions = [
        send_to_user_task,
    ]
    redis_settings = redis_settings
