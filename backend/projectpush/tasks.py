from typing import Any
from uuid import UUID

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings
from arq.jobs import Job

from projectpush.core.config import settings
from projectpush.models.notification import NotificationType

# Redis connection settings
redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)


async def get_redis_pool() -> ArqRedis:
    """Get or create Redis pool for arq"""
    return await create_pool(redis_settings)


async def enqueue_task(task_name: str, *args: Any, **kwargs: Any) -> Job:
    """
    Enqueue a task to the arq worker.

    Args:
        task_name: Name of the task function
        *args: Positional arguments for the task
        **kwargs: Keyword arguments for the task

    Returns:
        Job object from arq
    """
    pool = await get_redis_pool()
    try:
        job = await pool.enqueue_job(task_name, *args, **kwargs)
        return job  # type: ignore[return-value]
    finally:
        await pool.close()


async def enqueue_send_to_user(
    user_id: UUID,
    title: str,
    body: str,
    type: NotificationType | str = NotificationType.GENERAL,
    data: dict[str, Any] | None = None,
) -> Job:
    """Queue a notification for background delivery.

    Used by request handlers of other subsystems (project approval,
    payments, messaging) that must not wait on the push gateway.
    """
    return await enqueue_task(
        "send_to_user_task",
        str(user_id),
        title,
        body,
        NotificationType(type).value,
        data or {},
    )
