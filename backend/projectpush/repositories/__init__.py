from projectpush.repositories.notification_repository import NotificationRepository
from projectpush.repositories.push_token_repository import PushTokenRepository

__all__ = [
    "NotificationRepository",
    "PushTokenRepository",
]
