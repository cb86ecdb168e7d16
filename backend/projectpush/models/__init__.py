from projectpush.models.notification import (
    Notification,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from projectpush.models.push_token import Platform, PreferenceKey, PushToken

__all__ = [
    "Notification",
    "NotificationPriority",
    "NotificationStatus",
    "NotificationType",
    "Platform",
    "PreferenceKey",
    "PushToken",
]
