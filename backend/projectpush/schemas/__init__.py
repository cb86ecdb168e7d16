from projectpush.schemas.notification import (
    BroadcastStats,
    DeliveryStats,
    NotificationBroadcast,
    NotificationBroadcastResponse,
    NotificationListResponse,
    NotificationResponse,
    NotificationSend,
    NotificationSendResponse,
    NotificationStatsResponse,
    PaginationResponse,
)
from projectpush.schemas.push_token import (
    PreferencesResponse,
    PreferencesUpdate,
    PushTokenRegister,
    PushTokenRegisterResponse,
    PushTokenUnregister,
    SuccessResponse,
)

__all__ = [
    "BroadcastStats",
    "DeliveryStats",
    "NotificationBroadcast",
    "NotificationBroadcastResponse",
    "NotificationListResponse",
    "NotificationResponse",
    "NotificationSend",
    "NotificationSendResponse",
    "NotificationStatsResponse",
    "PaginationResponse",
    "PreferencesResponse",
    "PreferencesUpdate",
    "PushTokenRegister",
    "PushTokenRegisterResponse",
    "PushTokenUnregister",
    "SuccessResponse",
]
