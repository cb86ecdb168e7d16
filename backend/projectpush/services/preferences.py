"""Maps notification categories to the preference flag that gates them."""

from typing import Any

from projectpush.models.notification import NotificationType
from projectpush.models.push_token import PreferenceKey, PushToken

# None means the type is always delivered.
_PREFERENCE_BY_TYPE: dict[NotificationType, PreferenceKey | None] = {
    NotificationType.PROJECT_UPDATE: PreferenceKey.PROJECT_UPDATES,
    NotificationType.PROJECT_APPROVED: PreferenceKey.PROJECT_UPDATES,
    NotificationType.PROJECT_REJECTED: PreferenceKey.PROJECT_UPDATES,
    NotificationType.PAYMENT_RECEIVED: PreferenceKey.PAYMENTS,
    NotificationType.PAYMENT_PENDING: PreferenceKey.PAYMENTS,
    NotificationType.MESSAGE: PreferenceKey.MESSAGES,
    NotificationType.REMINDER: PreferenceKey.REMINDERS,
    NotificationType.GENERAL: None,
    NotificationType.SYSTEM: None,
}

_unmapped = set(NotificationType) - set(_PREFERENCE_BY_TYPE)
if _unmapped:
    raise RuntimeError(f"Notification types without a preference rule: {sorted(_unmapped)}")


def preference_key_for(notification_type: NotificationType | str) -> PreferenceKey | None:
    """Return the governing preference key, or None for ungated types."""
    return _PREFERENCE_BY_TYPE[NotificationType(notification_type)]


def allows(preferences: dict[str, Any] | None, notification_type: NotificationType | str) -> bool:
    key = preference_key_for(notification_type)
    if key is None:
        return True
    # A key missing from an older blob counts as opted in.
    return bool((preferences or {}).get(key.value, True))


def should_deliver(token: PushToken, notification_type: NotificationType | str) -> bool:
    """Whether the token's owner accepts notifications of this type."""
    return allows(token.preferences, notification_type)  # type: ignore[arg-type]
