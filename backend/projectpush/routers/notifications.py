"""Notification API endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from projectpush.core.auth import CurrentUser, get_current_user, require_admin
from projectpush.core.database import get_db
from projectpush.core.exceptions import NotificationError
from projectpush.models.notification import NotificationStatus, NotificationType
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
from projectpush.services.notification_service import NotificationService
from projectpush.services.push_gateway import PushGateway, get_push_gateway

router = APIRouter()

UNAUTHORIZED = {401: {"description": "Unauthorized – invalid or missing token"}}
ADMIN_ONLY = {
    **UNAUTHORIZED,
    403: {"description": "Forbidden – admin role required"},
}


def get_notification_service(
    db: Session = Depends(get_db),
    gateway: PushGateway = Depends(get_push_gateway),
) -> NotificationService:
    return NotificationService(db, gateway)


# ── Push tokens ───────────────────────────────────────────────────


@router.post(
    "/token",
    response_model=PushTokenRegisterResponse,
    summary="Register a push token",
    responses={**UNAUTHORIZED, 400: {"description": "Missing or malformed token"}},
)
async def register_token(
    data: PushTokenRegister,
    service: NotificationService = Depends(get_notification_service),
    user: CurrentUser = Depends(get_current_user),
) -> PushTokenRegisterResponse:
    """Register a device push token for the caller, or refresh an existing one."""
    try:
        push_token = service.register_token(
            user.user_id,
            data.token,
            platform=data.platform.value if data.platform else None,
            device_id=data.device_id,
            device_name=data.device_name,
            preferences=data.preferences,
        )
    except NotificationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from None
    return PushTokenRegisterResponse(token_id=push_token.id)  # type: ignore[arg-type]


@router.delete(
    "/token",
    response_model=SuccessResponse,
    summary="Unregister a push token",
    responses={**UNAUTHORIZED, 400: {"description": "Missing token"}},
)
async def unregister_token(
    data: PushTokenUnregister,
    service: NotificationService = Depends(get_notification_service),
    user: CurrentUser = Depends(get_current_user),
) -> SuccessResponse:
    """Deactivate a push token. Unknown tokens succeed without changes."""
    try:
        service.unregister_token(user.user_id, data.token)
    except NotificationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from None
    return SuccessResponse()


@router.put(
    "/preferences",
    response_model=PreferencesResponse,
    summary="Update notification preferences",
    responses={**UNAUTHORIZED, 400: {"description": "Missing preferences"}},
)
async def update_preferences(
    data: PreferencesUpdate,
    service: NotificationService = Depends(get_notification_service),
    user: CurrentUser = Depends(get_current_user),
) -> PreferencesResponse:
    """Apply preferences to every active token of the caller."""
    try:
        preferences = service.update_preferences(user.user_id, data.preferences)
    except NotificationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from None
    return PreferencesResponse(preferences=preferences)


# ── Inbox ─────────────────────────────────────────────────────────


@router.get(
    "/",
    response_model=NotificationListResponse,
    summary="List notifications",
    responses=UNAUTHORIZED,
)
async def list_notifications(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    status: NotificationStatus | None = None,
    type: NotificationType | None = None,
    service: NotificationService = Depends(get_notification_service),
    user: CurrentUser = Depends(get_current_user),
) -> NotificationListResponse:
    """List the caller's notifications, newest first."""
    result = service.list_notifications(
        user.user_id,
        page=page,
        limit=limit,
        status=status.value if status else None,
        type=type.value if type else None,
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in result.items],
        pagination=PaginationResponse(
            total=result.total,
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
        ),
        unread_count=result.unread_count,
    )


@router.put(
    "/read-all",
    response_model=SuccessResponse,
    summary="Mark all notifications as read",
    responses=UNAUTHORIZED,
)
async def mark_all_as_read(
    service: NotificationService = Depends(get_notification_service),
    user: CurrentUser = Depends(get_current_user),
) -> SuccessResponse:
    try:
        service.mark_all_read(user.user_id)
    except NotificationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from None
    return SuccessResponse()


@router.get(
    "/stats",
    response_model=NotificationStatsResponse,
    summary="Get notification statistics",
    responses=ADMIN_ONLY,
)
async def get_stats(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    service: NotificationService = Depends(get_notification_service),
    _admin: CurrentUser = Depends(require_admin),
) -> NotificationStatsResponse:
    """Counts by status and type, plus active token totals."""
    return NotificationStatsResponse(stats=service.get_stats(start_date, end_date))


# Sync handlers: FastAPI runs them in its threadpool while the gateway call blocks.
@router.post(
    "/send",
    response_model=NotificationSendResponse,
    summary="Send a notification to a user",
    responses={**ADMIN_ONLY, 400: {"description": "Missing user_id, title or body"}},
)
def send_notification(
    data: NotificationSend,
    service: NotificationService = Depends(get_notification_service),
    _admin: CurrentUser = Depends(require_admin),
) -> NotificationSendResponse:
    """Send a push notification to one user.

    Succeeds once the request is valid; ``push_sent`` and ``stats``
    report the delivery outcome.
    """
    try:
        result = service.send_notification(
            data.user_id,
            data.title,
            data.body,
            type=data.type,
            data=data.data,
            priority=data.priority,
            channel_id=data.channel_id,
            project_id=data.project_id,
            client_id=data.client_id,
        )
    except NotificationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from None
    return NotificationSendResponse(
        notification_id=result.notification_id,
        push_sent=result.push_sent,
        outcome=result.outcome.value,
        stats=DeliveryStats(sent=result.sent, failed=result.failed),
    )


@router.post(
    "/broadcast",
    response_model=NotificationBroadcastResponse,
    summary="Send a notification to many users",
    responses={**ADMIN_ONLY, 400: {"description": "Missing user_ids, title or body"}},
)
def broadcast_notification(
    data: NotificationBroadcast,
    service: NotificationService = Depends(get_notification_service),
    _admin: CurrentUser = Depends(require_admin),
) -> NotificationBroadcastResponse:
    try:
        result = service.broadcast_notification(
            data.user_ids,
            data.title,
            data.body,
            type=data.type,
            data=data.data,
            priority=data.priority,
        )
    except NotificationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from None
    return NotificationBroadcastResponse(
        stats=BroadcastStats(
            users=result.users,
            tokens=result.tokens,
            sent=result.sent,
            failed=result.failed,
        )
    )


@router.put(
    "/{notification_id}/read",
    response_model=SuccessResponse,
    summary="Mark a notification as read",
    responses={**UNAUTHORIZED, 404: {"description": "Notification not found"}},
)
async def mark_as_read(
    notification_id: UUID,
    service: NotificationService = Depends(get_notification_service),
    user: CurrentUser = Depends(get_current_user),
) -> SuccessResponse:
    try:
        service.mark_read(user.user_id, notification_id)
    except NotificationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from None
    return SuccessResponse()


@router.delete(
    "/{notification_id}",
    response_model=SuccessResponse,
    summary="Delete a notification",
    responses={**UNAUTHORIZED, 404: {"description": "Notification not found"}},
)
async def delete_notification(
    notification_id: UUID,
    service: NotificationService = Depends(get_notification_service),
    user: CurrentUser = Depends(get_current_user),
) -> SuccessResponse:
    try:
        service.delete_notification(user.user_id, notification_id)
    except NotificationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from None
    return SuccessResponse()
