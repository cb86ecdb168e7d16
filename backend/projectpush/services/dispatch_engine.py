"""Dispatch engine: turns a logical notification into gateway deliveries.

A dispatch writes the notification row as ``pending`` first, resolves the
recipient's active tokens, drops the ones whose owner opted out of the
category, submits the remaining messages to the push gateway in
gateway-sized batches and finally collapses the per-message tickets into
one record-level status.

Batches are independent once partitioned. They are submitted
concurrently and a batch that fails at the transport level only turns
its own messages into error tickets.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from projectpush.core.config import settings
from projectpush.core.exceptions import GatewayTransportError
from projectpush.models.notification import (
    DEFAULT_CHANNEL_ID,
    Notification,
    NotificationPriority,
    NotificationType,
)
from projectpush.models.push_token import PushToken
from projectpush.repositories.notification_repository import NotificationRepository
from projectpush.repositories.push_token_repository import PushTokenRepository
from projectpush.services.preferences import should_deliver
from projectpush.services.push_gateway import (
    PushGateway,
    PushMessage,
    PushTicket,
    chunk_messages,
    is_valid_push_address,
)

logger = logging.getLogger(__name__)


class DispatchOutcome(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    NO_TOKENS = "no_tokens"
    PREFERENCES_BLOCKED = "preferences_blocked"


@dataclass
class DispatchResult:
    notification: Notification
    outcome: DispatchOutcome
    sent: int = 0
    failed: int = 0

    @property
    def notification_id(self) -> UUID:
        return self.notification.id  # type: ignore[return-value]

    @property
    def push_sent(self) -> bool:
        return self.outcome == DispatchOutcome.SENT


@dataclass
class BroadcastResult:
    notifications: list[Notification] = field(default_factory=list)
    users: int = 0
    tokens: int = 0
    sent: int = 0
    failed: int = 0


def gateway_priority(priority: str | None) -> str:
    return "high" if priority == NotificationPriority.HIGH.value else "default"


class DispatchEngine:
    """Orchestrates token lookup, filtering, batching and status updates."""

    def __init__(
        self,
        db: Session,
        gateway: PushGateway,
        max_workers: int | None = None,
    ):
        self.db = db
        self.gateway = gateway
        self.max_workers = max_workers or settings.PUSH_GATEWAY_MAX_WORKERS
        self.token_repo = PushTokenRepository(db)
        self.notification_repo = NotificationRepository(db)

    def dispatch(
        self,
        *,
        user_id: UUID,
        title: str,
        body: str,
        type: NotificationType = NotificationType.GENERAL,
        data: dict[str, Any] | None = None,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        channel_id: str | None = DEFAULT_CHANNEL_ID,
        project_id: UUID | None = None,
        client_id: UUID | None = None,
    ) -> DispatchResult:
        """Deliver one notification to every eligible device of ``user_id``."""
        notification = self.notification_repo.create(
            user_id=user_id,
            title=title,
            body=body,
            type=type.value,
            data=data,
            priority=priority.value,
            channel_id=channel_id,
            project_id=project_id,
            client_id=client_id,
        )

        tokens = self.token_repo.list_active(user_id)
        if not tokens:
            logger.info("No active push tokens for user %s", user_id)
            return DispatchResult(notification=notification, outcome=DispatchOutcome.NO_TOKENS)

        eligible = self._eligible_tokens(tokens, type)
        if not eligible:
            return DispatchResult(
                notification=notification,
                outcome=DispatchOutcome.PREFERENCES_BLOCKED,
            )

        messages = [
            self._build_message(
                token,
                notification_id=notification.id,  # type: ignore[arg-type]
                title=title,
                body=body,
                data=data,
                priority=priority.value,
                channel_id=channel_id,
            )
            for token in eligible
        ]
        tickets = self.submit(messages)
        self._touch_delivered(eligible, tickets)

        ok_tickets = [t for t in tickets if t.ok]
        error_tickets = [t for t in tickets if not t.ok]

        if ok_tickets:
            notification = self.notification_repo.mark_sent(
                notification, receipt_id=ok_tickets[0].id
            )
            outcome = DispatchOutcome.SENT
        else:
            error_message = (error_tickets[0].message if error_tickets else None) or "Unknown error"
            notification = self.notification_repo.mark_failed(notification, error_message)
            outcome = DispatchOutcome.FAILED

        logger.info(
            "Notification %s %s: %d sent, %d failed",
            notification.id,
            outcome.value,
            len(ok_tickets),
            len(error_tickets),
        )
        return DispatchResult(
            notification=notification,
            outcome=outcome,
            sent=len(ok_tickets),
            failed=len(error_tickets),
        )

    def broadcast(
        self,
        *,
        user_ids: list[UUID],
        title: str,
        body: str,
        type: NotificationType = NotificationType.GENERAL,
        data: dict[str, Any] | None = None,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        channel_id: str | None = DEFAULT_CHANNEL_ID,
    ) -> BroadcastResult:
        """Send one notification to many users through a single fan-out.

        Tokens of all targets are gathered first and batched together,
        so the number of gateway calls depends on the token count only.
        Preferences are not consulted; only unusable addresses are skipped.
        Every created row is marked ``sent`` once the fan-out completes.
        """
        targets = list(dict.fromkeys(user_ids))
        notifications = self.notification_repo.bulk_create(
            user_ids=targets,
            title=title,
            body=body,
            type=type.value,
            data=data,
            priority=priority.value,
            channel_id=channel_id,
        )
        notification_by_user = {n.user_id: n for n in notifications}

        tokens = self.token_repo.list_active_for_users(targets)
        eligible = self._eligible_tokens(tokens, type, check_preferences=False)
        messages = [
            self._build_message(
                token,
                notification_id=notification_by_user[token.user_id].id,  # type: ignore[arg-type]
                title=title,
                body=body,
                data=data,
                priority=priority.value,
                channel_id=channel_id,
            )
            for token in eligible
        ]

        tickets = self.submit(messages)
        self._touch_delivered(eligible, tickets)

        self.notification_repo.mark_many_sent([n.id for n in notifications])  # type: ignore[misc]
        for notification in notifications:
            self.db.refresh(notification)

        result = BroadcastResult(
            notifications=notifications,
            users=len(targets),
            tokens=len(tokens),
            sent=sum(1 for t in tickets if t.ok),
            failed=sum(1 for t in tickets if not t.ok),
        )
        logger.info(
            "Broadcast to %d users complete: %d tokens, %d sent, %d failed",
            result.users,
            result.tokens,
            result.sent,
            result.failed,
        )
        return result

    def submit(self, messages: list[PushMessage]) -> list[PushTicket]:
        """Send messages in gateway-sized batches and return tickets in message order."""
        if not messages:
            return []

        batches = list(chunk_messages(messages, self.gateway.max_batch_size))
        if len(batches) == 1:
            return self._send_batch(batches[0])

        workers = min(self.max_workers, len(batches))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(self._send_batch, batches))
        return [ticket for batch_tickets in results for ticket in batch_tickets]

    def _send_batch(self, batch: list[PushMessage]) -> list[PushTicket]:
        try:
            return self.gateway.send_batch(batch)
        except GatewayTransportError as exc:
            logger.warning("Push batch of %d messages failed: %s", len(batch), exc)
            return [PushTicket.error(str(exc)) for _ in batch]
        except Exception as exc:
            logger.exception("Unexpected error submitting push batch of %d messages", len(batch))
            return [PushTicket.error(f"Push gateway error: {exc}") for _ in batch]

    def _eligible_tokens(
        self,
        tokens: list[PushToken],
        notification_type: NotificationType,
        check_preferences: bool = True,
    ) -> list[PushToken]:
        eligible = []
        for token in tokens:
            if check_preferences and not should_deliver(token, notification_type):
                logger.info(
                    "Skipping token %s of user %s: %s disabled by preferences",
                    token.id,
                    token.user_id,
                    notification_type.value,
                )
                continue
            if not is_valid_push_address(token.token):  # type: ignore[arg-type]
                logger.warning("Skipping token %s: invalid push address", token.id)
                continue
            eligible.append(token)
        return eligible

    def _build_message(
        self,
        token: PushToken,
        *,
        notification_id: UUID,
        title: str,
        body: str,
        data: dict[str, Any] | None,
        priority: str,
        channel_id: str | None,
    ) -> PushMessage:
        return PushMessage(
            to=token.token,  # type: ignore[arg-type]
            title=title,
            body=body,
            data={**(data or {}), "notificationId": str(notification_id)},
            priority=gateway_priority(priority),
            channel_id=channel_id or DEFAULT_CHANNEL_ID,
        )

    def _touch_delivered(self, tokens: list[PushToken], tickets: list[PushTicket]) -> None:
        accepted = [token.id for token, ticket in zip(tokens, tickets) if ticket.ok]
        self.token_repo.touch(accepted)  # type: ignore[arg-type]
