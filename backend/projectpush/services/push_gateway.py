"""Push gateway client abstraction.

The dispatch engine only depends on ``PushGateway.send_batch``; the Expo
HTTP implementation is the production client and tests substitute an
in-memory one.
"""

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

import httpx

from projectpush.core.config import settings
from projectpush.core.exceptions import GatewayTransportError

logger = logging.getLogger(__name__)

EXPO_MAX_BATCH_SIZE = 100

TICKET_OK = "ok"
TICKET_ERROR = "error"

_BRACKETED_TOKEN = re.compile(r"^(ExponentPushToken|ExpoPushToken)\[.+\]$")
_DEVICE_UUID_TOKEN = re.compile(
    r"^[a-z\d]{8}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{12}$",
    re.IGNORECASE,
)


def is_valid_push_address(token: str | None) -> bool:
    """Check a token against the gateway's address grammar."""
    if not isinstance(token, str):
        return False
    return bool(_BRACKETED_TOKEN.match(token) or _DEVICE_UUID_TOKEN.match(token))


@dataclass
class PushMessage:
    """One gateway message addressed to a single device."""

    to: str
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)
    sound: str | None = "default"
    priority: str | None = None
    channel_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "to": self.to,
            "title": self.title,
            "body": self.body,
            "data": self.data,
        }
        if self.sound is not None:
            payload["sound"] = self.sound
        if self.priority is not None:
            payload["priority"] = self.priority
        if self.channel_id is not None:
            payload["channelId"] = self.channel_id
        return payload


@dataclass
class PushTicket:
    """Per-message acknowledgement returned right after submission."""

    status: str
    id: str | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == TICKET_OK

    @classmethod
    def error(cls, message: str) -> "PushTicket":
        return cls(status=TICKET_ERROR, message=message)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "PushTicket":
        if payload.get("status") == TICKET_OK:
            return cls(status=TICKET_OK, id=payload.get("id"))
        return cls(status=TICKET_ERROR, message=payload.get("message") or "Unknown error")


def chunk_messages(
    messages: Sequence[PushMessage], size: int
) -> Iterator[list[PushMessage]]:
    """Split messages into consecutive batches of at most ``size``."""
    if size < 1:
        raise ValueError("Batch size must be positive")
    for start in range(0, len(messages), size):
        yield list(messages[start : start + size])


class PushGateway(ABC):
    """External push delivery gateway."""

    max_batch_size: int = EXPO_MAX_BATCH_SIZE

    @abstractmethod
    def send_batch(self, messages: list[PushMessage]) -> list[PushTicket]:
        """Submit one batch and return one ticket per message, in order.

        Raises GatewayTransportError when the batch could not be submitted.
        """
        ...  # pragma: no cover


class ExpoPushGateway(PushGateway):
    """Expo push service client over HTTP."""

    def __init__(
        self,
        url: str | None = None,
        access_token: str | None = None,
        timeout: float | None = None,
        max_batch_size: int | None = None,
    ):
        self.url = url or settings.PUSH_GATEWAY_URL
        self.access_token = access_token if access_token is not None else settings.PUSH_GATEWAY_ACCESS_TOKEN
        self.timeout = timeout or settings.PUSH_GATEWAY_TIMEOUT_SECONDS
        self.max_batch_size = min(
            max_batch_size or settings.PUSH_GATEWAY_BATCH_SIZE, EXPO_MAX_BATCH_SIZE
        )

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
            "Content-Type": "application/json",
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def send_batch(self, messages: list[PushMessage]) -> list[PushTicket]:
        if len(messages) > self.max_batch_size:
            raise ValueError(
                f"Batch of {len(messages)} exceeds gateway limit of {self.max_batch_size}"
            )

        try:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.post(
                    self.url,
                    json=[m.to_payload() for m in messages],
                    headers=self._headers(),
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise GatewayTransportError(f"Push gateway request failed: {exc}") from exc

        if not 200 <= resp.status_code < 300:
            body = resp.text[:500] if resp.text else ""
            raise GatewayTransportError(
                f"Push gateway returned HTTP {resp.status_code}: {body}"
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise GatewayTransportError("Push gateway returned a non-JSON response") from exc

        raw_tickets = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(raw_tickets, list) or len(raw_tickets) != len(messages):
            raise GatewayTransportError(
                f"Push gateway returned {len(raw_tickets) if isinstance(raw_tickets, list) else 'no'} "
                f"tickets for {len(messages)} messages"
            )

        return [PushTicket.from_payload(t if isinstance(t, dict) else {}) for t in raw_tickets]


@lru_cache
def get_push_gateway() -> PushGateway:
    """Process-wide gateway client."""
    return ExpoPushGateway()
