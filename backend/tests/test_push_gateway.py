"""Tests for the push gateway client, address grammar and batching."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from projectpush.core.exceptions import GatewayTransportError
from projectpush.services.push_gateway import (
    EXPO_MAX_BATCH_SIZE,
    ExpoPushGateway,
    PushMessage,
    PushTicket,
    chunk_messages,
    is_valid_push_address,
)


def _messages(n):
    return [
        PushMessage(to=f"ExponentPushToken[token-{i}]", title="Hi", body="Body", data={"i": i})
        for i in range(n)
    ]


def _mock_client(mock_client_cls, response=None, side_effect=None):
    mock_client = MagicMock()
    mock_client.__enter__ = MagicMock(return_value=mock_client)
    mock_client.__exit__ = MagicMock(return_value=False)
    if side_effect is not None:
        mock_client.post.side_effect = side_effect
    else:
        mock_client.post.return_value = response
    mock_client_cls.return_value = mock_client
    return mock_client


def _response(status_code=200, payload=None, text="", json_error=False):
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    if json_error:
        resp.json.side_effect = ValueError("not json")
    else:
        resp.json.return_value = payload
    return resp


class TestAddressGrammar:
    @pytest.mark.parametrize(
        "token",
        [
            "ExponentPushToken[xxxxxxxxxxxxxxxxxxxxxx]",
            "ExpoPushToken[yyyyyyyyyyyyyyyyyyyyyy]",
            "F5741A13-BCDA-434B-A316-5DC0E6FFA94F",
            "f5741a13-bcda-434b-a316-5dc0e6ffa94f",
        ],
    )
    def test_valid(self, token):
        assert is_valid_push_address(token) is True

    @pytest.mark.parametrize(
        "token",
        [
            None,
            "",
            "ExponentPushToken",
            "ExponentPushToken[]",
            "ExponentPushToken[abc",
            "fcm:abcdef",
            "f5741a13-bcda-434b-a316",
        ],
    )
    def test_invalid(self, token):
        assert is_valid_push_address(token) is False


class TestChunkMessages:
    def test_exact_multiple(self):
        batches = list(chunk_messages(_messages(6), 3))
        assert [len(b) for b in batches] == [3, 3]

    def test_remainder(self):
        batches = list(chunk_messages(_messages(7), 3))
        assert [len(b) for b in batches] == [3, 3, 1]

    def test_preserves_order(self):
        messages = _messages(5)
        flattened = [m for b in chunk_messages(messages, 2) for m in b]
        assert flattened == messages

    def test_empty(self):
        assert list(chunk_messages([], 100)) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            list(chunk_messages(_messages(1), 0))


class TestPushMessage:
    def test_payload_uses_gateway_field_names(self):
        message = PushMessage(
            to="ExponentPushToken[a]",
            title="T",
            body="B",
            data={"notificationId": "n1"},
            priority="high",
            channel_id="projects",
        )
        assert message.to_payload() == {
            "to": "ExponentPushToken[a]",
            "title": "T",
            "body": "B",
            "data": {"notificationId": "n1"},
            "sound": "default",
            "priority": "high",
            "channelId": "projects",
        }

    def test_payload_omits_unset_optionals(self):
        payload = PushMessage(to="x", title="T", body="B", sound=None).to_payload()
        assert "sound" not in payload
        assert "priority" not in payload
        assert "channelId" not in payload


class TestPushTicket:
    def test_from_ok_payload(self):
        ticket = PushTicket.from_payload({"status": "ok", "id": "abc"})
        assert ticket.ok is True
        assert ticket.id == "abc"

    def test_from_error_payload(self):
        ticket = PushTicket.from_payload(
            {"status": "error", "message": "not registered", "details": {"error": "DeviceNotRegistered"}}
        )
        assert ticket.ok is False
        assert ticket.message == "not registered"

    def test_error_without_message(self):
        assert PushTicket.from_payload({"status": "error"}).message == "Unknown error"


class TestExpoPushGateway:
    def test_batch_size_capped_at_gateway_limit(self):
        gateway = ExpoPushGateway(max_batch_size=500)
        assert gateway.max_batch_size == EXPO_MAX_BATCH_SIZE

    def test_send_batch_success(self):
        gateway = ExpoPushGateway(url="https://push.example.com/send", access_token="")
        payload = {"data": [{"status": "ok", "id": "r1"}, {"status": "error", "message": "bad"}]}

        with patch("projectpush.services.push_gateway.httpx.Client") as mock_client_cls:
            mock_client = _mock_client(mock_client_cls, _response(payload=payload))
            tickets = gateway.send_batch(_messages(2))

        assert [t.ok for t in tickets] == [True, False]
        assert tickets[0].id == "r1"
        assert tickets[1].message == "bad"

        call = mock_client.post.call_args
        assert call[0][0] == "https://push.example.com/send"
        assert [m["to"] for m in call[1]["json"]] == [
            "ExponentPushToken[token-0]",
            "ExponentPushToken[token-1]",
        ]
        assert "Authorization" not in call[1]["headers"]

    def test_send_batch_uses_timeout(self):
        gateway = ExpoPushGateway(timeout=3.5)
        with patch("projectpush.services.push_gateway.httpx.Client") as mock_client_cls:
            _mock_client(mock_client_cls, _response(payload={"data": [{"status": "ok", "id": "r"}]}))
            gateway.send_batch(_messages(1))
        mock_client_cls.assert_called_once_with(timeout=3.5)

    def test_send_batch_sends_access_token(self):
        gateway = ExpoPushGateway(access_token="secret")
        with patch("projectpush.services.push_gateway.httpx.Client") as mock_client_cls:
            mock_client = _mock_client(
                mock_client_cls, _response(payload={"data": [{"status": "ok", "id": "r"}]})
            )
            gateway.send_batch(_messages(1))
        headers = mock_client.post.call_args[1]["headers"]
        assert headers["Authorization"] == "Bearer secret"

    def test_timeout_raises_transport_error(self):
        gateway = ExpoPushGateway()
        with patch("projectpush.services.push_gateway.httpx.Client") as mock_client_cls:
            _mock_client(mock_client_cls, side_effect=httpx.ReadTimeout("timed out"))
            with pytest.raises(GatewayTransportError, match="timed out"):
                gateway.send_batch(_messages(1))

    def test_invalid_url_raises_transport_error(self):
        gateway = ExpoPushGateway()
        with patch("projectpush.services.push_gateway.httpx.Client") as mock_client_cls:
            _mock_client(
                mock_client_cls,
                side_effect=httpx.InvalidURL("Invalid non-printable ASCII character in URL"),
            )
            with pytest.raises(GatewayTransportError, match="non-printable"):
                gateway.send_batch(_messages(1))

    def test_http_error_status_raises_transport_error(self):
        gateway = ExpoPushGateway()
        with patch("projectpush.services.push_gateway.httpx.Client") as mock_client_cls:
            _mock_client(mock_client_cls, _response(status_code=503, text="unavailable"))
            with pytest.raises(GatewayTransportError, match="HTTP 503"):
                gateway.send_batch(_messages(1))

    def test_non_json_response_raises_transport_error(self):
        gateway = ExpoPushGateway()
        with patch("projectpush.services.push_gateway.httpx.Client") as mock_client_cls:
            _mock_client(mock_client_cls, _response(json_error=True))
            with pytest.raises(GatewayTransportError, match="non-JSON"):
                gateway.send_batch(_messages(1))

    def test_ticket_count_mismatch_raises_transport_error(self):
        gateway = ExpoPushGateway()
        with patch("projectpush.services.push_gateway.httpx.Client") as mock_client_cls:
            _mock_client(mock_client_cls, _response(payload={"data": [{"status": "ok", "id": "r"}]}))
            with pytest.raises(GatewayTransportError, match="1 tickets for 2 messages"):
                gateway.send_batch(_messages(2))

    def test_oversized_batch_rejected_before_network(self):
        gateway = ExpoPushGateway(max_batch_size=2)
        with patch("projectpush.services.push_gateway.httpx.Client") as mock_client_cls:
            with pytest.raises(ValueError):
                gateway.send_batch(_messages(3))
        mock_client_cls.assert_not_called()
