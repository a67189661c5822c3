"""Tests for boshpush/push/channels.py"""

import json

import httpx
import pytest

from boshpush.config_models import PushConfig
from boshpush.errors import PushChannelError
from boshpush.push.channels import (
    APNS_PRODUCTION_URL,
    APNS_SANDBOX_URL,
    ApnsPushChannel,
    ExpoPushChannel,
    LogPushChannel,
    build_expo_message,
    build_push_channel,
    parse_expo_ticket,
)
from boshpush.push.models import DeliveryStatus
from boshpush.push.payload import build_payload


@pytest.fixture
def message_payload():
    return build_payload("alice@x: hi", 3, {"from": "alice@x/phone", "to": "bob@x"}, sound="ping.aiff")


@pytest.fixture
def badge_payload():
    return build_payload("", 9, {})


def _apns_channel(handler, use_sandbox=False):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ApnsPushChannel(topic="com.example.chat", use_sandbox=use_sandbox, client=client)


class TestApnsPushChannel:
    @pytest.mark.asyncio
    async def test_success(self, message_payload):
        seen = {}

        def handler(request: httpx.Request):
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, headers={"apns-id": "abc-123"})

        channel = _apns_channel(handler)
        result = await channel.submit("tokA", message_payload)
        await channel.close()

        assert result.success is True
        assert result.receipt_id == "abc-123"
        assert seen["url"] == f"{APNS_PRODUCTION_URL}/3/device/tokA"
        assert seen["headers"]["apns-topic"] == "com.example.chat"
        assert seen["headers"]["apns-priority"] == "10"
        assert seen["body"]["aps"]["alert"] == "alice@x: hi"
        assert seen["body"]["from"] == "alice@x/phone"

    @pytest.mark.asyncio
    async def test_badge_only_uses_low_priority(self, badge_payload):
        seen = {}

        def handler(request):
            seen["priority"] = request.headers["apns-priority"]
            return httpx.Response(200)

        channel = _apns_channel(handler, use_sandbox=True)
        assert channel.base_url == APNS_SANDBOX_URL

        result = await channel.submit("tokA", badge_payload)

        assert result.success is True
        assert seen["priority"] == "5"

    @pytest.mark.asyncio
    async def test_dead_token_flagged(self, message_payload):
        def handler(request):
            return httpx.Response(410, json={"reason": "Unregistered"})

        result = await _apns_channel(handler).submit("tokA", message_payload)

        assert result.success is False
        assert result.should_unregister is True
        assert result.status == DeliveryStatus.REJECTED
        assert result.error == "Unregistered"

    @pytest.mark.asyncio
    async def test_server_error_not_flagged(self, message_payload):
        def handler(request):
            return httpx.Response(503, text="busy")

        result = await _apns_channel(handler).submit("tokA", message_payload)

        assert result.success is False
        assert result.should_unregister is False
        assert result.status_code == 503
        assert "503" in result.error

    @pytest.mark.asyncio
    async def test_network_error_reported(self, message_payload):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = await _apns_channel(handler).submit("tokA", message_payload)

        assert result.success is False
        assert "Network error" in result.error

    def test_missing_topic_rejected(self):
        with pytest.raises(PushChannelError):
            ApnsPushChannel(topic="", cert_file="cert.pem")

    def test_missing_certificate_rejected(self, tmp_path):
        with pytest.raises(PushChannelError):
            ApnsPushChannel(topic="com.example.chat", cert_file=str(tmp_path / "nope.pem"))

    def test_unconfigured_certificate_rejected(self):
        with pytest.raises(PushChannelError):
            ApnsPushChannel(topic="com.example.chat", cert_file=None)


class TestExpoMessages:
    def test_message_payload(self, message_payload):
        message = build_expo_message("ExponentPushToken[x]", message_payload)

        assert message == {
            "to": "ExponentPushToken[x]",
            "badge": 3,
            "data": {"from": "alice@x/phone", "to": "bob@x"},
            "priority": "high",
            "body": "alice@x: hi",
            "sound": "ping.aiff",
        }

    def test_badge_only_payload(self, badge_payload):
        message = build_expo_message("ExponentPushToken[x]", badge_payload)

        assert "body" not in message
        assert message["badge"] == 9
        assert message["priority"] == "default"

    def test_ok_ticket(self):
        result = parse_expo_ticket("t", {"data": {"status": "ok", "id": "receipt-1"}})
        assert result.success is True
        assert result.receipt_id == "receipt-1"

    def test_ticket_list(self):
        result = parse_expo_ticket("t", {"data": [{"status": "ok", "id": "r2"}]})
        assert result.receipt_id == "r2"

    def test_device_not_registered(self):
        result = parse_expo_ticket(
            "t",
            {
                "data": {
                    "status": "error",
                    "message": "not registered",
                    "details": {"error": "DeviceNotRegistered"},
                }
            },
        )
        assert result.success is False
        assert result.should_unregister is True

    def test_unexpected_format(self):
        result = parse_expo_ticket("t", {"errors": []})
        assert result.success is False
        assert result.error == "Unexpected response format"


class TestLogPushChannel:
    @pytest.mark.asyncio
    async def test_always_accepts(self, message_payload, caplog):
        channel = LogPushChannel()
        with caplog.at_level("INFO", logger="boshpush.push.channels"):
            result = await channel.submit("tokA", message_payload)

        assert result.success is True
        assert "tokA" in caplog.text


class TestBuildPushChannel:
    def test_default_is_log(self):
        assert isinstance(build_push_channel(PushConfig()), LogPushChannel)

    def test_expo(self):
        channel = build_push_channel(PushConfig(transport="expo", expo={"url": "http://expo.test/send"}))
        assert isinstance(channel, ExpoPushChannel)
        assert channel.url == "http://expo.test/send"

    def test_apns_without_credentials_fails(self, tmp_path):
        config = PushConfig(
            transport="apns",
            apns={"topic": "com.example.chat", "cert_file": str(tmp_path / "missing.pem")},
        )
        with pytest.raises(PushChannelError):
            build_push_channel(config)
