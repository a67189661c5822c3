"""
Push Channels - transports that hand payloads to a push gateway

Supports:
- APNs over HTTP/2 with a client certificate (httpx)
- Expo Push Service (aiohttp)
- Log-only channel for development

A channel reports whether the gateway accepted the payload. Retries, backoff
and connection handling stay inside the channel; the dispatch engine never
retries.

Usage:
    from boshpush.push.channels import build_push_channel

    channel = build_push_channel(config.push)
    result = await channel.submit(device_token, payload)
"""

import json
import logging
import ssl
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import aiohttp
import httpx

from boshpush.errors import PushChannelError
from boshpush.push.models import DeliveryResult, NotificationPayload
from boshpush.push.payload import serialize_payload


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

APNS_PRODUCTION_URL = "https://api.push.apple.com"
APNS_SANDBOX_URL = "https://api.sandbox.push.apple.com"

EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"

# APNs reasons meaning the token will never work again
APNS_DEAD_TOKEN_REASONS = {"BadDeviceToken", "Unregistered", "DeviceTokenNotForTopic"}

# Expo error types with the same meaning
EXPO_DEAD_TOKEN_ERRORS = {"DeviceNotRegistered", "InvalidCredentials"}

TRANSPORT_APNS = "apns"
TRANSPORT_EXPO = "expo"
TRANSPORT_LOG = "log"

VALID_TRANSPORTS = {TRANSPORT_APNS, TRANSPORT_EXPO, TRANSPORT_LOG}


class PushChannel(ABC):
    """Interface every push transport implements."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Transport identifier (e.g. 'apns', 'expo', 'log')."""
        ...

    @abstractmethod
    async def submit(
        self,
        device_token: str,
        payload: NotificationPayload,
    ) -> DeliveryResult:
        """
        Hand a payload to the gateway.

        Must not raise for transport failures; report them in the result.
        """
        ...

    async def close(self) -> None:
        """Release network resources."""
        return None


# =============================================================================
# APNs
# =============================================================================


class ApnsPushChannel(PushChannel):
    """
    Apple Push Notification service over HTTP/2.

    Authenticates with a TLS client certificate, the same credentials the
    legacy binary gateway used (cert.pem / key.pem).
    """

    def __init__(
        self,
        topic: str,
        cert_file: str | None = None,
        key_file: str | None = None,
        use_sandbox: bool = False,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Args:
            topic: App bundle id sent as apns-topic
            cert_file: PEM client certificate (may also hold the key)
            key_file: PEM private key, if separate from the certificate
            use_sandbox: Use the development gateway
            timeout_seconds: Per-request timeout
            client: Pre-built client, mainly for tests
        """
        if not topic:
            raise PushChannelError("APNs topic (bundle id) is required")

        self.topic = topic
        self.base_url = APNS_SANDBOX_URL if use_sandbox else APNS_PRODUCTION_URL

        if client is None:
            client = httpx.AsyncClient(
                http2=True,
                verify=_load_client_certificate(cert_file, key_file),
                timeout=timeout_seconds,
            )
        self._client = client

    @property
    def name(self) -> str:
        return TRANSPORT_APNS

    async def submit(
        self,
        device_token: str,
        payload: NotificationPayload,
    ) -> DeliveryResult:
        headers = {
            "apns-topic": self.topic,
            "apns-push-type": "alert",
            # Badge-only updates are not urgent
            "apns-priority": "5" if payload.is_badge_only else "10",
        }

        try:
            response = await self._client.post(
                f"{self.base_url}/3/device/{device_token}",
                content=serialize_payload(payload),
                headers=headers,
            )
        except httpx.HTTPError as e:
            return DeliveryResult.failed(device_token, f"Network error: {e}")

        if response.status_code == 200:
            return DeliveryResult(
                success=True,
                device_token=device_token,
                status_code=200,
                receipt_id=response.headers.get("apns-id"),
            )

        reason = _apns_reason(response)
        return DeliveryResult.failed(
            device_token,
            reason or f"APNs error: {response.status_code}",
            status_code=response.status_code,
            should_unregister=response.status_code == 410 or reason in APNS_DEAD_TOKEN_REASONS,
        )

    async def close(self) -> None:
        await self._client.aclose()


def _load_client_certificate(cert_file: str | None, key_file: str | None) -> ssl.SSLContext:
    if not cert_file:
        raise PushChannelError("APNs certificate file is not configured")
    for path in filter(None, (cert_file, key_file)):
        if not Path(path).exists():
            raise PushChannelError(f"APNs credential file not found: {path}")

    context = ssl.create_default_context()
    context.load_cert_chain(certfile=cert_file, keyfile=key_file)
    return context


def _apns_reason(response: httpx.Response) -> str | None:
    try:
        return response.json().get("reason")
    except (ValueError, AttributeError):
        return None


# =============================================================================
# Expo
# =============================================================================


class ExpoPushChannel(PushChannel):
    """
    Expo Push Service.

    Expo handles FCM/APNs under the hood, so tokens here are Expo push tokens.
    """

    def __init__(
        self,
        url: str = EXPO_PUSH_URL,
        timeout_seconds: float = 10.0,
    ):
        self.url = url
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    @property
    def name(self) -> str:
        return TRANSPORT_EXPO

    async def submit(
        self,
        device_token: str,
        payload: NotificationPayload,
    ) -> DeliveryResult:
        message = build_expo_message(device_token, payload)

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(
                    self.url,
                    json=message,
                    headers={
                        "Accept": "application/json",
                        "Content-Type": "application/json",
                    },
                ) as response:
                    if response.status != 200:
                        return DeliveryResult.failed(
                            device_token,
                            f"Expo API error: {response.status}",
                            status_code=response.status,
                        )
                    result = await response.json()

        except aiohttp.ClientError as e:
            return DeliveryResult.failed(device_token, f"Network error: {e}")

        return parse_expo_ticket(device_token, result)


def build_expo_message(device_token: str, payload: NotificationPayload) -> dict[str, Any]:
    """Translate a payload into an Expo push message."""
    message: dict[str, Any] = {
        "to": device_token,
        "badge": payload.badge_count,
        "data": dict(payload.metadata),
        "priority": "default" if payload.is_badge_only else "high",
    }
    if payload.alert_text:
        message["body"] = payload.alert_text
    if payload.sound:
        message["sound"] = payload.sound
    return message


def parse_expo_ticket(device_token: str, result: dict[str, Any]) -> DeliveryResult:
    """Interpret the push ticket returned by the Expo API."""
    ticket = result.get("data")
    if isinstance(ticket, list):
        ticket = ticket[0] if ticket else {}
    if not isinstance(ticket, dict):
        return DeliveryResult.failed(device_token, "Unexpected response format")

    if ticket.get("status") == "ok":
        return DeliveryResult(
            success=True,
            device_token=device_token,
            status_code=200,
            receipt_id=ticket.get("id"),
        )

    error_type = ticket.get("details", {}).get("error", "")
    return DeliveryResult.failed(
        device_token,
        ticket.get("message", "Unknown error"),
        status_code=200,
        should_unregister=error_type in EXPO_DEAD_TOKEN_ERRORS,
    )


# =============================================================================
# Development
# =============================================================================


class LogPushChannel(PushChannel):
    """Logs payloads instead of sending them."""

    @property
    def name(self) -> str:
        return TRANSPORT_LOG

    async def submit(
        self,
        device_token: str,
        payload: NotificationPayload,
    ) -> DeliveryResult:
        logger.info(
            f"Push to {device_token}: "
            f"{json.dumps(payload.to_aps(), ensure_ascii=False)}"
        )
        return DeliveryResult(success=True, device_token=device_token)


# =============================================================================
# Factory
# =============================================================================


def build_push_channel(push_config) -> PushChannel:
    """
    Create the push channel selected in configuration.

    Args:
        push_config: PushConfig section of BridgeConfig

    Raises:
        PushChannelError: Unknown transport or missing credentials
    """
    transport = push_config.transport

    if transport == TRANSPORT_APNS:
        apns = push_config.apns
        return ApnsPushChannel(
            topic=apns.topic,
            cert_file=apns.cert_file,
            key_file=apns.key_file,
            use_sandbox=apns.use_sandbox,
            timeout_seconds=apns.timeout_seconds,
        )
    if transport == TRANSPORT_EXPO:
        return ExpoPushChannel(
            url=push_config.expo.url,
            timeout_seconds=push_config.expo.timeout_seconds,
        )
    if transport == TRANSPORT_LOG:
        return LogPushChannel()

    raise PushChannelError(
        f"Invalid push transport: {transport}. Must be one of: {sorted(VALID_TRANSPORTS)}"
    )
