"""
Tool: Dispatch Engine
Purpose: Turn control-plane requests and stream events into registry changes
and push notifications

Entry points, one per external trigger:
    on_register           control plane: bind sid to device
    on_unregister         control plane: drop sid
    on_set_badge          control plane: store badge and push a badge-only update
    on_stream_message     stream server: chat message for an idle/closed stream
    on_stream_terminated  stream server: stream or session ended

The engine holds no state of its own beyond the registry and the channel.
Registry calls finish (and release the registry lock) before any payload is
built or submitted.

Badge counts are snapshots supplied by the caller at dispatch time. There is
no running unread counter, so two racing events can push a stale count.

Usage:
    from boshpush.dispatch import DispatchEngine

    engine = DispatchEngine(SessionRegistry(), LogPushChannel())
    engine.on_register("s1", {"device-token": "tokA"})
    await engine.on_stream_message("s1", "alice@x/phone", "bob@x", "hi", 3)
"""

from typing import Any

from boshpush.errors import PayloadTooLargeError
from boshpush.logging_config import get_logger
from boshpush.push.channels import PushChannel
from boshpush.push.models import DEVICE_TOKEN_KEY, DeliveryResult
from boshpush.push.payload import DEFAULT_MAX_PAYLOAD_BYTES, build_payload
from boshpush.push.registry import SessionRegistry
from boshpush.stream.events import bare_jid


logger = get_logger(__name__)


class DispatchEngine:
    """Routes bridge events to the session registry and the push channel."""

    def __init__(
        self,
        registry: SessionRegistry,
        channel: PushChannel,
        max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES,
        sound: str | None = None,
    ):
        """
        Args:
            registry: Session registry shared with the control plane
            channel: Transport that receives built payloads
            max_payload_bytes: Serialized payload budget
            sound: Sound name attached to message notifications
        """
        self.registry = registry
        self.channel = channel
        self.max_payload_bytes = max_payload_bytes
        self.sound = sound

    # =========================================================================
    # Control plane
    # =========================================================================

    def on_register(self, sid: str, info: dict[str, Any]) -> bool:
        """
        Register a session from a control-plane request.

        Args:
            sid: Session identifier
            info: Request body; must carry a non-empty 'device-token'

        Returns:
            True if registered, False if the device token is missing or not a
            non-empty string
        """
        device_token = info.get(DEVICE_TOKEN_KEY)
        if not isinstance(device_token, str) or not device_token:
            logger.info("registration_rejected", sid=sid, reason="missing device token")
            return False

        registered = self.registry.register(sid, device_token, info=info)
        if registered:
            logger.info("session_registered", sid=sid)
        return registered

    def on_unregister(self, sid: str) -> bool:
        """Unregister a session. Unknown sids still succeed."""
        self.registry.unregister(sid)
        logger.info("session_unregistered", sid=sid)
        return True

    async def on_set_badge(self, sid: str, badge: int) -> bool:
        """
        Store a badge count and push it as a badge-only notification.

        Returns:
            True if the session exists. Delivery failures do not change this.
        """
        if not self.registry.set_badge(sid, badge):
            logger.info("badge_rejected", sid=sid, reason="unknown session")
            return False

        registration = self.registry.lookup(sid)
        if registration is None:
            # Removed between the two registry calls
            return True

        await self._dispatch(sid, registration.device_token, "", badge, {})
        return True

    # =========================================================================
    # Stream server
    # =========================================================================

    async def on_stream_message(
        self,
        sid: str,
        sender: str,
        recipient: str,
        body: str,
        pending_count: int,
    ) -> DeliveryResult | None:
        """
        Push a chat message received on a session's stream.

        Args:
            sid: Session the message was addressed to
            sender: Full sender JID
            recipient: Full recipient JID
            body: Message body text
            pending_count: Message-bearing events pending on the stream now

        Returns:
            Channel result, or None if the session is not registered
        """
        registration = self.registry.lookup(sid)
        if registration is None:
            logger.debug("message_dropped", sid=sid, reason="unknown session")
            return None

        if pending_count < 0:
            logger.warning("negative_pending_count", sid=sid, pending_count=pending_count)
            pending_count = 0

        self.registry.set_badge(sid, pending_count)

        return await self._dispatch(
            sid,
            registration.device_token,
            f"{bare_jid(sender)}: {body}",
            pending_count,
            {"from": sender, "to": recipient},
        )

    def on_stream_terminated(self, sid: str) -> None:
        """Drop a session whose stream has ended."""
        self.registry.remove_by_stream_termination(sid)
        logger.debug("stream_terminated", sid=sid)

    # =========================================================================
    # Delivery
    # =========================================================================

    async def _dispatch(
        self,
        sid: str,
        device_token: str,
        alert_text: str,
        badge: int,
        metadata: dict[str, str],
    ) -> DeliveryResult:
        try:
            payload = build_payload(
                alert_text,
                badge,
                metadata,
                sound=self.sound if alert_text else None,
                max_bytes=self.max_payload_bytes,
            )
        except PayloadTooLargeError as e:
            logger.error("payload_too_large", sid=sid, error=str(e))
            return DeliveryResult.failed(device_token, str(e))

        result = await self.channel.submit(device_token, payload)

        if result.success:
            logger.info(
                "push_submitted",
                sid=sid,
                channel=self.channel.name,
                badge=badge,
                badge_only=payload.is_badge_only,
            )
        else:
            logger.warning(
                "push_failed",
                sid=sid,
                channel=self.channel.name,
                error=result.error,
                status_code=result.status_code,
                should_unregister=result.should_unregister,
            )
        return result
