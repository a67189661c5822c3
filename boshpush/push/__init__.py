"""Session registry, payload building and push transports."""

from boshpush.push.models import (
    DEVICE_TOKEN_KEY,
    DeliveryResult,
    DeliveryStatus,
    NotificationPayload,
    Registration,
)
from boshpush.push.payload import (
    DEFAULT_MAX_PAYLOAD_BYTES,
    build_payload,
    payload_size,
    serialize_payload,
)
from boshpush.push.registry import SessionRegistry
from boshpush.push.channels import (
    ApnsPushChannel,
    ExpoPushChannel,
    LogPushChannel,
    PushChannel,
    build_push_channel,
)

__all__ = [
    "DEVICE_TOKEN_KEY",
    "DEFAULT_MAX_PAYLOAD_BYTES",
    "DeliveryResult",
    "DeliveryStatus",
    "NotificationPayload",
    "Registration",
    "SessionRegistry",
    "build_payload",
    "payload_size",
    "serialize_payload",
    "ApnsPushChannel",
    "ExpoPushChannel",
    "LogPushChannel",
    "PushChannel",
    "build_push_channel",
]
