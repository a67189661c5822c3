"""
Tool: Push Bridge Models
Purpose: Data structures for session registrations and push payloads

Usage:
    from boshpush.push.models import (
        Registration,
        NotificationPayload,
        DeliveryResult,
        DeliveryStatus,
    )
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


# Info key carrying the device token in a register request
DEVICE_TOKEN_KEY = "device-token"


class DeliveryStatus(str, Enum):
    """Outcome of handing a payload to a push transport."""

    SENT = "sent"
    FAILED = "failed"
    REJECTED = "rejected"  # Transport says the device token is no longer valid


@dataclass
class Registration:
    """
    Binding of one live BOSH session to one device.

    Owned by the SessionRegistry. Callers only ever see copies.
    """

    sid: str
    device_token: str
    badge: int = 0

    # Raw registration request, kept for the status page
    info: dict[str, Any] = field(default_factory=dict)
    registered_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict."""
        return {
            "sid": self.sid,
            "device_token": self.device_token,
            "badge": self.badge,
            "info": self.info,
            "registered_at": self.registered_at.isoformat(),
        }


@dataclass(frozen=True)
class NotificationPayload:
    """
    Push notification payload.

    Ephemeral: built per event, never stored. Serialized form is APNs JSON,
    see boshpush.push.payload.serialize_payload.
    """

    alert_text: str
    badge_count: int
    metadata: dict[str, str] = field(default_factory=dict)
    sound: str | None = None

    @property
    def is_badge_only(self) -> bool:
        return not self.alert_text

    def to_aps(self) -> dict[str, Any]:
        """Build the APNs dictionary (aps section plus custom keys)."""
        aps: dict[str, Any] = {}
        if self.alert_text:
            aps["alert"] = self.alert_text
        aps["badge"] = self.badge_count
        if self.sound:
            aps["sound"] = self.sound

        body: dict[str, Any] = {"aps": aps}
        body.update(self.metadata)
        return body


@dataclass
class DeliveryResult:
    """
    Result of submitting a payload to a push channel.

    Success means the transport accepted the payload, not that the device
    received it.
    """

    success: bool
    device_token: str | None = None
    status: DeliveryStatus = DeliveryStatus.SENT
    status_code: int | None = None
    receipt_id: str | None = None
    error: str | None = None
    should_unregister: bool = False  # Token rejected by the gateway

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict."""
        return asdict(self)

    @classmethod
    def failed(
        cls,
        device_token: str | None,
        error: str,
        status_code: int | None = None,
        should_unregister: bool = False,
    ) -> "DeliveryResult":
        return cls(
            success=False,
            device_token=device_token,
            status=DeliveryStatus.REJECTED if should_unregister else DeliveryStatus.FAILED,
            status_code=status_code,
            error=error,
            should_unregister=should_unregister,
        )
