"""
Tool: Notification Payload Builder
Purpose: Build push payloads that fit the gateway's byte budget

The serialized payload (compact APNs JSON, UTF-8) must not exceed
``max_bytes``. When it does, only the alert text is shortened; badge, sound
and metadata pass through untouched. Truncation never splits a multi-byte
code point.

Usage:
    from boshpush.push.payload import build_payload

    payload = build_payload("alice@example.com: hi", 3, {"from": "...", "to": "..."})
"""

import json

from boshpush.errors import PayloadTooLargeError
from boshpush.push.models import NotificationPayload


# Reference deployment budget (legacy APNs binary interface)
DEFAULT_MAX_PAYLOAD_BYTES = 256


def serialize_payload(payload: NotificationPayload) -> bytes:
    """Serialize a payload to the bytes sent on the wire."""
    return json.dumps(
        payload.to_aps(),
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def payload_size(payload: NotificationPayload) -> int:
    """Wire size of a payload in bytes."""
    return len(serialize_payload(payload))


def truncate_utf8(text: str, max_bytes: int) -> str:
    """
    Cut text to at most max_bytes of UTF-8.

    A code point that would be split by the cut is dropped entirely.
    """
    if max_bytes <= 0:
        return ""
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def build_payload(
    alert_text: str,
    badge_count: int,
    metadata: dict[str, str] | None = None,
    *,
    sound: str | None = None,
    max_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES,
) -> NotificationPayload:
    """
    Build a notification payload within the byte budget.

    Args:
        alert_text: Human-visible message, empty for a badge-only push
        badge_count: Badge number to display
        metadata: Custom keys sent alongside the aps section
        sound: Optional sound name
        max_bytes: Serialized size limit

    Returns:
        The draft payload if it fits, otherwise a copy with a shortened alert

    Raises:
        PayloadTooLargeError: Metadata alone exceeds the budget
    """
    payload = NotificationPayload(
        alert_text=alert_text or "",
        badge_count=badge_count,
        metadata=dict(metadata or {}),
        sound=sound,
    )

    size = payload_size(payload)
    if size <= max_bytes:
        return payload

    def with_text(text: str) -> NotificationPayload:
        return NotificationPayload(
            alert_text=text,
            badge_count=payload.badge_count,
            metadata=payload.metadata,
            sound=payload.sound,
        )

    empty = with_text("")
    if payload_size(empty) > max_bytes:
        raise PayloadTooLargeError(payload_size(empty), max_bytes)

    text = payload.alert_text
    encoded_len = len(text.encode("utf-8"))

    # Removing the excess in raw bytes always fits: every byte of text costs
    # at least one byte once serialized. JSON-escaped characters cost more,
    # so search upward for the longest prefix that still fits.
    lo = max(encoded_len - (size - max_bytes), 0)
    hi = encoded_len - 1
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if payload_size(with_text(truncate_utf8(text, mid))) <= max_bytes:
            lo = mid
        else:
            hi = mid - 1

    return with_text(truncate_utf8(text, lo))


__all__ = [
    "DEFAULT_MAX_PAYLOAD_BYTES",
    "build_payload",
    "payload_size",
    "serialize_payload",
    "truncate_utf8",
]
