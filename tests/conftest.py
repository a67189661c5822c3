"""Shared test fixtures for bridge tests.

This module provides common fixtures used across all test modules:
- A recording push channel in place of a real gateway
- A fresh session registry and dispatch engine per test
- Standard sender and recipient JIDs

Usage:
    async def test_something(engine, recording_channel):
        ...
"""

import pytest

from boshpush.dispatch import DispatchEngine
from boshpush.push.channels import PushChannel
from boshpush.push.models import DeliveryResult, NotificationPayload
from boshpush.push.registry import SessionRegistry


# ─────────────────────────────────────────────────────────────────────────────
# Push Channel Fixtures
# ─────────────────────────────────────────────────────────────────────────────


class RecordingPushChannel(PushChannel):
    """Push channel that records submissions instead of sending them."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.submitted: list[tuple[str, NotificationPayload]] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "recording"

    async def submit(self, device_token, payload):
        self.submitted.append((device_token, payload))
        if self.succeed:
            return DeliveryResult(success=True, device_token=device_token)
        return DeliveryResult.failed(device_token, "gateway unavailable", status_code=503)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def recording_channel() -> RecordingPushChannel:
    return RecordingPushChannel()


@pytest.fixture
def failing_channel() -> RecordingPushChannel:
    return RecordingPushChannel(succeed=False)


# ─────────────────────────────────────────────────────────────────────────────
# Core Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def engine(registry, recording_channel) -> DispatchEngine:
    """Dispatch engine wired to a fresh registry and a recording channel."""
    return DispatchEngine(registry, recording_channel)


# ─────────────────────────────────────────────────────────────────────────────
# Identity Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def sender_jid() -> str:
    """Full JID of a message sender."""
    return "alice@example.com/phone"


@pytest.fixture
def recipient_jid() -> str:
    return "bob@example.com/bosh"
