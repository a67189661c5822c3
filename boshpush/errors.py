"""Exception types raised by the bridge."""


class BoshPushError(Exception):
    """Base class for bridge errors."""


class PayloadTooLargeError(BoshPushError):
    """Payload cannot fit the byte budget even with an empty alert."""

    def __init__(self, size: int, max_bytes: int):
        super().__init__(
            f"Payload is {size} bytes with an empty alert, budget is {max_bytes}"
        )
        self.size = size
        self.max_bytes = max_bytes


class PushChannelError(BoshPushError):
    """Push transport is misconfigured or unusable."""


__all__ = [
    "BoshPushError",
    "PayloadTooLargeError",
    "PushChannelError",
]
