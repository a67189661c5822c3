"""
Session Registry - sid to device bindings

Keeps two views over the set of registrations:

- sessions: sid -> Registration
- devices: device token -> sid (reverse index)

A device token belongs to at most one live sid. Registering a new sid for a
token that is already held evicts the previous sid. Both maps change together
under one lock, so no reader ever sees a half-applied eviction.

"Not found" is never an error here. Sessions disappear between an event and
its handling all the time (stream teardown racing an explicit unregister), so
absence is reported as False/None.

Usage:
    from boshpush.push.registry import SessionRegistry

    registry = SessionRegistry()
    registry.register("s1", "tokA")
    registry.lookup("s1")
"""

import copy
import logging
import threading
from typing import Any

from boshpush.push.models import Registration


logger = logging.getLogger(__name__)


class SessionRegistry:
    """Thread-safe in-memory registry of session/device bindings."""

    def __init__(self):
        self._sessions: dict[str, Registration] = {}
        self._devices: dict[str, str] = {}
        self._lock = threading.Lock()

    # =========================================================================
    # Mutations
    # =========================================================================

    def register(
        self,
        sid: str,
        device_token: str | None,
        info: dict[str, Any] | None = None,
    ) -> bool:
        """
        Bind a session to a device.

        Args:
            sid: Session identifier
            device_token: Device token to notify, must be non-empty
            info: Raw registration request, stored for display

        Returns:
            True if registered, False if the device token is missing
        """
        if not device_token:
            logger.debug(f"Rejecting registration for {sid}: no device token")
            return False

        with self._lock:
            owner = self._devices.get(device_token)
            if owner is not None and owner != sid:
                self._remove(owner)
                logger.info(f"Evicted session {owner}: device claimed by {sid}")

            previous = self._sessions.get(sid)
            if previous is not None and previous.device_token != device_token:
                # sid moves to a new device; free the old token
                if self._devices.get(previous.device_token) == sid:
                    del self._devices[previous.device_token]

            self._sessions[sid] = Registration(
                sid=sid,
                device_token=device_token,
                badge=previous.badge if previous is not None else 0,
                info=dict(info or {}),
            )
            self._devices[device_token] = sid

        logger.debug(f"Registered session {sid}")
        return True

    def unregister(self, sid: str) -> None:
        """Remove a session. Unknown sids are ignored."""
        with self._lock:
            removed = self._remove(sid)
        if removed:
            logger.debug(f"Unregistered session {sid}")

    def remove_by_stream_termination(self, sid: str) -> None:
        """
        Remove a session whose stream has terminated.

        Same removal as unregister. The stream may already have been
        unregistered explicitly; that is not an error.
        """
        with self._lock:
            removed = self._remove(sid)
        if removed:
            logger.debug(f"Removed session {sid} after stream termination")

    def set_badge(self, sid: str, count: int) -> bool:
        """
        Record the badge count for a session.

        Returns:
            True if the session exists, False otherwise

        Raises:
            ValueError: count is negative
        """
        if count < 0:
            raise ValueError(f"Badge count must be >= 0, got {count}")

        with self._lock:
            registration = self._sessions.get(sid)
            if registration is None:
                return False
            registration.badge = count
        return True

    def _remove(self, sid: str) -> bool:
        """Drop a sid from both maps. Must hold _lock."""
        registration = self._sessions.pop(sid, None)
        if registration is None:
            return False
        if self._devices.get(registration.device_token) == sid:
            del self._devices[registration.device_token]
        return True

    # =========================================================================
    # Reads
    # =========================================================================

    def lookup(self, sid: str) -> Registration | None:
        """Get a copy of the registration for a sid, or None."""
        with self._lock:
            registration = self._sessions.get(sid)
            return copy.deepcopy(registration) if registration is not None else None

    def lookup_device(self, device_token: str) -> str | None:
        """Get the sid currently holding a device token, or None."""
        with self._lock:
            return self._devices.get(device_token)

    def snapshot(self) -> list[Registration]:
        """Copies of all registrations, oldest first."""
        with self._lock:
            registrations = [copy.deepcopy(r) for r in self._sessions.values()]
        return sorted(registrations, key=lambda r: r.registered_at)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, sid: object) -> bool:
        with self._lock:
            return sid in self._sessions
