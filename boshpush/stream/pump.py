"""
Stream Event Pump - single consumer between the stream server and the engine

The stream server publishes events from its callbacks; one asyncio task
takes them off the queue and hands them to the dispatch engine in arrival
order. Events for the same sid are therefore never reordered or handled
concurrently.

Usage:
    pump = StreamEventPump(engine)
    await pump.start()

    # from callbacks running on the app's event loop
    pump.on_response(sid, stanza, pending_stanzas)
    pump.on_terminate(sid)

    # from any other thread
    pump.publish_threadsafe(StreamTerminated(sid=sid))

    await pump.stop()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any
from xml.etree.ElementTree import Element

from boshpush.stream.events import (
    MessageReceived,
    StreamEvent,
    StreamTerminated,
    message_event_from_stanza,
)

if TYPE_CHECKING:
    from boshpush.dispatch import DispatchEngine


logger = logging.getLogger(__name__)


class StreamEventPump:
    """Queues stream events and feeds them to the dispatch engine one at a time."""

    def __init__(self, engine: DispatchEngine, maxsize: int = 0):
        """
        Args:
            engine: Dispatch engine receiving the events
            maxsize: Queue bound, 0 for unbounded
        """
        self.engine = engine
        self._queue: asyncio.Queue[StreamEvent] = asyncio.Queue(maxsize=maxsize)
        self._task: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

        self.metrics = {"published": 0, "handled": 0, "dropped": 0, "errors": 0}

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # =========================================================================
    # Producer side
    # =========================================================================

    def publish(self, event: StreamEvent) -> bool:
        """
        Queue an event. Must be called on the event loop running the pump.

        Returns:
            False if the queue is full and the event was dropped
        """
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.metrics["dropped"] += 1
            logger.warning(f"Stream event queue full, dropping event for {event.sid}")
            return False

        self.metrics["published"] += 1
        return True

    def publish_threadsafe(self, event: StreamEvent) -> None:
        """
        Queue an event from a thread other than the pump's event loop.

        Raises:
            RuntimeError: The pump has not been started
        """
        if self._loop is None:
            raise RuntimeError("Stream event pump is not running")
        self._loop.call_soon_threadsafe(self.publish, event)

    def on_response(
        self,
        sid: str,
        stanza: Element,
        pending: Iterable[Element] = (),
    ) -> bool:
        """
        Stream server sent a stanza down a stream.

        Only messages with a body become events.

        Returns:
            True if an event was queued
        """
        event = message_event_from_stanza(sid, stanza, pending)
        if event is None:
            return False
        return self.publish(event)

    def on_terminate(self, sid: str) -> bool:
        """Whole session terminated."""
        return self.publish(StreamTerminated(sid=sid, reason="terminate"))

    def on_stream_terminate(self, sid: str) -> bool:
        """One stream of the session terminated."""
        return self.publish(StreamTerminated(sid=sid, reason="stream-terminate"))

    # =========================================================================
    # Consumer side
    # =========================================================================

    async def start(self) -> None:
        """Start the consumer task."""
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._task = asyncio.create_task(self._run())
        logger.info("Stream event pump started")

    async def stop(self, drain: bool = True) -> None:
        """
        Stop the consumer task.

        Args:
            drain: Handle already-queued events before stopping
        """
        if self._task is None:
            return

        if drain and self.running:
            await self._queue.join()

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self._loop = None
        logger.info("Stream event pump stopped")

    async def join(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.handle(event)
                self.metrics["handled"] += 1
            except Exception:
                self.metrics["errors"] += 1
                logger.exception(f"Failed to handle stream event for {event.sid}")
            finally:
                self._queue.task_done()

    async def handle(self, event: StreamEvent) -> Any:
        """Hand one event to the engine."""
        if isinstance(event, MessageReceived):
            return await self.engine.on_stream_message(
                event.sid,
                event.sender,
                event.recipient,
                event.body,
                event.pending_count,
            )
        if isinstance(event, StreamTerminated):
            return self.engine.on_stream_terminated(event.sid)
        raise TypeError(f"Unknown stream event: {event!r}")
