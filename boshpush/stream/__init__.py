"""Stream-server events and the queue that feeds them to the dispatch engine."""

from .events import (
    MessageReceived,
    StreamEvent,
    StreamTerminated,
    bare_jid,
    count_pending_messages,
    message_body,
    message_event_from_stanza,
)
from .pump import StreamEventPump

__all__ = [
    'MessageReceived',
    'StreamEvent',
    'StreamTerminated',
    'StreamEventPump',
    'bare_jid',
    'count_pending_messages',
    'message_body',
    'message_event_from_stanza',
]
