"""
Stream Events - what the BOSH stream server tells the bridge

The stream server owns stanza parsing and session lifecycle. It reports two
things to the bridge:

- MessageReceived: a chat message with a non-empty body arrived for a sid
- StreamTerminated: the stream (or the whole session) for a sid ended

Helpers here turn parsed stanzas (xml.etree elements, with or without the
jabber:client namespace) into events and count the message-bearing stanzas
still pending on a stream.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from xml.etree.ElementTree import Element


@dataclass(frozen=True)
class MessageReceived:
    sid: str
    sender: str
    recipient: str
    body: str
    pending_count: int


@dataclass(frozen=True)
class StreamTerminated:
    sid: str
    # 'terminate' for the session, 'stream-terminate' for one stream
    reason: str = "terminate"


StreamEvent = MessageReceived | StreamTerminated


def bare_jid(jid: str) -> str:
    """Strip the resource from a JID: 'alice@x/phone' -> 'alice@x'."""
    return jid.split("/", 1)[0]


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def message_body(stanza: Element) -> str | None:
    """
    Body text of a message stanza.

    Returns:
        The body text, or None if the stanza is not a message or its body
        is missing or empty
    """
    if _local_name(stanza.tag) != "message":
        return None
    for child in stanza:
        if _local_name(child.tag) == "body":
            return child.text or None
    return None


def count_pending_messages(stanzas: Iterable[Element]) -> int:
    """Number of stanzas that are messages with a non-empty body."""
    return sum(1 for stanza in stanzas if message_body(stanza))


def message_event_from_stanza(
    sid: str,
    stanza: Element,
    pending: Iterable[Element] = (),
) -> MessageReceived | None:
    """
    Build a MessageReceived event from a stanza sent down a stream.

    Args:
        sid: Session the stanza was sent on
        stanza: The outgoing stanza
        pending: Stanzas queued on the stream at this moment

    Returns:
        The event, or None when the stanza carries no message body
    """
    body = message_body(stanza)
    if not body:
        return None

    return MessageReceived(
        sid=sid,
        sender=stanza.get("from", ""),
        recipient=stanza.get("to", ""),
        body=body,
        pending_count=count_pending_messages(pending),
    )
