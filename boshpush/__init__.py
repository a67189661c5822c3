"""BOSH Push Bridge: XMPP/BOSH sessions to mobile push notifications

When a user's BOSH stream is idle or closed, chat messages addressed to that
stream are turned into push notifications for the device registered against
the session.

Components:
    push/: Session registry, payload builder, push transports
    stream/: Stream-server events and the single-consumer event pump
    api/: HTTP control plane (register, unregister, badge, status)
    dispatch.py: Dispatch engine tying the above together

State:
    In-memory only. Registrations are lost on restart.
"""

from pathlib import Path


__version__ = "0.1.0"

# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
ARGS_DIR = PROJECT_ROOT / "args"
