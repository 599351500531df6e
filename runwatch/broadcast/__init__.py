"""Live distribution of change events over Server-Sent-Events."""

from __future__ import annotations

from .broadcaster import Broadcaster, Subscription
from .frames import CONNECTED, KEEP_ALIVE, Frame, FrameKind

__all__ = [
    "CONNECTED",
    "KEEP_ALIVE",
    "Broadcaster",
    "Frame",
    "FrameKind",
    "Subscription",
]
