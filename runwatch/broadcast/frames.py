"""Server-Sent-Events frames written to live subscriptions."""

from __future__ import annotations

import dataclasses
import enum

import msgspec


class FrameKind(enum.StrEnum):
    """Data frames carry events; comment frames are ignored by SSE parsers."""

    DATA = "data"
    COMMENT = "comment"


@dataclasses.dataclass(frozen=True, slots=True)
class Frame:
    """One SSE frame, serialized once and shared by every subscription."""

    kind: FrameKind
    body: str

    @classmethod
    def data(cls, payload: object) -> Frame:
        """Build a data frame from a msgspec-encodable payload."""
        return cls(FrameKind.DATA, msgspec.json.encode(payload).decode("utf-8"))

    @classmethod
    def comment(cls, text: str) -> Frame:
        """Build a comment frame."""
        return cls(FrameKind.COMMENT, text)

    def encode(self) -> str:
        """Render the frame in ``text/event-stream`` framing.

        >>> Frame.comment("keep-alive").encode()
        ': keep-alive\\n\\n'

        """
        if self.kind is FrameKind.DATA:
            return f"data: {self.body}\n\n"
        return f": {self.body}\n\n"


CONNECTED = Frame.comment("connected")
KEEP_ALIVE = Frame.comment("keep-alive")
