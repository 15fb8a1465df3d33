"""SSE (Server-Sent Events) line decoding and frame formatting."""

import codecs
import json
from typing import Any


DONE_FRAME = b"data: [DONE]\n\n"


class LineDecoder:
    """Split an upstream byte stream into complete lines.

    The trailing segment of every chunk is kept until the newline that
    completes it arrives, so a line is never emitted in pieces no matter
    where the transport splits the stream.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    @property
    def buffer(self) -> str:
        return self._buffer

    def feed(self, chunk: bytes) -> list[str]:
        if not chunk:
            return []
        self._buffer += self._decoder.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return lines

    def flush(self) -> list[str]:
        """Return the unterminated remainder as a last line, if it has content."""
        leftover = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        if not leftover.strip():
            return []
        return [leftover]


def format_sse_data(payload: Any) -> bytes:
    """Encode a payload as a single `data:` frame."""
    json_str = json.dumps(payload, ensure_ascii=False)
    return f"data: {json_str}\n\n".encode("utf-8")
