"""Incremental decoder for the ``text/event-stream`` wire format.

Bytes arrive in arbitrary chunks; the decoder buffers partial lines and
emits a ``StreamEvent`` each time a blank line ends a record that carried
data. Comment lines (``:`` prefix) are the feed's keep-alives and produce
nothing. Line endings may be CRLF, LF or CR.
"""

from __future__ import annotations

import codecs

from ...models.stream import StreamEvent


class SSEDecoder:
    """Stateful event-stream parser; one instance per connection."""

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._pending_cr = False
        self._reset_record()
        self.last_event_id: str | None = None
        # Reconnection time last requested by the server, in milliseconds
        self.reconnect_ms: int | None = None

    def _reset_record(self) -> None:
        self._event = ""
        self._data: list[str] = []
        self._id: str | None = None
        self._retry: int | None = None

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        """Consume ``chunk`` and return the events it completed."""
        text = self._utf8.decode(chunk)
        if self._pending_cr and text.startswith("\n"):
            # second half of a CRLF split across chunks
            text = text[1:]
        self._pending_cr = False
        self._buffer += text

        events: list[StreamEvent] = []
        while True:
            line, found = self._take_line()
            if not found:
                break
            event = self._process_line(line)
            if event is not None:
                events.append(event)
        return events

    def _take_line(self) -> tuple[str, bool]:
        buf = self._buffer
        nl = buf.find("\n")
        cr = buf.find("\r")
        if nl == -1 and cr == -1:
            return "", False
        if cr == -1 or (nl != -1 and nl < cr):
            idx, end = nl, nl + 1
        elif cr + 1 < len(buf):
            idx, end = cr, (cr + 2 if buf[cr + 1] == "\n" else cr + 1)
        else:
            idx, end = cr, cr + 1
            self._pending_cr = True
        self._buffer = buf[end:]
        return buf[:idx], True

    def _process_line(self, line: str) -> StreamEvent | None:
        if line == "":
            return self._dispatch()
        if line.startswith(":"):
            return None

        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if name == "event":
            self._event = value
        elif name == "data":
            self._data.append(value)
        elif name == "id":
            if "\x00" not in value:
                self._id = value
                self.last_event_id = value
        elif name == "retry":
            if value.isdigit():
                self._retry = int(value)
                self.reconnect_ms = self._retry
        # unknown fields are ignored
        return None

    def _dispatch(self) -> StreamEvent | None:
        if not self._data:
            self._reset_record()
            return None
        event = StreamEvent(
            event=self._event or "message",
            data="\n".join(self._data),
            id=self._id,
            retry=self._retry,
        )
        self._reset_record()
        return event
