"""Incremental Server-Sent Events parser.

Feed it bytes exactly as they arrive from the network; it returns the frames
completed by that chunk and keeps everything else (a partial line, half of a
``\\r\\n`` pair, half of a multi-byte UTF-8 character) for the next call.
Splitting the same bytes differently never changes the output.

Line rules (text/event-stream):
    - ``:comment``            comment, kept on the frame but never dispatched alone
    - ``field: value``        one optional space after the colon is stripped
    - ``field``               field with an empty value
    - ``data`` lines          accumulate, joined with "\\n"
    - ``id``                  persists across frames
    - blank line              dispatches the accumulated frame
    - any other field name    kept in ``unknown``, never an error

See: https://html.spec.whatwg.org/multipage/server-sent-events.html#parsing-an-event-stream
"""
import codecs
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class FieldType(str, Enum):
    EVENT = "event"
    DATA = "data"
    ID = "id"
    COMMENT = "comment"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SSELine:
    """One classified line of the stream."""
    field: FieldType
    value: str
    name: str = ""


@dataclass
class SSEFrame:
    """One complete record, dispatched at a blank line.

    Attributes:
        event: Value of the last "event" line, if any
        data: All "data" values joined with "\\n"; None if there were none
        id: Last seen "id" (carried over from earlier frames)
        comments: Comment lines seen while this frame accumulated
        unknown: Values of unrecognized fields, by field name
        lines: Every classified line in arrival order
    """
    event: Optional[str] = None
    data: Optional[str] = None
    id: Optional[str] = None
    comments: list[str] = field(default_factory=list)
    unknown: dict[str, list[str]] = field(default_factory=dict)
    lines: list[SSELine] = field(default_factory=list)


def classify_line(line: str) -> SSELine:
    """Classify a single line (without its terminator)."""
    if line.startswith(":"):
        return SSELine(FieldType.COMMENT, line[1:].lstrip(" "), "")

    name, sep, value = line.partition(":")
    if sep and value.startswith(" "):
        value = value[1:]

    try:
        field_type = FieldType(name)
    except ValueError:
        field_type = FieldType.UNKNOWN
    if field_type is FieldType.COMMENT:
        # "comment:" is an ordinary unknown field name
        field_type = FieldType.UNKNOWN
    return SSELine(field_type, value, name)


class SSEFrameParser:
    """Stateful, incremental text/event-stream parser."""

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        # Length of the retained buffer already known to hold no line break
        self._scanned = 0
        self._last_id: Optional[str] = None
        self._reset_pending()

    def _reset_pending(self) -> None:
        self._event: Optional[str] = None
        self._data: list[str] = []
        self._comments: list[str] = []
        self._unknown: dict[str, list[str]] = {}
        self._lines: list[SSELine] = []
        self._has_fields = False

    @property
    def last_event_id(self) -> Optional[str]:
        return self._last_id

    def feed(self, chunk: Union[bytes, str]) -> list[SSEFrame]:
        """Consume a chunk and return the frames it completed."""
        if isinstance(chunk, bytes):
            self._buffer += self._decoder.decode(chunk)
        else:
            self._buffer += chunk

        frames: list[SSEFrame] = []
        start = 0
        search = self._scanned
        buffer = self._buffer
        length = len(buffer)

        while start < length:
            cr = buffer.find("\r", search)
            lf = buffer.find("\n", search)
            if cr == -1 and lf == -1:
                search = length
                break

            if cr != -1 and (lf == -1 or cr < lf):
                if cr + 1 == length:
                    # Could be the first half of "\r\n"
                    search = cr
                    break
                end = cr
                next_start = cr + 2 if buffer[cr + 1] == "\n" else cr + 1
            else:
                end = lf
                next_start = lf + 1

            frame = self._process_line(buffer[start:end])
            if frame is not None:
                frames.append(frame)
            start = next_start
            search = start

        self._buffer = buffer[start:]
        self._scanned = max(search - start, 0)
        return frames

    def flush(self) -> list[SSEFrame]:
        """Dispatch whatever is pending at end of stream."""
        frames: list[SSEFrame] = []
        tail = self._decoder.decode(b"", final=True)
        remainder = (self._buffer + tail).rstrip("\r")
        self._buffer = ""
        self._scanned = 0
        if remainder:
            self._process_line(remainder)
        frame = self._dispatch()
        if frame is not None:
            frames.append(frame)
        return frames

    def _process_line(self, line: str) -> Optional[SSEFrame]:
        if not line:
            return self._dispatch()

        parsed = classify_line(line)
        self._lines.append(parsed)

        if parsed.field is FieldType.COMMENT:
            self._comments.append(parsed.value)
            return None

        self._has_fields = True
        if parsed.field is FieldType.DATA:
            self._data.append(parsed.value)
        elif parsed.field is FieldType.EVENT:
            self._event = parsed.value
        elif parsed.field is FieldType.ID:
            if "\0" not in parsed.value:
                self._last_id = parsed.value
        else:
            self._unknown.setdefault(parsed.name, []).append(parsed.value)
        return None

    def _dispatch(self) -> Optional[SSEFrame]:
        if not self._has_fields:
            self._reset_pending()
            return None

        frame = SSEFrame(
            event=self._event,
            data="\n".join(self._data) if self._data else None,
            id=self._last_id,
            comments=self._comments,
            unknown=self._unknown,
            lines=self._lines,
        )
        self._reset_pending()
        return frame
