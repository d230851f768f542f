"""Message framing: wrapping byte streams into JSON-RPC message readers and writers."""

from __future__ import annotations

import codecs
import json
import re
import threading
from typing import BinaryIO

from wingman.jsonrpc2.messages import Message, decode_message, encode_message

_INT32_MAX = 2**31 - 1
_INTEGER = re.compile(r"[+-]?[0-9]+")
_JSON_WHITESPACE = " \t\r\n"
_JSON_START = set('{["-0123456789tfn')
_CHUNK_SIZE = 4096


class FrameError(ValueError):
    """Raised when a stream does not hold a well-formed framed message."""


class UnexpectedEOFError(FrameError):
    """Raised when a stream ends in the middle of a message."""


def _read_chunk(stream: BinaryIO) -> bytes:
    read1 = getattr(stream, "read1", None)
    if callable(read1):
        return read1(_CHUNK_SIZE)
    return stream.read(_CHUNK_SIZE)


def _parse_content_length(value: str) -> int:
    if not _INTEGER.fullmatch(value):
        raise FrameError(f"failed parsing Content-Length: {value}")
    length = int(value)
    if not -_INT32_MAX - 1 <= length <= _INT32_MAX:
        raise FrameError(f"failed parsing Content-Length: {value}")
    if length <= 0:
        raise FrameError(f"invalid Content-Length: {length}")
    return length


class HeaderReader:
    """Reads messages preceded by HTTP-style headers, as used by LSP."""

    def __init__(self, stream: BinaryIO) -> None:
        self._in = stream

    def _read_exact(self, size: int) -> bytes:
        parts: list[bytes] = []
        remaining = size
        while remaining > 0:
            chunk = self._in.read(remaining)
            if not chunk:
                break
            parts.append(chunk)
            remaining -= len(chunk)
        data = b"".join(parts)
        if not data:
            raise EOFError("EOF")
        if len(data) < size:
            raise UnexpectedEOFError("unexpected EOF")
        return data

    def read(self) -> Message:
        """Read the next message; raise EOFError when the stream ends cleanly."""
        first_read = True
        content_length = 0
        while True:
            raw = self._in.readline()
            if not raw.endswith(b"\n"):
                if first_read and not raw:
                    raise EOFError("EOF")
                raise UnexpectedEOFError("failed reading header line: unexpected EOF")
            first_read = False

            line = raw.decode("latin-1").strip()
            if not line:
                break
            name, colon, value = line.partition(":")
            if not colon:
                raise FrameError(f"invalid header line {json.dumps(line)}")
            if name == "Content-Length":
                content_length = _parse_content_length(value.strip())

        if content_length == 0:
            raise FrameError("missing Content-Length header")
        return decode_message(self._read_exact(content_length))


class HeaderWriter:
    """Writes messages preceded by a Content-Length header."""

    def __init__(self, stream: BinaryIO) -> None:
        self._out = stream
        self._lock = threading.Lock()

    def write(self, msg: Message) -> None:
        """Write one framed message; safe to call from several threads."""
        data = encode_message(msg)
        with self._lock:
            self._out.write(f"Content-Length: {len(data)}\r\n\r\n".encode("ascii"))
            self._out.write(data)
            flush = getattr(self._out, "flush", None)
            if callable(flush):
                flush()


class RawReader:
    """Reads consecutive JSON values with no framing around them."""

    def __init__(self, stream: BinaryIO) -> None:
        self._in = stream
        self._buffer = ""
        self._eof = False
        self._text = codecs.getincrementaldecoder("utf-8")()
        self._json = json.JSONDecoder()

    def _fill(self) -> None:
        chunk = _read_chunk(self._in)
        if not chunk:
            self._eof = True
        try:
            self._buffer += self._text.decode(chunk, final=self._eof)
        except UnicodeDecodeError as exc:
            raise FrameError(f"invalid UTF-8 in stream: {exc}") from exc

    def read(self) -> Message:
        """Read the next message; raise EOFError when the stream ends cleanly."""
        while True:
            text = self._buffer.lstrip(_JSON_WHITESPACE)
            self._buffer = text
            if text:
                if text[0] not in _JSON_START:
                    raise FrameError(f"invalid character {text[0]!r} looking for beginning of value")
                try:
                    _, end = self._json.raw_decode(text)
                except json.JSONDecodeError as exc:
                    if self._eof:
                        raise UnexpectedEOFError(f"unexpected EOF: {exc.msg}") from exc
                else:
                    self._buffer = text[end:]
                    return decode_message(text[:end])
            elif self._eof:
                raise EOFError("EOF")
            self._fill()


class RawWriter:
    """Writes messages as bare JSON values."""

    def __init__(self, stream: BinaryIO) -> None:
        self._out = stream
        self._lock = threading.Lock()

    def write(self, msg: Message) -> None:
        """Write one message; safe to call from several threads."""
        data = encode_message(msg)
        with self._lock:
            self._out.write(data)
            flush = getattr(self._out, "flush", None)
            if callable(flush):
                flush()


class HeaderFramer:
    """Frames messages with Content-Length headers."""

    def reader(self, stream: BinaryIO) -> HeaderReader:
        """Wrap a byte stream into a message reader."""
        return HeaderReader(stream)

    def writer(self, stream: BinaryIO) -> HeaderWriter:
        """Wrap a byte stream into a message writer."""
        return HeaderWriter(stream)


class RawFramer:
    """Sends messages unwrapped, relying on JSON value boundaries."""

    def reader(self, stream: BinaryIO) -> RawReader:
        """Wrap a byte stream into a message reader."""
        return RawReader(stream)

    def writer(self, stream: BinaryIO) -> RawWriter:
        """Wrap a byte stream into a message writer."""
        return RawWriter(stream)