"""JSON-RPC 2.0 wire errors and the standard error values."""

from __future__ import annotations

from typing import Any

WIRE_VERSION = "2.0"


class WireError(Exception):
    """A structured error as carried in a JSON-RPC response."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"WireError(code={self.code}, message={self.message!r})"

    def matches(self, other: object) -> bool:
        """Report whether ``other`` is a wire error with the same code."""
        return isinstance(other, WireError) and other.code == self.code

    def to_json(self) -> dict[str, Any]:
        """Return the JSON object form of this error."""
        document: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            document["data"] = self.data
        return document


def new_error(code: int, message: str) -> WireError:
    """Build an error that encodes on the wire with the given code."""
    return WireError(code, message)


class NotHandledError(Exception):
    """Raised by a handler or preempter that did not handle a request."""

    def __init__(self, message: str = "JSON RPC not handled") -> None:
        super().__init__(message)


ERR_PARSE = new_error(-32700, "parse error")
ERR_INVALID_REQUEST = new_error(-32600, "invalid request")
ERR_METHOD_NOT_FOUND = new_error(-32601, "method not found")
ERR_INVALID_PARAMS = new_error(-32602, "invalid params")
ERR_INTERNAL = new_error(-32603, "internal error")

ERR_SERVER_OVERLOADED = new_error(-32000, "overloaded")
ERR_UNKNOWN = new_error(-32001, "unknown error")
ERR_SERVER_CLOSING = new_error(-32004, "server is closing")
ERR_CLIENT_CLOSING = new_error(-32003, "client is closing")

ERR_REJECTED = new_error(-32005, "rejected by transport")