"""JSON-RPC 2.0 messages: identifiers, requests, responses and their encoding."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from typing import Any, Union

from wingman.jsonrpc2.wire import (
    ERR_INVALID_REQUEST,
    ERR_PARSE,
    WIRE_VERSION,
    WireError,
)


def _error(base: WireError, detail: str | None = None) -> WireError:
    message = base.message if detail is None else f"{base.message}: {detail}"
    return WireError(base.to_json()["code"], message)


@dataclass(frozen=True)
class ID:
    """A request identifier: an integer, a string, or absent."""

    value: int | str | None = None

    def is_valid(self) -> bool:
        """Report whether this identifier is set."""
        return self.value is not None

    def __str__(self) -> str:
        return "" if self.value is None else str(self.value)


def string_id(value: str) -> ID:
    """Create a string request identifier."""
    return ID(str(value))


def int64_id(value: int) -> ID:
    """Create an integer request identifier."""
    return ID(int(value))


def make_id(value: Any) -> ID:
    """Coerce a decoded JSON value into an identifier."""
    if value is None:
        return ID()
    if isinstance(value, str):
        return string_id(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return int64_id(int(value))
        except (OverflowError, ValueError):
            pass
    raise _error(ERR_PARSE, f"invalid ID type {type(value).__name__}")


@dataclass
class Request:
    """A call (with an identifier) or a notification (without one)."""

    method: str
    id: ID = field(default_factory=ID)
    params: str | None = None
    extra: Any = None

    def is_call(self) -> bool:
        """Report whether this request expects a response."""
        return self.id.is_valid()


@dataclass
class Response:
    """The reply to a call, holding either raw JSON result text or an error."""

    id: ID
    result: str | None = None
    error: BaseException | None = None
    extra: Any = None


Message = Union[Request, Response]


def _jsonable(obj: Any) -> Any:
    to_json = getattr(obj, "to_json", None)
    if callable(to_json):
        return to_json()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _marshal(obj: Any) -> str | None:
    if obj is None:
        return None
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False, default=_jsonable)


def new_notification(method: str, params: Any) -> Request:
    """Build a notification for ``method`` with ``params`` marshalled to JSON."""
    return Request(method=method, params=_marshal(params))


def new_call(id: ID, method: str, params: Any) -> Request:
    """Build a call for ``method`` with the given identifier."""
    return Request(method=method, id=id, params=_marshal(params))


def new_response(id: ID, result: Any, error: BaseException | None) -> Response:
    """Build a response; when ``error`` is set the result may be ignored."""
    return Response(id=id, result=_marshal(result), error=error)


def _to_wire_error(err: BaseException | None) -> WireError | None:
    if err is None:
        return None
    if isinstance(err, WireError):
        return err
    number = 0
    seen: set[int] = set()
    cause = err.__cause__ or err.__context__
    while cause is not None and id(cause) not in seen:
        seen.add(id(cause))
        if isinstance(cause, WireError):
            number = cause.to_json()["code"]
            break
        cause = cause.__cause__ or cause.__context__
    return WireError(number, str(err))


def _wire_fields(msg: Message) -> list[tuple[str, str]]:
    fields = [("jsonrpc", json.dumps(WIRE_VERSION))]
    if msg.id.value is not None:
        fields.append(("id", json.dumps(msg.id.value, ensure_ascii=False)))
    if isinstance(msg, Request):
        if msg.method:
            fields.append(("method", json.dumps(msg.method, ensure_ascii=False)))
        if msg.params:
            fields.append(("params", msg.params))
    elif isinstance(msg, Response):
        if msg.result:
            fields.append(("result", msg.result))
        wire_error = _to_wire_error(msg.error)
        if wire_error is not None:
            fields.append(("error", _marshal(wire_error.to_json()) or "null"))
    else:
        raise TypeError(f"not a jsonrpc message: {type(msg).__name__}")
    return fields


def encode_message(msg: Message) -> bytes:
    """Encode a message to its compact wire form."""
    body = ",".join(f"{json.dumps(key)}:{raw}" for key, raw in _wire_fields(msg))
    return ("{" + body + "}").encode("utf-8")


def encode_indent(msg: Message, prefix: str, indent: str) -> bytes:
    """Encode a message like :func:`encode_message`, but indented."""
    document = {key: json.loads(raw) for key, raw in _wire_fields(msg)}
    text = json.dumps(document, indent=indent, ensure_ascii=False)
    return text.replace("\n", "\n" + prefix).encode("utf-8")


def _raw(document: dict[str, Any], key: str) -> str | None:
    if key not in document:
        return None
    return json.dumps(document[key], separators=(",", ":"), ensure_ascii=False)


def _decode_error(value: Any) -> WireError:
    if not isinstance(value, dict):
        raise ValueError("unmarshaling jsonrpc message: error is not an object")
    number = value.get("code", 0)
    message = value.get("message", "")
    if isinstance(number, bool) or not isinstance(number, int) or not isinstance(message, str):
        raise ValueError("unmarshaling jsonrpc message: malformed error object")
    return WireError(number, message, value.get("data"))


def decode_message(data: bytes | str) -> Message:
    """Decode wire bytes into a :class:`Request` or :class:`Response`."""
    try:
        document = json.loads(data)
    except (ValueError, UnicodeDecodeError) as exc:
        raise ValueError(f"unmarshaling jsonrpc message: {exc}") from exc
    if not isinstance(document, dict):
        raise ValueError("unmarshaling jsonrpc message: not an object")

    version = document.get("jsonrpc") or ""
    method = document.get("method") or ""
    if not isinstance(version, str) or not isinstance(method, str):
        raise ValueError("unmarshaling jsonrpc message: malformed fields")
    if version != WIRE_VERSION:
        raise ValueError(
            f"invalid message version tag {json.dumps(version)}; "
            f"expected {json.dumps(WIRE_VERSION)}"
        )

    msg_id = make_id(document.get("id"))

    if method:
        return Request(method=method, id=msg_id, params=_raw(document, "params"))

    if not msg_id.is_valid():
        raise _error(ERR_INVALID_REQUEST)

    response = Response(id=msg_id, result=_raw(document, "result"))
    if document.get("error") is not None:
        response.error = _decode_error(document["error"])
    return response