"""Outgoing call tracking and the in-flight state of a connection."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from typing import Any

from wingman.jsonrpc2.messages import ID, Response
from wingman.jsonrpc2.wire import WireError


class AsyncCall:
    """An outgoing call whose response can be awaited."""

    def __init__(self, id: ID) -> None:
        self.id = id
        self.response: Response | None = None
        self._ready = threading.Event()

    def __repr__(self) -> str:
        return f"AsyncCall(id={self.id.value!r}, ready={self.is_ready()})"

    def is_ready(self) -> bool:
        """Report whether the response has arrived."""
        return self._ready.is_set()

    def _retire(self, response: Response) -> None:
        if self._ready.is_set():
            raise RuntimeError(f"jsonrpc2: retire called twice for ID {self.id}")
        self.response = response
        self._ready.set()

    def wait(self, timeout: float | None = None) -> Any:
        """Wait for the response and return its decoded result.

        Raises TimeoutError if no response arrives within ``timeout`` seconds,
        and the call's error if the call failed.
        """
        if not self._ready.wait(timeout):
            raise TimeoutError(f"call {self.id} timed out")
        response = self.response
        assert response is not None
        if response.error is not None:
            raise response.error
        if not response.result:
            return None
        return json.loads(response.result)


def _describe(err: BaseException) -> str:
    return str(err) or type(err).__name__


@dataclass
class InFlightState:
    """The incoming and outgoing work a connection is tracking."""

    conn_closing: bool = False
    reading: bool = False
    read_err: BaseException | None = None
    write_err: BaseException | None = None

    closer: Any = None
    close_err: BaseException | None = None

    outgoing_calls: dict[ID, AsyncCall] = field(default_factory=dict)
    outgoing_notifications: int = 0

    incoming: int = 0
    incoming_by_id: dict[ID, Any] = field(default_factory=dict)

    handler_queue: list[Any] = field(default_factory=list)
    handler_running: bool = False

    def idle(self) -> bool:
        """Report whether no calls, notifications or handlers are pending."""
        return (
            not self.outgoing_calls
            and self.outgoing_notifications == 0
            and self.incoming == 0
            and not self.handler_running
        )

    def shutting_down(self, error_closing: WireError) -> WireError | None:
        """Return an error if new work should be refused, else None.

        The error is ``error_closing`` itself or carries its code.
        """
        if self.conn_closing:
            return error_closing
        for cause in (self.read_err, self.write_err):
            if cause is not None:
                err = WireError(error_closing.code, f"{error_closing.message}: {_describe(cause)}")
                err.__cause__ = cause
                return err
        return None