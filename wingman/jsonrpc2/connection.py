"""A bidirectional JSON-RPC 2.0 connection that matches responses to calls."""

from __future__ import annotations

import itertools
import json
import threading
from typing import Any, Callable

from wingman.jsonrpc2.calls import AsyncCall, InFlightState
from wingman.jsonrpc2.messages import (
    ID,
    Message,
    Request,
    Response,
    int64_id,
    new_call,
    new_notification,
    new_response,
)
from wingman.jsonrpc2.wire import (
    ERR_CLIENT_CLOSING,
    ERR_INTERNAL,
    ERR_INVALID_REQUEST,
    ERR_METHOD_NOT_FOUND,
    ERR_REJECTED,
    ERR_SERVER_CLOSING,
    ERR_UNKNOWN,
    NotHandledError,
    WireError,
)


class _RequestCancelled(Exception):
    """The request was cancelled before its handler ran."""

    def __init__(self) -> None:
        super().__init__("context canceled")


class _Releaser:
    """Lets a handler allow later requests to run alongside it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.event = threading.Event()
        self._released = False

    def release(self, soft: bool) -> None:
        with self._lock:
            if self._released:
                if not soft:
                    raise RuntimeError("jsonrpc2: go_async called multiple times")
                return
            self._released = True
            self.event.set()


class _IncomingRequest:
    """An incoming request being processed, with its cancellation flag."""

    def __init__(self, request: Request) -> None:
        self.request = request
        self.cancelled = threading.Event()

    def cancel(self) -> None:
        self.cancelled.set()


class _RequestContext:
    """Passed to handlers and preempters alongside the request.

    ``cancelled`` is set when the request is cancelled or completed;
    ``go_async()`` lets the connection hand later requests to the handler
    before this one finishes.
    """

    def __init__(self, incoming: _IncomingRequest, releaser: _Releaser | None) -> None:
        self.request = incoming.request
        self.cancelled = incoming.cancelled
        self._releaser = releaser

    def is_cancelled(self) -> bool:
        return self.cancelled.is_set()

    def go_async(self) -> None:
        if self._releaser is not None:
            self._releaser.release(False)


Handler = Callable[[_RequestContext, Request], Any]


def _default_handler(ctx: _RequestContext, request: Request) -> Any:
    raise NotHandledError()


def _wrap(base: WireError, detail: str) -> WireError:
    return WireError(base.code, f"{base.message}: {detail}")


class Connection:
    """Runs the JSON-RPC protocol over a message reader and writer.

    ``reader.read()`` returns the next message (raising at end of stream),
    ``writer.write(msg)`` sends one, and ``closer.close()`` tears the
    transport down. Incoming requests go to ``preempter`` first, if given,
    and otherwise are queued for ``handler``; both are called as
    ``f(ctx, request)`` and raise :class:`NotHandledError` to decline.
    """

    def __init__(
        self,
        reader: Any,
        writer: Any,
        closer: Any,
        *,
        handler: Handler | None = None,
        preempter: Handler | None = None,
        on_done: Callable[[], None] | None = None,
        on_internal_error: Callable[[BaseException], None] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._state = InFlightState(closer=closer)
        self._done = threading.Event()
        self._writer = writer
        self._handler = handler or _default_handler
        self._on_done = on_done
        self._on_internal_error = on_internal_error
        self._seq = itertools.count(1)
        self._seq_lock = threading.Lock()
        self._start(reader, preempter)

    # -- state management -------------------------------------------------

    def _update(self, f: Callable[[InFlightState], None]) -> None:
        with self._lock:
            s = self._state
            f(s)

            if self._done.is_set():
                if not s.idle():
                    raise RuntimeError("jsonrpc2: state became non-idle when already done")
                return

            if s.idle() and s.shutting_down(ERR_UNKNOWN) is not None:
                if s.closer is not None:
                    try:
                        s.closer.close()
                        s.close_err = None
                    except Exception as exc:
                        s.close_err = exc
                    s.closer = None
                if not s.reading:
                    if self._on_done is not None:
                        self._on_done()
                    self._done.set()

    def _start(self, reader: Any, preempter: Handler | None) -> None:
        def f(s: InFlightState) -> None:
            if self._done.is_set():
                return
            s.reading = True
            threading.Thread(
                target=self._read_incoming, args=(reader, preempter), daemon=True
            ).start()

        self._update(f)

    # -- outgoing ---------------------------------------------------------

    def notify(self, method: str, params: Any) -> None:
        """Send a notification; no response is expected."""
        err: BaseException | None = None
        attempted = False

        def begin(s: InFlightState) -> None:
            nonlocal err, attempted
            if not s.outgoing_calls and not s.incoming_by_id:
                err = s.shutting_down(ERR_CLIENT_CLOSING)
                if err is not None:
                    return
            s.outgoing_notifications += 1
            attempted = True

        def finish(s: InFlightState) -> None:
            s.outgoing_notifications -= 1

        try:
            self._update(begin)
            if err is not None:
                raise err
            try:
                message = new_notification(method, params)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"marshaling notify parameters: {exc}") from exc
            write_err = self._write(message)
            if write_err is not None:
                raise write_err
        finally:
            if attempted:
                self._update(finish)

    def call(self, method: str, params: Any) -> AsyncCall:
        """Send a call and return a handle on which its response can be awaited.

        If sending fails the handle is already ready and holds the error.
        """
        with self._seq_lock:
            call_id = int64_id(next(self._seq))
        ac = AsyncCall(call_id)

        try:
            message = new_call(call_id, method, params)
        except (TypeError, ValueError) as exc:
            failure = ValueError(f"marshaling call parameters: {exc}")
            failure.__cause__ = exc
            ac._retire(Response(id=call_id, error=failure))
            return ac

        err: BaseException | None = None

        def register(s: InFlightState) -> None:
            nonlocal err
            err = s.shutting_down(ERR_CLIENT_CLOSING)
            if err is not None:
                return
            s.outgoing_calls[call_id] = ac

        self._update(register)
        if err is not None:
            ac._retire(Response(id=call_id, error=err))
            return ac

        write_err = self._write(message)
        if write_err is not None:
            self.retire(ac, write_err)
        return ac

    def retire(self, call: AsyncCall, error: BaseException) -> None:
        """Stop tracking ``call`` and make ``error`` its outcome; a no-op if already retired."""

        def f(s: InFlightState) -> None:
            if s.outgoing_calls.get(call.id) is call:
                del s.outgoing_calls[call.id]
                call._retire(Response(id=call.id, error=error))

        self._update(f)

    def cancel(self, id: ID) -> None:
        """Cancel the incoming request with the given identifier, if active."""
        found: list[_IncomingRequest] = []

        def f(s: InFlightState) -> None:
            req = s.incoming_by_id.get(id)
            if req is not None:
                found.append(req)

        self._update(f)
        for req in found:
            req.cancel()

    # -- shutdown ---------------------------------------------------------

    def wait(self) -> None:
        """Block until the connection is fully closed and raise what broke it, if anything."""
        self._wait(from_wait=True)

    def close(self) -> None:
        """Refuse new work, wait for in-flight work, then close the transport."""

        def f(s: InFlightState) -> None:
            s.conn_closing = True

        self._update(f)
        self._wait(from_wait=False)

    def _wait(self, from_wait: bool) -> None:
        self._done.wait()
        err: BaseException | None = None

        def f(s: InFlightState) -> None:
            nonlocal err
            if from_wait:
                if not isinstance(s.read_err, EOFError):
                    err = s.read_err
                if err is None and not isinstance(s.write_err, EOFError):
                    err = s.write_err
            if err is None:
                err = s.close_err

        self._update(f)
        if err is not None:
            raise err

    # -- incoming ---------------------------------------------------------

    def _read_incoming(self, reader: Any, preempter: Handler | None) -> None:
        err: BaseException | None = None
        while True:
            try:
                msg = reader.read()
            except Exception as exc:
                err = exc
                break

            if isinstance(msg, Request):
                self._accept_request(msg, preempter)
            elif isinstance(msg, Response):
                self._deliver(msg)
            else:
                self._internal_error(
                    f"Read returned an unexpected message of type {type(msg).__name__}"
                )

        def finish(s: InFlightState) -> None:
            s.reading = False
            s.read_err = err
            for call_id, ac in s.outgoing_calls.items():
                ac._retire(Response(id=call_id, error=err))
            s.outgoing_calls = {}

        self._update(finish)

    def _deliver(self, response: Response) -> None:
        def f(s: InFlightState) -> None:
            ac = s.outgoing_calls.pop(response.id, None)
            if ac is not None:
                ac._retire(response)

        self._update(f)

    def _accept_request(self, msg: Request, preempter: Handler | None) -> None:
        req = _IncomingRequest(msg)
        err: BaseException | None = None

        def register(s: InFlightState) -> None:
            nonlocal err
            s.incoming += 1
            if msg.is_call():
                if msg.id in s.incoming_by_id:
                    err = _wrap(ERR_INVALID_REQUEST, f"request ID {msg.id} already in use")
                    msg.id = ID()
                    return
                s.incoming_by_id[msg.id] = req
                err = s.shutting_down(ERR_SERVER_CLOSING)

        self._update(register)
        if err is not None:
            self._process_result(req, None, err)
            return

        if preempter is not None:
            try:
                result = preempter(_RequestContext(req, None), msg)
            except NotHandledError:
                pass
            except Exception as exc:
                self._process_result(req, None, exc)
                return
            else:
                self._process_result(req, result, None)
                return

        def enqueue(s: InFlightState) -> None:
            nonlocal err
            err = s.shutting_down(ERR_SERVER_CLOSING)
            if err is not None:
                return
            s.handler_queue.append(req)
            if not s.handler_running:
                s.handler_running = True
                threading.Thread(target=self._handle_async, daemon=True).start()

        self._update(enqueue)
        if err is not None:
            self._process_result(req, None, err)

    def _handle_async(self) -> None:
        while True:
            taken: list[_IncomingRequest] = []

            def pop(s: InFlightState) -> None:
                if s.handler_queue:
                    taken.append(s.handler_queue.pop(0))
                else:
                    s.handler_running = False

            self._update(pop)
            if not taken:
                return
            req = taken[0]

            if req.cancelled.is_set():
                err: BaseException = _RequestCancelled()

                def attribute(s: InFlightState) -> None:
                    nonlocal err
                    if s.write_err is not None:
                        err = _wrap(ERR_SERVER_CLOSING, str(s.write_err))

                self._update(attribute)
                self._process_result(req, None, err)
                continue

            releaser = _Releaser()
            ctx = _RequestContext(req, releaser)
            threading.Thread(target=self._run_handler, args=(ctx, req, releaser), daemon=True).start()
            releaser.event.wait()

    def _run_handler(self, ctx: _RequestContext, req: _IncomingRequest, releaser: _Releaser) -> None:
        try:
            try:
                result = self._handler(ctx, req.request)
                err = None
            except Exception as exc:
                result, err = None, exc
            self._process_result(req, result, err)
        finally:
            releaser.release(True)

    def _process_result(self, req: _IncomingRequest, result: Any, err: BaseException | None) -> None:
        request = req.request
        if isinstance(err, NotHandledError) or err is ERR_METHOD_NOT_FOUND:
            err = _wrap(ERR_METHOD_NOT_FOUND, json.dumps(request.method))

        if result is not None and err is not None:
            self._internal_error(
                f"handler returned a non-nil result with a non-nil error for {request.method}:\n{err}"
            )
            result = None

        if request.is_call():
            if result is None and err is None:
                err = self._internal_error(
                    f"handler returned a nil result and nil error for a "
                    f"{json.dumps(request.method)} Request that requires a Response"
                )

            response: Response | None
            try:
                response = new_response(request.id, result, err)
                resp_err: BaseException | None = None
            except (TypeError, ValueError) as exc:
                response, resp_err = None, exc

            def forget(s: InFlightState) -> None:
                s.incoming_by_id.pop(request.id, None)

            self._update(forget)
            if response is not None:
                write_err = self._write(response)
                if err is None:
                    err = write_err
            else:
                err = self._internal_error(
                    f"handler returned a malformed result for {json.dumps(request.method)}: {resp_err}"
                )
        elif result is not None:
            err = self._internal_error(
                f"handler returned a non-nil result for a {json.dumps(request.method)} "
                f"Request without an ID"
            )
        elif err is not None:
            err = _wrap(ERR_INTERNAL, f"{json.dumps(request.method)} notification failed: {err}")

        req.cancel()

        def finish(s: InFlightState) -> None:
            if s.incoming == 0:
                raise RuntimeError("jsonrpc2: incoming count is already zero")
            s.incoming -= 1

        self._update(finish)

    def _write(self, msg: Message) -> BaseException | None:
        err: BaseException | None = None

        def check(s: InFlightState) -> None:
            nonlocal err
            err = s.shutting_down(ERR_SERVER_CLOSING)

        self._update(check)
        if err is None:
            try:
                self._writer.write(msg)
            except Exception as exc:
                err = exc

        rejected = isinstance(err, WireError) and err.matches(ERR_REJECTED)
        if err is not None and not rejected:
            broken = err

            def record(s: InFlightState) -> None:
                if s.write_err is None:
                    s.write_err = broken
                    for r in s.incoming_by_id.values():
                        r.cancel()

            self._update(record)

        return err

    def _internal_error(self, message: str) -> WireError:
        if self._on_internal_error is None:
            raise RuntimeError("jsonrpc2: " + message)
        self._on_internal_error(RuntimeError(message))
        return _wrap(ERR_INTERNAL, message)