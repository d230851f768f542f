from dataclasses import dataclass

import pytest

from wingman.jsonrpc2.messages import (
    ID,
    Request,
    Response,
    decode_message,
    encode_indent,
    encode_message,
    int64_id,
    make_id,
    new_call,
    new_notification,
    new_response,
    string_id,
)
from wingman.jsonrpc2.wire import (
    ERR_INVALID_PARAMS,
    ERR_INVALID_REQUEST,
    ERR_PARSE,
    ERR_SERVER_CLOSING,
    WireError,
    new_error,
)


@dataclass
class _Position:
    line: int
    character: int


def test_encode_call_wire_bytes():
    msg = new_call(int64_id(1), "initialize", {"a": 1})
    assert encode_message(msg) == b'{"jsonrpc":"2.0","id":1,"method":"initialize","params":{"a":1}}'


def test_encode_notification_without_params():
    assert encode_message(new_notification("exit", None)) == b'{"jsonrpc":"2.0","method":"exit"}'


def test_call_round_trip():
    msg = new_call(int64_id(5), "textDocument/hover", {"uri": "file:///x.go"})
    assert decode_message(encode_message(msg)) == msg


def test_string_id_round_trip():
    msg = new_call(string_id("abc"), "ping", [1, 2])
    decoded = decode_message(encode_message(msg))
    assert decoded.id == string_id("abc")
    assert decoded.is_call()


def test_notification_is_not_call():
    decoded = decode_message(encode_message(new_notification("initialized", {})))
    assert isinstance(decoded, Request)
    assert not decoded.is_call()
    assert decoded.params == "{}"


def test_response_round_trip():
    msg = new_response(int64_id(7), {"ok": True}, None)
    decoded = decode_message(encode_message(msg))
    assert decoded == msg


def test_response_with_wire_error():
    msg = new_response(int64_id(3), None, new_error(-32602, "bad params"))
    decoded = decode_message(encode_message(msg))
    assert isinstance(decoded, Response)
    assert decoded.result is None
    assert isinstance(decoded.error, WireError)
    assert decoded.error.matches(ERR_INVALID_PARAMS)
    assert decoded.error.message == "bad params"


def test_plain_error_has_zero_code():
    decoded = decode_message(encode_message(new_response(int64_id(3), None, RuntimeError("boom"))))
    assert decoded.error.code == 0
    assert decoded.error.message == "boom"


def test_wrapped_wire_error_keeps_code():
    try:
        try:
            raise new_error(-32004, "server is closing")
        except WireError as inner:
            raise RuntimeError("closing now") from inner
    except RuntimeError as outer:
        err = outer
    decoded = decode_message(encode_message(new_response(int64_id(1), None, err)))
    assert decoded.error.matches(ERR_SERVER_CLOSING)
    assert decoded.error.message == "closing now"


def test_html_is_not_escaped():
    data = encode_message(new_notification("log", {"text": "<a&b>"}))
    assert b"<a&b>" in data


def test_dataclass_params_are_marshalled():
    msg = new_call(int64_id(2), "pos", _Position(line=4, character=9))
    decoded = decode_message(encode_message(msg))
    assert decoded.params == '{"line":4,"character":9}'


def test_null_result_is_kept_raw():
    decoded = decode_message(b'{"jsonrpc":"2.0","id":1,"result":null}')
    assert decoded.result == "null"
    assert decoded.error is None


def test_decode_bad_version():
    with pytest.raises(ValueError, match="invalid message version tag"):
        decode_message(b'{"jsonrpc":"1.0","id":1,"method":"x"}')


def test_decode_response_without_id():
    with pytest.raises(WireError) as info:
        decode_message(b'{"jsonrpc":"2.0","result":1}')
    assert info.value.matches(ERR_INVALID_REQUEST)


def test_decode_invalid_json():
    with pytest.raises(ValueError, match="unmarshaling jsonrpc message"):
        decode_message(b"{not json")


def test_decode_invalid_id_type():
    with pytest.raises(WireError) as info:
        decode_message(b'{"jsonrpc":"2.0","id":[1],"method":"x"}')
    assert info.value.matches(ERR_PARSE)


def test_make_id_variants():
    assert make_id(None) == ID()
    assert not make_id(None).is_valid()
    assert make_id(3.0) == int64_id(3)
    assert make_id("q") == string_id("q")


@pytest.mark.parametrize("value", [True, [1], {"a": 1}])
def test_make_id_rejects_other_types(value):
    with pytest.raises(WireError) as info:
        make_id(value)
    assert info.value.matches(ERR_PARSE)


def test_encode_indent_round_trip():
    msg = new_call(int64_id(9), "workspace/symbol", {"query": "Foo"})
    data = encode_indent(msg, "", "  ")
    assert b"\n  " in data
    assert decode_message(data) == msg


def test_encode_indent_prefix_on_following_lines():
    data = encode_indent(new_notification("exit", None), ">>", "\t").decode()
    lines = data.split("\n")
    assert len(lines) > 1
    assert all(line.startswith(">>") for line in lines[1:])
    assert not lines[0].startswith(">>")


def test_unserializable_params_raise():
    with pytest.raises(TypeError):
        new_call(int64_id(1), "x", object())