import json
import pytest
from rtbridge.adapter import (
    decode_client_message,
    encode_server_message,
    UserMessage,
    UnrecognizedMessage,
    TextDelta,
    Transcription,
    Connected,
    SpeechStarted,
    TextDone,
)
from rtbridge.exceptions import MalformedMessage


def test_decode_user_message():
    message = decode_client_message('{"type": "user_message", "id": "m1", "text": "hello"}')
    assert isinstance(message, UserMessage)
    assert message.id == "m1"
    assert message.text == "hello"


def test_decode_user_message_bytes():
    message = decode_client_message('{"type": "user_message", "id": "m1", "text": "こんにちは"}'.encode("utf-8"))
    assert isinstance(message, UserMessage)
    assert message.text == "こんにちは"


@pytest.mark.parametrize("raw", [
    "not json",
    "{\"type\": \"user_message\"",
    "[1, 2, 3]",
    "\"user_message\"",
    "{\"id\": \"m1\", \"text\": \"hello\"}",
    "{\"type\": 1}",
    "{\"type\": \"user_message\", \"id\": \"m1\"}",
    "{\"type\": \"user_message\", \"id\": 1, \"text\": \"hello\"}",
])
def test_decode_malformed(raw):
    with pytest.raises(MalformedMessage):
        decode_client_message(raw)


def test_decode_unrecognized():
    message = decode_client_message('{"type": "client_config", "volume": 3}')
    assert isinstance(message, UnrecognizedMessage)
    assert message.type == "client_config"
    assert message.data == {"type": "client_config", "volume": 3}

    # Server-to-client types are not accepted from the client
    message = decode_client_message('{"type": "text_delta", "id": "a-0", "delta": "x"}')
    assert isinstance(message, UnrecognizedMessage)


def test_encode_server_messages():
    assert json.loads(encode_server_message(TextDelta(id="item_1-0", delta="hi"))) \
        == {"type": "text_delta", "id": "item_1-0", "delta": "hi"}
    assert json.loads(encode_server_message(Transcription(id="item_2", text=""))) \
        == {"type": "transcription", "id": "item_2", "text": ""}
    assert json.loads(encode_server_message(Connected(greeting="welcome"))) \
        == {"type": "control", "action": "connected", "greeting": "welcome"}
    assert json.loads(encode_server_message(SpeechStarted())) \
        == {"type": "control", "action": "speech_started"}
    assert json.loads(encode_server_message(TextDone(id="item_1-0"))) \
        == {"type": "control", "action": "text_done", "id": "item_1-0"}


def test_encode_field_order():
    encoded = encode_server_message(TextDelta(id="item_1-0", delta="hi"))
    assert list(json.loads(encoded).keys()) == ["type", "id", "delta"]


def test_encode_binary_passthrough():
    frame = b"\x00\x01\xff\xfe" * 8
    assert encode_server_message(frame) == frame
    assert encode_server_message(bytearray(frame)) == frame
    assert encode_server_message(memoryview(frame)) == frame
