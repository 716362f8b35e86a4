import json
from typing import Union
from pydantic import ValidationError
from ..exceptions import MalformedMessage
from .models import ClientMessage, ServerMessage, UserMessage, UnrecognizedMessage

CLIENT_MESSAGE_TYPES = {
    "user_message": UserMessage,
}


def decode_client_message(raw: Union[str, bytes]) -> ClientMessage:
    """
    Decode a text frame received from the client.

    Raises MalformedMessage for invalid JSON, a payload that is not an object,
    a missing `type` or a known message that fails validation. Any other
    `type` is returned as UnrecognizedMessage.
    """
    try:
        data = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as ex:
        raise MalformedMessage(f"Invalid JSON: {ex}") from ex

    if not isinstance(data, dict):
        raise MalformedMessage(f"Message must be a JSON object: {type(data).__name__}")

    message_type = data.get("type")
    if not isinstance(message_type, str):
        raise MalformedMessage("Message type is missing")

    message_class = CLIENT_MESSAGE_TYPES.get(message_type)
    if message_class is None:
        return UnrecognizedMessage(type=message_type, data=data)

    try:
        return message_class.model_validate(data)
    except ValidationError as vex:
        raise MalformedMessage(f"Invalid {message_type}: {vex}") from vex


def encode_server_message(message: Union[ServerMessage, bytes, bytearray, memoryview]) -> Union[str, bytes]:
    # Binary audio frames pass through untouched
    if isinstance(message, (bytes, bytearray, memoryview)):
        return bytes(message)
    return message.model_dump_json()
