from .models import (
    UserMessage,
    UnrecognizedMessage,
    TextDelta,
    Transcription,
    Connected,
    SpeechStarted,
    TextDone,
    ClientMessage,
    ServerMessage,
    ControlMessage,
)
from .codec import decode_client_message, encode_server_message
