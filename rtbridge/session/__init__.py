from .relay import RTSession, SessionState, DEFAULT_GREETING, default_session_options
from .handlers import (
    ContentHandler,
    TextContentHandler,
    AudioContentHandler,
    ResponseDispatcher,
    InputAudioDispatcher,
)
