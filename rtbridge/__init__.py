from .adapter import UserMessage, TextDelta, Transcription, Connected, SpeechStarted, TextDone
from .realtime import RealtimeClient
from .session import RTSession
