from .base import (
    RealtimeClient,
    RealtimeEvent,
    RealtimeResponse,
    RealtimeItem,
    RealtimeContent,
    TextContent,
    AudioContent,
    InputAudioItem,
)
from .stream import ChunkStream
