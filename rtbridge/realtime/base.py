from abc import ABC, abstractmethod
import asyncio
from typing import Any, AsyncIterable, AsyncIterator, Dict, Union
from .stream import ChunkStream


class RealtimeContent:
    def __init__(self, item_id: str, content_index: int, type: str):
        self.item_id = item_id
        self.content_index = content_index
        self.type = type

    @property
    def content_ref(self) -> str:
        return f"{self.item_id}-{self.content_index}"

    def close(self):
        pass

    def fail(self, error: BaseException):
        pass


class TextContent(RealtimeContent):
    def __init__(self, item_id: str, content_index: int):
        super().__init__(item_id, content_index, "text")
        self.text_stream: ChunkStream[str] = ChunkStream()

    def text_chunks(self) -> AsyncIterable[str]:
        return self.text_stream

    def close(self):
        self.text_stream.close()

    def fail(self, error: BaseException):
        self.text_stream.fail(error)


class AudioContent(RealtimeContent):
    def __init__(self, item_id: str, content_index: int):
        super().__init__(item_id, content_index, "audio")
        self.audio_stream: ChunkStream[bytes] = ChunkStream()
        self.transcript_stream: ChunkStream[str] = ChunkStream()

    def audio_chunks(self) -> AsyncIterable[bytes]:
        return self.audio_stream

    def transcript_chunks(self) -> AsyncIterable[str]:
        return self.transcript_stream

    def close(self):
        self.audio_stream.close()
        self.transcript_stream.close()

    def fail(self, error: BaseException):
        self.audio_stream.fail(error)
        self.transcript_stream.fail(error)


class RealtimeItem:
    """Output item of a response. Iterating a `message` item yields its content entries."""

    def __init__(self, id: str, type: str):
        self.id = id
        self.type = type
        self.contents: ChunkStream[RealtimeContent] = ChunkStream()

    def __aiter__(self) -> AsyncIterator[RealtimeContent]:
        return self.contents.__aiter__()


class RealtimeResponse:
    type = "response"

    def __init__(self, id: str):
        self.id = id
        self.items: ChunkStream[RealtimeItem] = ChunkStream()

    def __aiter__(self) -> AsyncIterator[RealtimeItem]:
        return self.items.__aiter__()


class InputAudioItem:
    type = "input_audio"

    def __init__(self, id: str):
        self.id = id
        self.transcription: str = None
        self._completed = asyncio.Event()
        self._error: BaseException = None

    @property
    def completed(self) -> bool:
        return self._completed.is_set()

    def complete(self, transcription: str = None):
        if self._completed.is_set():
            return
        self.transcription = transcription
        self._completed.set()

    def fail(self, error: BaseException):
        if self._completed.is_set():
            return
        self._error = error
        self._completed.set()

    async def wait_for_completion(self):
        await self._completed.wait()
        if self._error:
            raise self._error


RealtimeEvent = Union[RealtimeResponse, InputAudioItem]


class RealtimeClient(ABC):
    @abstractmethod
    async def configure(self, options: Dict[str, Any]):
        pass

    @abstractmethod
    async def send_audio(self, data: bytes):
        pass

    @abstractmethod
    async def send_item(self, item: Dict[str, Any]):
        pass

    @abstractmethod
    async def generate_response(self):
        pass

    @abstractmethod
    def events(self) -> AsyncIterable[RealtimeEvent]:
        pass

    @abstractmethod
    async def close(self):
        pass
