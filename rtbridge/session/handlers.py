from abc import ABC, abstractmethod
import asyncio
import logging
from typing import AsyncIterable, Awaitable, Callable, Dict, Union
from ..adapter.models import ServerMessage, TextDelta, TextDone, SpeechStarted, Transcription
from ..exceptions import TransportError
from ..realtime import RealtimeResponse, RealtimeItem, RealtimeContent, TextContent, AudioContent, InputAudioItem

logger = logging.getLogger(__name__)

SendFunc = Callable[[Union[ServerMessage, bytes]], Awaitable[None]]


async def relay_text_chunks(send: SendFunc, content_ref: str, chunks: AsyncIterable[str]):
    opened = False
    try:
        async for chunk in chunks:
            await send(TextDelta(id=content_ref, delta=chunk))
            opened = True

    except Exception as ex:
        # Close the stream the client already saw before escalating
        if opened and not isinstance(ex, TransportError):
            try:
                await send(TextDone(id=content_ref))
            except Exception as send_ex:
                logger.warning(f"Failed to send text_done after error: id={content_ref}, error={send_ex}")
        raise

    await send(TextDone(id=content_ref))


class ContentHandler(ABC):
    def __init__(self, send: SendFunc, *, debug: bool = False):
        self.send = send
        self.debug = debug

    @abstractmethod
    async def handle(self, content: RealtimeContent):
        pass


class TextContentHandler(ContentHandler):
    async def handle(self, content: TextContent):
        try:
            await relay_text_chunks(self.send, content.content_ref, content.text_chunks())
            if self.debug:
                logger.info(f"Text content processed: id={content.content_ref}")
        except Exception as ex:
            logger.error(f"Error handling text content: id={content.content_ref}, error={ex}")
            raise


class AudioContentHandler(ContentHandler):
    async def relay_audio_chunks(self, content: AudioContent):
        async for chunk in content.audio_chunks():
            await self.send(chunk)

    async def handle(self, content: AudioContent):
        # Let both branches settle before surfacing a failure
        results = await asyncio.gather(
            self.relay_audio_chunks(content),
            relay_text_chunks(self.send, content.content_ref, content.transcript_chunks()),
            return_exceptions=True
        )
        for result in results:
            if isinstance(result, BaseException):
                logger.error(f"Error handling audio content: id={content.content_ref}, error={result}")
                raise result

        if self.debug:
            logger.info(f"Audio content processed: id={content.content_ref}")


class ResponseDispatcher:
    """
    Fans one upstream response out to the content handlers.

    Items are processed strictly in order. Within a message item, content
    entries of different kinds run concurrently while entries of the same
    kind run one after another, since each kind carries its own completion
    marker.
    """

    def __init__(self, send: SendFunc, *, content_handlers: Dict[str, ContentHandler] = None, debug: bool = False):
        self.content_handlers = content_handlers or {
            "text": TextContentHandler(send, debug=debug),
            "audio": AudioContentHandler(send, debug=debug),
        }
        self.debug = debug

    async def handle_response(self, response: RealtimeResponse):
        async for item in response:
            if item.type != "message":
                logger.debug(f"Skip item: id={item.id}, type={item.type}")
                continue
            await self.handle_message_item(item)

        if self.debug:
            logger.info(f"Response processed: id={response.id}")

    async def handle_message_item(self, item: RealtimeItem):
        lanes: Dict[str, asyncio.Task] = {}
        try:
            async for content in item:
                handler = self.content_handlers.get(content.type)
                if handler is None:
                    logger.debug(f"Skip content: id={content.content_ref}, type={content.type}")
                    continue
                lanes[content.type] = asyncio.create_task(
                    self._run_in_lane(lanes.get(content.type), handler, content)
                )

            results = await asyncio.gather(*lanes.values(), return_exceptions=True)

        except BaseException:
            for task in lanes.values():
                task.cancel()
            await asyncio.gather(*lanes.values(), return_exceptions=True)
            raise

        for result in results:
            if isinstance(result, BaseException):
                raise result

    async def _run_in_lane(self, previous: asyncio.Task, handler: ContentHandler, content: RealtimeContent):
        if previous is not None:
            await previous
        await handler.handle(content)


class InputAudioDispatcher:
    def __init__(self, send: SendFunc, *, debug: bool = False):
        self.send = send
        self.debug = debug

    async def handle_input_audio(self, item: InputAudioItem):
        try:
            await self.send(SpeechStarted())
            await item.wait_for_completion()
            await self.send(Transcription(id=item.id, text=item.transcription or ""))
            if self.debug:
                logger.info(f"Input audio processed: id={item.id}, transcription_length={len(item.transcription or '')}")
        except Exception as ex:
            logger.error(f"Error handling input audio: id={item.id}, error={ex}")
            raise
