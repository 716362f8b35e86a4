import asyncio
import base64
import logging
from typing import Any, Dict, Protocol, Tuple, Type
import openai as openai_module
from ..exceptions import UpstreamStreamError
from .base import (
    RealtimeClient,
    RealtimeContent,
    TextContent,
    AudioContent,
    RealtimeItem,
    RealtimeResponse,
    InputAudioItem,
)
from .stream import ChunkStream

logger = logging.getLogger(__name__)


class OpenAICompatibleModule(Protocol):
    AsyncOpenAI: Type[openai_module.AsyncOpenAI]
    AsyncAzureOpenAI: Type[openai_module.AsyncAzureOpenAI]


# Beta and GA realtime APIs name the same server events differently
TEXT_DELTA_EVENTS = ("response.text.delta", "response.output_text.delta")
TEXT_DONE_EVENTS = ("response.text.done", "response.output_text.done")
AUDIO_DELTA_EVENTS = ("response.audio.delta", "response.output_audio.delta")
AUDIO_DONE_EVENTS = ("response.audio.done", "response.output_audio.done")
TRANSCRIPT_DELTA_EVENTS = ("response.audio_transcript.delta", "response.output_audio_transcript.delta")
TRANSCRIPT_DONE_EVENTS = ("response.audio_transcript.done", "response.output_audio_transcript.done")
CONTENT_TYPES = {
    "text": "text",
    "output_text": "text",
    "audio": "audio",
    "output_audio": "audio",
}


class OpenAIRealtimeClient(RealtimeClient):
    def __init__(
        self,
        *,
        openai_api_key: str = None,
        model: str = "gpt-4o-realtime-preview",
        azure_endpoint: str = None,
        azure_api_key: str = None,
        azure_deployment: str = None,
        azure_api_version: str = "2024-10-01-preview",
        custom_openai_module: OpenAICompatibleModule = None,
        debug: bool = False
    ):
        client_module = custom_openai_module or openai_module
        if azure_endpoint:
            self.openai_client = client_module.AsyncAzureOpenAI(
                api_key=azure_api_key,
                api_version=azure_api_version,
                azure_endpoint=azure_endpoint
            )
            self.model = azure_deployment
        else:
            self.openai_client = client_module.AsyncOpenAI(api_key=openai_api_key)
            self.model = model

        self.connection = None
        self.transcription_enabled = False
        self._event_stream: ChunkStream = ChunkStream()
        self._reader_task: asyncio.Task = None
        self._responses: Dict[str, RealtimeResponse] = {}
        self._items: Dict[str, RealtimeItem] = {}
        self._item_response_ids: Dict[str, str] = {}
        self._contents: Dict[Tuple[str, int], RealtimeContent] = {}
        self._input_audio_items: Dict[str, InputAudioItem] = {}

        self.debug = debug

    async def connect(self):
        if self.connection is not None:
            return
        self.connection = await self.openai_client.beta.realtime.connect(model=self.model).enter()
        self._reader_task = asyncio.create_task(self._read_events())
        logger.info(f"Realtime connection established: model={self.model}")

    async def _send(self, event: Dict[str, Any]):
        await self.connect()
        if self.debug:
            logger.info(f"Send to realtime API: type={event['type']}")
        await self.connection.send(event)

    async def configure(self, options: Dict[str, Any]):
        self.transcription_enabled = bool(options.get("input_audio_transcription"))
        await self._send({"type": "session.update", "session": options})

    async def send_audio(self, data: bytes):
        await self._send({
            "type": "input_audio_buffer.append",
            "audio": base64.b64encode(data).decode("utf-8")
        })

    async def send_item(self, item: Dict[str, Any]):
        await self._send({"type": "conversation.item.create", "item": item})

    async def generate_response(self):
        await self._send({"type": "response.create"})

    def events(self) -> ChunkStream:
        return self._event_stream

    async def close(self):
        if self._reader_task and not self._reader_task.done():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
        self._fail_all(UpstreamStreamError("Realtime connection closed"))
        self._event_stream.close()
        if self.connection is not None:
            connection = self.connection
            self.connection = None
            await connection.close()
            logger.info("Realtime connection closed")

    async def _read_events(self):
        try:
            async for event in self.connection:
                self.handle_server_event(event if isinstance(event, dict) else event.model_dump())
                if self._event_stream.closed:
                    return

        except Exception as ex:
            logger.error(f"Error while reading realtime events: {ex}", exc_info=True)
            error = UpstreamStreamError(f"Realtime event stream failed: {ex}")
            error.__cause__ = ex
            self._fail_all(error)
            self._event_stream.fail(error)
            return

        logger.info("Realtime event stream ended")
        self._fail_all(UpstreamStreamError("Realtime connection ended"))
        self._event_stream.close()

    def handle_server_event(self, event: Dict[str, Any]):
        event_type = event.get("type")

        if event_type == "error":
            # Rejects a single client event; the connection stays usable
            error = event.get("error") or {}
            if not isinstance(error, dict):
                error = {"message": str(error)}
            logger.error(f"Realtime API error: type={error.get('type')}, code={error.get('code')}, event_id={error.get('event_id')}, message={error.get('message')}")
            response_id = event.get("response_id") or error.get("response_id")
            if response_id in self._responses:
                self._fail_response(response_id, UpstreamStreamError(f"Realtime API error: {error.get('message')}"))

        elif event_type == "response.created":
            response = RealtimeResponse(event["response"]["id"])
            self._responses[response.id] = response
            self._event_stream.put(response)

        elif event_type == "response.output_item.added":
            response = self._responses.get(event.get("response_id"))
            if response is None:
                logger.warning(f"Output item for unknown response: {event.get('response_id')}")
                return
            item = RealtimeItem(event["item"]["id"], event["item"].get("type"))
            self._items[item.id] = item
            self._item_response_ids[item.id] = response.id
            response.items.put(item)

        elif event_type == "response.content_part.added":
            item = self._items.get(event.get("item_id"))
            if item is None:
                logger.warning(f"Content part for unknown item: {event.get('item_id')}")
                return
            part_type = (event.get("part") or {}).get("type")
            content_type = CONTENT_TYPES.get(part_type)
            content_index = event.get("content_index", 0)
            if content_type == "text":
                content = TextContent(item.id, content_index)
            elif content_type == "audio":
                content = AudioContent(item.id, content_index)
            else:
                content = RealtimeContent(item.id, content_index, part_type)
            self._contents[(item.id, content_index)] = content
            item.contents.put(content)

        elif event_type in TEXT_DELTA_EVENTS:
            content = self._get_content(event, TextContent)
            if content:
                content.text_stream.put(event["delta"])

        elif event_type in TEXT_DONE_EVENTS:
            content = self._get_content(event, TextContent)
            if content:
                content.text_stream.close()

        elif event_type in AUDIO_DELTA_EVENTS:
            content = self._get_content(event, AudioContent)
            if content:
                content.audio_stream.put(base64.b64decode(event["delta"]))

        elif event_type in AUDIO_DONE_EVENTS:
            content = self._get_content(event, AudioContent)
            if content:
                content.audio_stream.close()

        elif event_type in TRANSCRIPT_DELTA_EVENTS:
            content = self._get_content(event, AudioContent)
            if content:
                content.transcript_stream.put(event["delta"])

        elif event_type in TRANSCRIPT_DONE_EVENTS:
            content = self._get_content(event, AudioContent)
            if content:
                content.transcript_stream.close()

        elif event_type == "response.content_part.done":
            content = self._contents.pop((event.get("item_id"), event.get("content_index", 0)), None)
            if content:
                content.close()

        elif event_type == "response.output_item.done":
            self._close_item(event["item"]["id"])

        elif event_type == "response.done":
            response_id = event["response"]["id"]
            for item_id in [i for i, r in self._item_response_ids.items() if r == response_id]:
                self._close_item(item_id)
            response = self._responses.pop(response_id, None)
            if response:
                response.items.close()

        elif event_type == "input_audio_buffer.speech_started":
            item = InputAudioItem(event["item_id"])
            self._input_audio_items[item.id] = item
            self._event_stream.put(item)

        elif event_type == "input_audio_buffer.committed":
            if not self.transcription_enabled:
                item = self._input_audio_items.pop(event.get("item_id"), None)
                if item:
                    item.complete()

        elif event_type == "conversation.item.input_audio_transcription.completed":
            item = self._input_audio_items.pop(event.get("item_id"), None)
            if item:
                item.complete(event.get("transcript"))

        elif event_type == "conversation.item.input_audio_transcription.failed":
            logger.warning(f"Input audio transcription failed: item_id={event.get('item_id')}")
            item = self._input_audio_items.pop(event.get("item_id"), None)
            if item:
                item.complete()

        elif self.debug:
            logger.info(f"Unhandled realtime event: type={event_type}")

    def _get_content(self, event: Dict[str, Any], content_class: type):
        content = self._contents.get((event.get("item_id"), event.get("content_index", 0)))
        if not isinstance(content, content_class):
            logger.warning(f"{event.get('type')} for unknown content: item_id={event.get('item_id')}, content_index={event.get('content_index')}")
            return None
        return content

    def _close_item(self, item_id: str):
        for key in [k for k in self._contents if k[0] == item_id]:
            self._contents.pop(key).close()
        self._item_response_ids.pop(item_id, None)
        item = self._items.pop(item_id, None)
        if item:
            item.contents.close()

    def _fail_response(self, response_id: str, error: BaseException):
        for item_id in [i for i, r in self._item_response_ids.items() if r == response_id]:
            for key in [k for k in self._contents if k[0] == item_id]:
                self._contents.pop(key).fail(error)
            self._item_response_ids.pop(item_id, None)
            item = self._items.pop(item_id, None)
            if item:
                item.contents.fail(error)
        self._responses.pop(response_id).items.fail(error)

    def _fail_all(self, error: BaseException):
        for content in self._contents.values():
            content.fail(error)
        for item in self._items.values():
            item.contents.fail(error)
        for response in self._responses.values():
            response.items.fail(error)
        for input_audio_item in self._input_audio_items.values():
            input_audio_item.fail(error)
        self._contents.clear()
        self._items.clear()
        self._item_response_ids.clear()
        self._responses.clear()
        self._input_audio_items.clear()
