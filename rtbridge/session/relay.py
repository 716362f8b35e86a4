import asyncio
from enum import Enum
import logging
from typing import Any, Dict, List, Union
from uuid import uuid4
from fastapi import WebSocket
from fastapi.websockets import WebSocketState
from ..adapter.codec import decode_client_message, encode_server_message
from ..adapter.models import Connected, ServerMessage, UserMessage
from ..exceptions import (
    RelayError,
    MalformedMessage,
    UpstreamConfigurationError,
    UpstreamSendError,
    UpstreamStreamError,
    TransportError,
    CloseError,
)
from ..realtime import RealtimeClient
from .handlers import ResponseDispatcher, InputAudioDispatcher

logger = logging.getLogger(__name__)

DEFAULT_GREETING = "You are now connected to the realtime server"


def default_session_options(transcription_model: str = "whisper-1") -> Dict[str, Any]:
    return {
        "modalities": ["text", "audio"],
        "input_audio_format": "pcm16",
        "input_audio_transcription": {
            "model": transcription_model,
        },
        "turn_detection": {
            "type": "server_vad",
        },
    }


class SessionState(str, Enum):
    CREATED = "created"
    CONFIGURING = "configuring"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


class RTSession:
    """
    Relays one client WebSocket connection to one upstream realtime connection.

    `run()` configures the upstream, greets the client and then runs the
    client receive loop and the upstream event loop side by side until either
    of them ends. Whatever ends the session, teardown closes the client socket
    and releases the upstream exactly once.
    """

    def __init__(
        self,
        websocket: WebSocket,
        client: RealtimeClient,
        *,
        greeting: str = DEFAULT_GREETING,
        session_options: Dict[str, Any] = None,
        debug: bool = False
    ):
        self.session_id = str(uuid4())
        self.websocket = websocket
        self.client = client
        self.greeting = greeting
        self.session_options = session_options or default_session_options()
        self.state = SessionState.CREATED
        self.debug = debug

        self._send_lock = asyncio.Lock()
        self._tasks: List[asyncio.Task] = []

        self.response_dispatcher = ResponseDispatcher(self.send, debug=debug)
        self.input_audio_dispatcher = InputAudioDispatcher(self.send, debug=debug)

        logger.info(f"New session created: session_id={self.session_id}")

    async def run(self):
        error = None
        try:
            try:
                await self.initialize()
            except RelayError as rerr:
                logger.error(f"Failed to start session: session_id={self.session_id}, error={rerr}", exc_info=True)
                error = rerr
                return

            self._tasks = [
                asyncio.create_task(self.receive_loop()),
                asyncio.create_task(self.start_event_loop()),
            ]
            done, _ = await asyncio.wait(self._tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    error = task.exception()
                    logger.error(f"Session terminated by error: session_id={self.session_id}, error={error!r}", exc_info=error)
        finally:
            await self.handle_close(error=error)

    async def initialize(self):
        self.state = SessionState.CONFIGURING
        logger.debug(f"Configuring realtime session: session_id={self.session_id}")
        try:
            await self.client.configure(self.session_options)
        except Exception as ex:
            raise UpstreamConfigurationError(f"Failed to configure realtime session: {ex}", self.session_id) from ex

        await self.send(Connected(greeting=self.greeting))
        self.state = SessionState.ACTIVE
        logger.debug(f"Realtime session configured successfully: session_id={self.session_id}")

    # Client -> Upstream
    async def receive_loop(self):
        while True:
            try:
                message = await self.websocket.receive()
            except Exception as ex:
                raise TransportError(f"Failed to receive from client: {ex}", self.session_id) from ex

            if message["type"] == "websocket.disconnect":
                logger.info(f"Client disconnected: session_id={self.session_id}, code={message.get('code')}")
                return

            if message.get("bytes") is not None:
                await self.handle_message(message["bytes"], True)
            elif message.get("text") is not None:
                await self.handle_message(message["text"], False)

    async def handle_message(self, data: Union[str, bytes], is_binary: bool):
        if self.state != SessionState.ACTIVE:
            logger.warning(f"Message received while session is {self.state.value}: session_id={self.session_id}")
            return

        if is_binary:
            await self.handle_binary_message(data)
            return

        try:
            await self.handle_text_message(data)
        except MalformedMessage as mmex:
            logger.warning(f"Malformed message dropped: session_id={self.session_id}, error={mmex}")

    async def handle_binary_message(self, data: bytes):
        try:
            await self.client.send_audio(data)
        except Exception as ex:
            raise UpstreamSendError(f"Failed to send audio data: {ex}", self.session_id) from ex

    async def handle_text_message(self, data: Union[str, bytes]):
        message = decode_client_message(data)
        logger.debug(f"Received text message: session_id={self.session_id}, type={message.type}")

        if not isinstance(message, UserMessage):
            return

        try:
            await self.client.send_item({
                "type": "message",
                "role": "user",
                "content": [{"type": "input_text", "text": message.text}]
            })
            await self.client.generate_response()
        except Exception as ex:
            raise UpstreamSendError(f"Failed to process user message: {ex}", self.session_id) from ex

        logger.debug(f"User message processed successfully: session_id={self.session_id}, id={message.id}")

    # Upstream -> Client
    async def start_event_loop(self):
        logger.debug(f"Starting event loop: session_id={self.session_id}")
        try:
            async for event in self.client.events():
                if event.type == "response":
                    await self.response_dispatcher.handle_response(event)
                elif event.type == "input_audio":
                    await self.input_audio_dispatcher.handle_input_audio(event)

        except RelayError:
            raise
        except Exception as ex:
            raise UpstreamStreamError(f"Error in event loop: {ex}", self.session_id) from ex

        logger.info(f"Realtime event stream ended: session_id={self.session_id}")

    async def send(self, message: Union[ServerMessage, bytes]):
        data = encode_server_message(message)
        async with self._send_lock:
            try:
                if isinstance(data, bytes):
                    await self.websocket.send_bytes(data)
                else:
                    await self.websocket.send_text(data)
            except Exception as ex:
                raise TransportError(f"Failed to send to client: {ex}", self.session_id) from ex

    # Lifecycle
    async def handle_close(self, error: BaseException = None):
        if self.state in (SessionState.CLOSING, SessionState.CLOSED):
            return
        self.state = SessionState.CLOSING
        logger.info(f"Session closing: session_id={self.session_id}")

        current_task = asyncio.current_task()
        pending = [t for t in self._tasks if t is not current_task and not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        await self.close_websocket(code=1011 if error else 1000)

        try:
            await self.client.close()
            logger.info(f"Session closed successfully: session_id={self.session_id}")
        except Exception as ex:
            cerr = CloseError(f"Error closing realtime connection: {ex}", self.session_id)
            logger.error(f"{cerr}: session_id={self.session_id}", exc_info=ex)

        self.state = SessionState.CLOSED

    async def close_websocket(self, code: int = 1000):
        if self.websocket.client_state != WebSocketState.CONNECTED \
                or self.websocket.application_state != WebSocketState.CONNECTED:
            return
        try:
            await self.websocket.close(code=code)
        except Exception as ex:
            logger.info(f"Client connection already closed: session_id={self.session_id}, error={ex}")
