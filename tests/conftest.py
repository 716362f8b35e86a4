import asyncio
import json
from types import SimpleNamespace
import pytest
from fastapi.websockets import WebSocketState
from rtbridge.realtime import RealtimeClient, ChunkStream


class FakeWebSocket:
    """
    Stands in for a Starlette WebSocket on the server side of the connection.
    Frames from the client are queued with client_send_* and client_disconnect.
    """

    def __init__(self):
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.sent = []
        self.close_code = None
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.fail_on_send = False
        self.accepted = False

    async def accept(self):
        self.accepted = True

    async def receive(self):
        return await self.incoming.get()

    async def send_text(self, data: str):
        self._check_send()
        self.sent.append(data)

    async def send_bytes(self, data: bytes):
        self._check_send()
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str = None):
        self.close_code = code
        self.application_state = WebSocketState.DISCONNECTED

    def _check_send(self):
        if self.fail_on_send or self.client_state != WebSocketState.CONNECTED \
                or self.application_state != WebSocketState.CONNECTED:
            raise RuntimeError("WebSocket is not connected")

    def client_send_text(self, text: str):
        self.incoming.put_nowait({"type": "websocket.receive", "text": text})

    def client_send_bytes(self, data: bytes):
        self.incoming.put_nowait({"type": "websocket.receive", "bytes": data})

    def client_disconnect(self, code: int = 1000):
        self.client_state = WebSocketState.DISCONNECTED
        self.incoming.put_nowait({"type": "websocket.disconnect", "code": code})

    @property
    def json_messages(self):
        return [json.loads(m) for m in self.sent if isinstance(m, str)]

    @property
    def binary_messages(self):
        return [m for m in self.sent if isinstance(m, bytes)]

    async def wait_for_sent(self, count: int, timeout: float = 2.0):
        async def wait():
            while len(self.sent) < count:
                await asyncio.sleep(0.01)
        await asyncio.wait_for(wait(), timeout)


class FakeRealtimeClient(RealtimeClient):
    def __init__(self):
        self.event_stream = ChunkStream()
        self.options = None
        self.audio = []
        self.items = []
        self.response_requests = 0
        self.close_count = 0
        self.configure_error: Exception = None
        self.send_error: Exception = None
        self.close_error: Exception = None
        self.on_generate_response = None

    async def configure(self, options):
        if self.configure_error:
            raise self.configure_error
        self.options = options

    async def send_audio(self, data):
        if self.send_error:
            raise self.send_error
        self.audio.append(data)

    async def send_item(self, item):
        if self.send_error:
            raise self.send_error
        self.items.append(item)

    async def generate_response(self):
        self.response_requests += 1
        if self.on_generate_response:
            self.on_generate_response()

    def events(self):
        return self.event_stream

    async def close(self):
        self.close_count += 1
        self.event_stream.close()
        if self.close_error:
            raise self.close_error



class FakeConnection:
    """Stands in for the openai SDK realtime connection."""

    def __init__(self):
        self.sent = []
        self.server_events: asyncio.Queue = asyncio.Queue()
        self.close_count = 0

    async def send(self, event):
        self.sent.append(event)

    def emit(self, event: dict):
        self.server_events.put_nowait(event)

    def end(self):
        self.server_events.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        event = await self.server_events.get()
        if event is None:
            raise StopAsyncIteration
        if isinstance(event, Exception):
            raise event
        return event

    async def close(self):
        self.close_count += 1

    async def wait_for_sent(self, count: int, timeout: float = 2.0):
        async def wait():
            while len(self.sent) < count:
                await asyncio.sleep(0.01)
        await asyncio.wait_for(wait(), timeout)


class FakeConnectionManager:
    def __init__(self, connection: FakeConnection):
        self.connection = connection

    async def enter(self):
        return self.connection


class FakeAsyncOpenAI:
    def __init__(self, connection: FakeConnection, **kwargs):
        self.kwargs = kwargs
        self.connected_models = []

        def connect(model: str):
            self.connected_models.append(model)
            return FakeConnectionManager(connection)

        self.beta = SimpleNamespace(realtime=SimpleNamespace(connect=connect))


@pytest.fixture
def fake_websocket() -> FakeWebSocket:
    return FakeWebSocket()


@pytest.fixture
def fake_client() -> FakeRealtimeClient:
    return FakeRealtimeClient()


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def fake_openai_module(fake_connection):
    return SimpleNamespace(
        AsyncOpenAI=lambda **kwargs: FakeAsyncOpenAI(fake_connection, **kwargs),
        AsyncAzureOpenAI=lambda **kwargs: FakeAsyncOpenAI(fake_connection, **kwargs),
    )
