import logging
from typing import Any, Awaitable, Callable, Dict, Optional
from fastapi import APIRouter, WebSocket
from ...realtime import RealtimeClient
from ...session import RTSession, DEFAULT_GREETING

logger = logging.getLogger(__name__)


class RealtimeWebSocketServer:
    def __init__(
        self,
        *,
        client_factory: Callable[[], RealtimeClient],
        greeting: str = DEFAULT_GREETING,
        session_options: Dict[str, Any] = None,
        debug: bool = False
    ):
        self.client_factory = client_factory
        self.greeting = greeting
        self.session_options = session_options
        self.sessions: Dict[str, RTSession] = {}

        # Callbacks
        self._on_connect: Optional[Callable[[RTSession], Awaitable[None]]] = None
        self._on_disconnect: Optional[Callable[[RTSession], Awaitable[None]]] = None

        self.debug = debug

    def on_connect(self, func: Callable[[RTSession], Awaitable[None]]):
        self._on_connect = func
        return func

    def on_disconnect(self, func: Callable[[RTSession], Awaitable[None]]):
        self._on_disconnect = func
        return func

    def get_websocket_router(self, path: str = "/realtime"):
        router = APIRouter()

        @router.websocket(path)
        async def websocket_endpoint(websocket: WebSocket):
            await websocket.accept()
            logger.info("New WebSocket connection established")

            try:
                client = self.client_factory()
            except Exception as ex:
                logger.error(f"Failed to create realtime client: {ex}", exc_info=True)
                await websocket.close(code=1011)
                return

            session = RTSession(
                websocket,
                client,
                greeting=self.greeting,
                session_options=self.session_options,
                debug=self.debug
            )
            self.sessions[session.session_id] = session

            try:
                if self._on_connect:
                    await self._on_connect(session)
                await session.run()

            finally:
                if self._on_disconnect:
                    await self._on_disconnect(session)
                self.sessions.pop(session.session_id, None)

        return router
