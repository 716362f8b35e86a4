import logging
from typing import Callable
from fastapi import FastAPI
import uvicorn
from .adapter.websocket import RealtimeWebSocketServer
from .config import Settings
from .realtime import RealtimeClient
from .realtime.openai import OpenAIRealtimeClient
from .session import default_session_options

logger = logging.getLogger(__name__)


def create_client_factory(settings: Settings) -> Callable[[], RealtimeClient]:
    if settings.BACKEND == "azure":
        def azure_client_factory():
            return OpenAIRealtimeClient(
                azure_endpoint=settings.AZURE_OPENAI_ENDPOINT,
                azure_api_key=settings.AZURE_OPENAI_API_KEY,
                azure_deployment=settings.AZURE_OPENAI_DEPLOYMENT,
                azure_api_version=settings.AZURE_OPENAI_API_VERSION,
                debug=settings.LOG_LEVEL.lower() == "debug"
            )
        return azure_client_factory

    def openai_client_factory():
        return OpenAIRealtimeClient(
            openai_api_key=settings.OPENAI_API_KEY,
            model=settings.OPENAI_MODEL,
            debug=settings.LOG_LEVEL.lower() == "debug"
        )
    return openai_client_factory


def create_app(settings: Settings = None, client_factory: Callable[[], RealtimeClient] = None) -> FastAPI:
    settings = settings or Settings()
    logger.debug(f"Initializing realtime backend: backend={settings.BACKEND}")

    server = RealtimeWebSocketServer(
        client_factory=client_factory or create_client_factory(settings),
        greeting=settings.GREETING,
        session_options=default_session_options(settings.TRANSCRIPTION_MODEL),
        debug=settings.LOG_LEVEL.lower() == "debug"
    )

    app = FastAPI(title="rtbridge")
    app.state.realtime_server = server
    app.include_router(server.get_websocket_router(settings.WEBSOCKET_PATH))
    return app


def run():
    settings = Settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    app = create_app(settings)
    logger.info(f"Server started on http://{settings.HOST}:{settings.PORT}")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
