# pip install rtbridge
from fastapi import FastAPI
from rtbridge.adapter.websocket import RealtimeWebSocketServer
from rtbridge.realtime.openai import OpenAIRealtimeClient
from rtbridge.session import default_session_options


OPENAI_API_KEY = "YOUR_OPENAI_API_KEY"

# Upstream client per connection
def client_factory():
    return OpenAIRealtimeClient(
        openai_api_key=OPENAI_API_KEY,
        model="gpt-4o-realtime-preview",
        debug=True
    )

# Uncomment here for Azure OpenAI
# def client_factory():
#     return OpenAIRealtimeClient(
#         azure_endpoint="https://YOUR_RESOURCE.openai.azure.com",
#         azure_api_key="YOUR_AZURE_OPENAI_API_KEY",
#         azure_deployment="gpt-4o-realtime-preview",
#         debug=True
#     )

session_options = default_session_options()
session_options["instructions"] = "You are a friendly assistant. Keep your answers short and conversational."
session_options["voice"] = "alloy"

# Relay server
realtime_server = RealtimeWebSocketServer(
    client_factory=client_factory,
    greeting="Connected. Say something or type a message.",
    session_options=session_options,
    debug=True
)

@realtime_server.on_connect
async def on_connect(session):
    print(f"Connected: {session.session_id}")

@realtime_server.on_disconnect
async def on_disconnect(session):
    print(f"Disconnected: {session.session_id}")

# Set router to FastAPI app
app = FastAPI()
router = realtime_server.get_websocket_router()
app.include_router(router)

# Run `uvicorn server:app` and connect to ws://localhost:8000/realtime
