from .server import RealtimeWebSocketServer
