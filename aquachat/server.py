import logging

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from starlette.requests import Request

from . import config
from .service import ChatService
from .ws_constants import ADVICE_TOPICS, GENERAL_ROOMS
from .ws_handler import websocket_chat as _websocket_chat

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


class RoomsResponse(BaseModel):
    rooms: list[str]
    adviceTopics: list[str]


class QueueSizes(BaseModel):
    beginner: int = Field(..., ge=0)
    intermediate: int = Field(..., ge=0)
    advanced: int = Field(..., ge=0)


class StatsResponse(BaseModel):
    activeUsers: int = Field(..., ge=0)
    activeSessions: int = Field(..., ge=0)
    queueSizes: QueueSizes


def create_app(service: ChatService | None = None) -> FastAPI:
    """Build the FastAPI app around a ChatService.

    The service is created with the app and started/stopped by the app's
    startup and shutdown hooks.
    """
    app = FastAPI()
    app.state.chat_service = service if service is not None else ChatService()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def startup_event():
        app.state.chat_service.start()
        logger.info("Chat service started; rooms: %s", ", ".join(GENERAL_ROOMS))

    @app.on_event("shutdown")
    async def shutdown_event():
        await app.state.chat_service.stop()

    # --- API Routes ---

    @app.get("/")
    async def index():
        return {
            "message": "Aquachat API",
            "version": API_VERSION,
            "endpoints": {
                "rooms": "/api/rooms",
                "stats": "/api/stats",
                "websocket": "/ws/chat",
            },
        }

    @app.get("/api/health")
    async def api_health():
        return {"status": "ok"}

    @app.get("/api/rooms", response_model=RoomsResponse)
    async def api_rooms():
        return {"rooms": list(GENERAL_ROOMS), "adviceTopics": list(ADVICE_TOPICS)}

    @app.get("/api/stats", response_model=StatsResponse)
    async def api_stats(request: Request):
        return request.app.state.chat_service.stats()

    # --- WebSocket ---

    @app.websocket("/ws/chat")
    async def websocket_chat(websocket: WebSocket):
        await _websocket_chat(websocket, service=websocket.app.state.chat_service)

    return app


app = create_app()
