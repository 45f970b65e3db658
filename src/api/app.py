"""
FastAPI application: one WebSocket endpoint carrying the game protocol, plus a few plain HTTP routes.

Each socket gets a fresh connection id. All game decisions are made by the SessionRouter;
this module only moves JSON in and out.
"""

import asyncio
import json
import logging
import uuid
from typing import Any, Optional, Union

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.models import (
    CreateGameResponse,
    ErrorResponse,
    GameResponse,
    GameState,
    HealthResponse,
)
from src.api.router import ConnectionId, Outbound, SessionRouter
from src.core.config import Settings
from src.core.exceptions import (
    GameError,
    GameStateError,
    InternalGameError,
    SessionFullError,
    SessionNotFoundError,
)
from src.services.session_manager import SessionManager

logger = logging.getLogger(__name__)

HTTP_STATUS_FOR_ERROR: dict[type[GameError], int] = {
    SessionNotFoundError: status.HTTP_404_NOT_FOUND,
    SessionFullError: status.HTTP_409_CONFLICT,
    GameStateError: status.HTTP_409_CONFLICT,
    InternalGameError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def http_status_for(exc: GameError) -> int:
    for error_type, http_status in HTTP_STATUS_FOR_ERROR.items():
        if isinstance(exc, error_type):
            return http_status
    return status.HTTP_400_BAD_REQUEST


class ConnectionManager:
    """Live sockets by connection id"""

    def __init__(self) -> None:
        self.active: dict[ConnectionId, WebSocket] = {}

    async def connect(self, websocket: WebSocket) -> ConnectionId:
        await websocket.accept()
        connection = uuid.uuid4().hex
        self.active[connection] = websocket
        return connection

    def disconnect(self, connection: ConnectionId) -> None:
        self.active.pop(connection, None)

    async def deliver(self, outbound: list[Outbound]) -> None:
        """Send every message to those recipients that are still connected."""
        sends = []
        for item in outbound:
            payload = item.message.model_dump(mode="json")
            for recipient in item.recipients:
                websocket = self.active.get(recipient)
                if websocket is not None:
                    sends.append(websocket.send_json(payload))
        results = await asyncio.gather(*sends, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.warning("Failed to deliver a message: %s", result)


def decode(data: Union[str, bytes, None]) -> Any:
    """Undecodable frames are passed on as None and rejected by the intent parser."""
    if data is None:
        return None
    try:
        return json.loads(data)
    except ValueError:
        return None


def create_app(
    settings: Optional[Settings] = None, manager: Optional[SessionManager] = None
) -> FastAPI:
    settings = settings or Settings()
    manager = manager or SessionManager.from_settings(settings)
    router = SessionRouter(manager)
    connections = ConnectionManager()

    app = FastAPI(title="Chess session server")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.manager = manager
    app.state.router = router
    app.state.connections = connections

    @app.exception_handler(GameError)
    async def game_error_handler(request: Request, exc: GameError) -> JSONResponse:
        error = ErrorResponse(code=exc.code, message=str(exc))
        return JSONResponse(status_code=http_status_for(exc), content=error.model_dump())

    # --- HTTP ---
    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse()

    @app.post(
        "/api/game/create",
        response_model=CreateGameResponse,
        status_code=status.HTTP_201_CREATED,
    )
    async def create_game() -> CreateGameResponse:
        session_id = manager.create_session()
        state = manager.get_session(session_id)
        if state is None:
            raise SessionNotFoundError(f"Game {session_id} disappeared right after creation.")
        return CreateGameResponse(session_id=session_id, state=GameState.from_model(state))

    @app.get("/api/game/{session_id}", response_model=GameResponse)
    async def get_game(session_id: str) -> GameResponse:
        state = manager.get_session(session_id)
        if state is None:
            raise SessionNotFoundError(f"Game not found: {session_id}")
        return GameResponse(state=GameState.from_model(state))

    # --- WEBSOCKET ---
    @app.websocket("/ws")
    async def game_socket(websocket: WebSocket) -> None:
        connection = await connections.connect(websocket)
        logger.info("Connection %s opened", connection)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
                # binary frames go through the same path as text ones
                data = message.get("text")
                if data is None:
                    data = message.get("bytes")
                outbound = router.handle(connection, decode(data))
                await connections.deliver(outbound)
        except WebSocketDisconnect:
            logger.info("Connection %s closed", connection)
        finally:
            connections.disconnect(connection)
            await connections.deliver(router.disconnect(connection))

    return app
