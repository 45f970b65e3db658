"""
Session Router: the seam between a transport and the Session Manager.

It binds connection identities to sessions, turns client intents into Session Manager calls
and decides who gets told what. It never talks to the network itself: every handler returns
a list of `Outbound` messages and the transport delivers them.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel

from src.api.models import (
    CreateSessionRequest,
    ErrorResponse,
    GameOver,
    GameState,
    Intent,
    JoinSessionRequest,
    LegalMovesRequest,
    LegalMovesResponse,
    MoveApplied,
    MoveRejected,
    OpponentDisconnected,
    OpponentJoined,
    OpponentReconnected,
    PieceState,
    ReconnectRequest,
    SessionCreated,
    SessionFull,
    SessionJoined,
    SessionNotFound,
    SquarePayload,
    SubmitMoveRequest,
    parse_intent,
)
from src.core.exceptions import (
    GameError,
    InvalidRequestError,
    SessionFullError,
    SessionNotFoundError,
)
from src.core.shared_types import Status
from src.services.session_manager import JoinResult, SessionManager

logger = logging.getLogger(__name__)

ConnectionId = str


@dataclass(frozen=True)
class Outbound:
    """A message and the connections it has to reach"""

    recipients: tuple[ConnectionId, ...]
    message: BaseModel


class SessionRouter:
    def __init__(self, manager: SessionManager) -> None:
        self.manager = manager
        self._bindings: dict[ConnectionId, str] = {}
        self._lock = threading.Lock()

    # -- Entry point for raw messages ---
    def handle(self, connection: ConnectionId, raw: Any) -> list[Outbound]:
        """Validate a raw message and dispatch it to the matching handler"""
        try:
            intent = parse_intent(raw)
        except InvalidRequestError as exc:
            logger.warning("Rejected message from %s: %s", connection, exc)
            if isinstance(raw, dict) and raw.get("type") == "submit_move":
                rejection = MoveRejected(code=exc.code, reason=str(exc))
                return [self._reply(connection, rejection)]
            return [self._reply(connection, ErrorResponse(code=exc.code, message=str(exc)))]
        return self.dispatch(connection, intent)

    def dispatch(self, connection: ConnectionId, intent: Intent) -> list[Outbound]:
        match intent:
            case CreateSessionRequest():
                return self.create_session(connection)
            case JoinSessionRequest():
                return self.join_session(connection, intent)
            case ReconnectRequest():
                return self.reconnect(connection, intent)
            case SubmitMoveRequest():
                return self.submit_move(connection, intent)
            case LegalMovesRequest():
                return self.legal_moves(connection, intent)
        raise InvalidRequestError(f"Unknown intent: {intent!r}")

    # -- Handlers ---
    def create_session(self, connection: ConnectionId) -> list[Outbound]:
        """Create a session and seat its creator (as white)."""
        session_id = self.manager.create_session()
        result = self.manager.join_session(session_id, connection)
        outbound = self._bind(connection, session_id)
        outbound.append(
            self._reply(
                connection,
                SessionCreated(
                    session_id=session_id,
                    color=result.color,
                    state=GameState.from_model(result.state),
                ),
            )
        )
        return outbound

    def join_session(
        self, connection: ConnectionId, request: JoinSessionRequest
    ) -> list[Outbound]:
        try:
            result = self.manager.join_session(request.session_id, connection)
        except GameError as exc:
            return self._session_error(connection, request.session_id, exc)

        outbound = self._bind(connection, request.session_id)
        outbound.extend(self._joined(connection, result))
        return outbound

    def reconnect(
        self, connection: ConnectionId, request: ReconnectRequest
    ) -> list[Outbound]:
        try:
            result = self.manager.reconnect(request.session_id, connection, request.color)
        except GameError as exc:
            return self._session_error(connection, request.session_id, exc)

        outbound = self._bind(connection, request.session_id)
        outbound.extend(self._joined(connection, result))
        return outbound

    def submit_move(
        self, connection: ConnectionId, request: SubmitMoveRequest
    ) -> list[Outbound]:
        """
        Rejections only go back to the sender; the board did not change so nobody else needs to know.
        An accepted move goes to both players: `game_over` if it ended the game, `move_applied` otherwise.
        """
        session_id = self.session_of(connection)
        if session_id is None:
            rejection = MoveRejected(code=SessionNotFoundError.code, reason="Not in a game")
            return [self._reply(connection, rejection)]

        try:
            result = self.manager.apply_move(
                session_id,
                connection,
                request.from_square.to_square(),
                request.to_square.to_square(),
                request.promote_to,
            )
        except GameError as exc:
            logger.warning("Move rejected for %s in session %s: %s", connection, session_id, exc)
            return [self._reply(connection, MoveRejected(code=exc.code, reason=str(exc)))]

        state = GameState.from_model(result.state)
        recipients = self.connections_of(session_id)
        if result.result is not None:
            message: BaseModel = GameOver(
                result=result.result, winner=result.winner, state=state
            )
        else:
            record = result.record
            message = MoveApplied(
                from_square=SquarePayload.from_square(record.move.from_square),
                to_square=SquarePayload.from_square(record.move.to_square),
                piece=PieceState(
                    type=record.piece_type, color=record.piece_color, has_moved=True
                ),
                captured_piece=PieceState.from_piece(result.captured_piece),
                promoted_to=record.promoted_to,
                next_turn=result.next_turn,
                state=state,
            )
        return [Outbound(recipients, message)]

    def legal_moves(
        self, connection: ConnectionId, request: LegalMovesRequest
    ) -> list[Outbound]:
        session_id = self.session_of(connection)
        if session_id is None:
            return [self._reply(connection, SessionNotFound())]
        try:
            destinations = self.manager.legal_moves(
                session_id, connection, request.square.to_square()
            )
        except GameError as exc:
            return [self._reply(connection, ErrorResponse(code=exc.code, message=str(exc)))]
        return [
            self._reply(
                connection,
                LegalMovesResponse(
                    square=request.square,
                    moves=[SquarePayload.from_square(square) for square in destinations],
                ),
            )
        ]

    def disconnect(self, connection: ConnectionId) -> list[Outbound]:
        """The transport lost this connection. Session state stays; the opponent gets told."""
        with self._lock:
            session_id = self._bindings.pop(connection, None)
        if session_id is None:
            return []
        return self._leave(connection, session_id)

    # -- Bindings ---
    def session_of(self, connection: ConnectionId) -> Optional[str]:
        with self._lock:
            return self._bindings.get(connection)

    def connections_of(self, session_id: str) -> tuple[ConnectionId, ...]:
        with self._lock:
            return tuple(
                connection
                for connection, bound_session in self._bindings.items()
                if bound_session == session_id
            )

    # -- Internal helpers --
    def _bind(self, connection: ConnectionId, session_id: str) -> list[Outbound]:
        """Bind a connection to a session. Leaving a previous session counts as disconnecting from it."""
        with self._lock:
            previous = self._bindings.get(connection)
            self._bindings[connection] = session_id
        if previous is None or previous == session_id:
            return []
        return self._leave(connection, previous)

    def _leave(self, connection: ConnectionId, session_id: str) -> list[Outbound]:
        color = self.manager.disconnect(session_id, connection)
        if color is None:
            return []
        # a finished or not yet started game has nobody to warn
        state = self.manager.get_session(session_id)
        if state is None or state.status != Status.ACTIVE:
            return []
        opponent = self.manager.opponent_of(session_id, color)
        if opponent is None or self.session_of(opponent) != session_id:
            return []
        return [self._reply(opponent, OpponentDisconnected())]

    def _joined(self, connection: ConnectionId, result: JoinResult) -> list[Outbound]:
        state = GameState.from_model(result.state)
        outbound = [
            self._reply(
                connection,
                SessionJoined(
                    session_id=result.session_id,
                    color=result.color,
                    state=state,
                    reconnected=result.reconnected,
                ),
            )
        ]
        others = tuple(
            other
            for other in self.connections_of(result.session_id)
            if other != connection
        )
        if not others:
            return outbound
        if result.newly_joined:
            outbound.append(Outbound(others, OpponentJoined(state=state)))
        elif result.reconnected:
            outbound.append(Outbound(others, OpponentReconnected()))
        return outbound

    def _session_error(
        self, connection: ConnectionId, session_id: str, exc: GameError
    ) -> list[Outbound]:
        logger.warning("Session request from %s for %s rejected: %s", connection, session_id, exc)
        if isinstance(exc, SessionNotFoundError):
            return [self._reply(connection, SessionNotFound(session_id=session_id))]
        if isinstance(exc, SessionFullError):
            return [self._reply(connection, SessionFull(session_id=session_id))]
        return [self._reply(connection, ErrorResponse(code=exc.code, message=str(exc)))]

    @staticmethod
    def _reply(connection: ConnectionId, message: BaseModel) -> Outbound:
        return Outbound((connection,), message)
