"""Requests (client intents) and Response (notification) models"""

from dataclasses import asdict
from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Self, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from src.chess.pieces import Piece
from src.chess.square import BOARD_DIMENSIONS, Square
from src.core.exceptions import InvalidRequestError
from src.core.models import SessionModel
from src.core.shared_types import Color, GameResult, PieceType, Status

PieceColor = str
ConnectionId = str


class SquarePayload(BaseModel):
    row: int = Field(ge=0, lt=BOARD_DIMENSIONS[0])
    col: int = Field(ge=0, lt=BOARD_DIMENSIONS[1])

    @classmethod
    def from_square(cls, square: Square) -> Self:
        return cls(row=square.row, col=square.col)

    def to_square(self) -> Square:
        return Square(self.row, self.col)


# --- REQUEST MODELS ---
class CreateSessionRequest(BaseModel):
    type: Literal["create_session"] = "create_session"


class _SessionRequest(BaseModel):
    session_id: str

    @field_validator("session_id")
    @classmethod
    def validate_session_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise InvalidRequestError("Game ID is required")
        return value


class JoinSessionRequest(_SessionRequest):
    type: Literal["join_session"] = "join_session"


class ReconnectRequest(_SessionRequest):
    type: Literal["reconnect"] = "reconnect"
    # the seat to take back when its connection dropped
    color: Optional[Color] = None


class SubmitMoveRequest(BaseModel):
    """The session is implied by the connection's current binding"""

    type: Literal["submit_move"] = "submit_move"
    from_square: SquarePayload
    to_square: SquarePayload
    promote_to: Optional[PieceType] = None


class LegalMovesRequest(BaseModel):
    type: Literal["legal_moves"] = "legal_moves"
    square: SquarePayload


Intent = Annotated[
    Union[
        CreateSessionRequest,
        JoinSessionRequest,
        ReconnectRequest,
        SubmitMoveRequest,
        LegalMovesRequest,
    ],
    Field(discriminator="type"),
]
INTENT_ADAPTER: TypeAdapter[Intent] = TypeAdapter(Intent)


def parse_intent(raw: Any) -> Intent:
    """Validate one inbound message. Anything malformed becomes an InvalidRequestError."""
    try:
        return INTENT_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'message'}: {error['msg']}"
            for error in exc.errors()
        )
        raise InvalidRequestError(f"Invalid request. {problems}") from exc


# --- STATE SNAPSHOT ---
class PieceState(BaseModel):
    type: PieceType
    color: Color
    has_moved: bool = False

    @classmethod
    def from_piece(cls, piece: Optional[Piece]) -> Optional[Self]:
        if piece is None:
            return None
        return cls(type=piece.type, color=piece.color, has_moved=piece.has_moved)


class MoveRecordState(BaseModel):
    from_square: SquarePayload
    to_square: SquarePayload
    piece_type: PieceType
    piece_color: Color
    timestamp: datetime
    captured_piece: Optional[PieceState] = None
    promoted_to: Optional[PieceType] = None


class GameState(BaseModel):
    session_id: str
    board: list[list[Optional[PieceState]]]
    current_turn: Color
    players: dict[PieceColor, Optional[ConnectionId]]
    status: Status
    winner: Optional[Color] = None
    move_history: list[MoveRecordState]
    last_move: Optional[MoveRecordState] = None
    created_at: datetime

    @classmethod
    def from_model(cls, model: SessionModel) -> Self:
        return cls.model_validate(asdict(model))


# --- RESPONSE MODELS (pushed over the socket) ---
class SessionCreated(BaseModel):
    type: Literal["session_created"] = "session_created"
    session_id: str
    color: Color
    state: GameState


class SessionJoined(BaseModel):
    type: Literal["session_joined"] = "session_joined"
    session_id: str
    color: Color
    state: GameState
    reconnected: bool = False


class OpponentJoined(BaseModel):
    type: Literal["opponent_joined"] = "opponent_joined"
    state: GameState


class MoveApplied(BaseModel):
    type: Literal["move_applied"] = "move_applied"
    from_square: SquarePayload
    to_square: SquarePayload
    piece: PieceState
    captured_piece: Optional[PieceState] = None
    promoted_to: Optional[PieceType] = None
    next_turn: Color
    state: GameState


class MoveRejected(BaseModel):
    type: Literal["move_rejected"] = "move_rejected"
    code: str
    reason: str


class GameOver(BaseModel):
    type: Literal["game_over"] = "game_over"
    result: GameResult
    winner: Optional[Color] = None
    state: GameState


class OpponentDisconnected(BaseModel):
    type: Literal["opponent_disconnected"] = "opponent_disconnected"
    message: str = "Your opponent has disconnected"


class OpponentReconnected(BaseModel):
    type: Literal["opponent_reconnected"] = "opponent_reconnected"
    message: str = "Your opponent has reconnected"


class SessionNotFound(BaseModel):
    type: Literal["session_not_found"] = "session_not_found"
    session_id: Optional[str] = None
    message: str = "Game not found"


class SessionFull(BaseModel):
    type: Literal["session_full"] = "session_full"
    session_id: str
    message: str = "Game is full"


class LegalMovesResponse(BaseModel):
    type: Literal["legal_moves"] = "legal_moves"
    square: SquarePayload
    moves: list[SquarePayload]


class ErrorResponse(BaseModel):
    type: Literal["error"] = "error"
    code: str
    message: str


# --- HTTP RESPONSE MODELS ---
class HealthResponse(BaseModel):
    status: str = "ok"
    message: str = "Server is running"


class CreateGameResponse(BaseModel):
    session_id: str
    state: GameState


class GameResponse(BaseModel):
    state: GameState
