"""
Boundary layer data model(s).

These objects are what the Service hands upwards (to the router / API layer).
They only hold plain values, so a snapshot taken under the session lock can be serialized and broadcast
after the lock is released without anybody seeing later moves leak into it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

# Type aliases to make SessionModel easier to read
PieceColor = str
ConnectionId = str


@dataclass
class SquareModel:
    row: int
    col: int


@dataclass
class PieceModel:
    type: str
    color: PieceColor
    has_moved: bool


@dataclass
class MoveRecordModel:
    from_square: SquareModel
    to_square: SquareModel
    piece_type: str
    piece_color: PieceColor
    timestamp: datetime
    captured_piece: Optional[PieceModel] = None
    promoted_to: Optional[str] = None


@dataclass
class SessionModel:
    """Transport-safe representation of a game session."""

    session_id: str
    board: list[list[Optional[PieceModel]]]
    current_turn: PieceColor
    players: dict[PieceColor, Optional[ConnectionId]]
    status: str
    winner: Optional[PieceColor]
    created_at: datetime
    move_history: list[MoveRecordModel] = field(default_factory=list)
    last_move: Optional[MoveRecordModel] = None
