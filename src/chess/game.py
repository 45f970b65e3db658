"""
The Game class will be the entrypoint into the domain layer for the service layer.

One Game is one session: it owns the board, whose turn it is, which connection plays which color,
the status (waiting -> active -> checkmate | stalemate) and the move history.
It is responsible for orchestrating all the business logic required to play a turn
and passes the outcome to the service layer, which can then pass it onwards to the API layer.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Self

from src.chess.board import Board
from src.chess.executor import execute
from src.chess.moves import Move, MoveContext, MoveViolation
from src.chess.pieces import Piece
from src.chess.rules import classify, legal_moves, validate_move
from src.chess.square import Square
from src.core.exceptions import (
    GameStateError,
    IllegalMoveError,
    NotYourTurnError,
    SessionFullError,
    SessionNotFoundError,
)
from src.core.models import MoveRecordModel, PieceModel, SessionModel, SquareModel
from src.core.shared_types import Color, GameResult, PieceType, Status

# white always gets the first open seat
SEAT_ORDER: tuple[Color, ...] = (Color.WHITE, Color.BLACK)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MoveRecord:
    """One entry of the (append-only) move history"""

    move: Move
    piece_type: PieceType
    piece_color: Color
    timestamp: datetime
    captured_piece: Optional[Piece] = None
    promoted_to: Optional[PieceType] = None

    def to_model(self) -> MoveRecordModel:
        return MoveRecordModel(
            from_square=_square_to_model(self.move.from_square),
            to_square=_square_to_model(self.move.to_square),
            piece_type=self.piece_type.value,
            piece_color=self.piece_color.value,
            timestamp=self.timestamp,
            captured_piece=_piece_to_model(self.captured_piece),
            promoted_to=self.promoted_to.value if self.promoted_to else None,
        )


@dataclass(frozen=True)
class MoveOutcome:
    """What happened after an accepted move. `result` is None while the game goes on."""

    record: MoveRecord
    next_turn: Color
    result: Optional[GameResult] = None
    winner: Optional[Color] = None


@dataclass
class Game:
    # --- DOMAIN LAYER API CALLED BY SERVICE---

    session_id: str
    board: Board
    current_turn: Color
    players: dict[Color, Optional[str]]
    status: Status
    winner: Optional[Color]
    move_history: list[MoveRecord]
    created_at: datetime
    strict_castling: bool = True
    # internal bookkeeping: colors whose bound connection is currently live
    connected: set[Color] = field(default_factory=set)

    @classmethod
    def new_game(cls, session_id: str, strict_castling: bool = True) -> Self:
        """Fresh starting board, nobody seated yet, white to move."""
        return cls(
            session_id=session_id,
            board=Board.starting(),
            current_turn=Color.WHITE,
            players={color: None for color in SEAT_ORDER},
            status=Status.WAITING,
            winner=None,
            move_history=[],
            created_at=utc_now(),
            strict_castling=strict_castling,
        )

    @property
    def last_move(self) -> Optional[MoveRecord]:
        return self.move_history[-1] if self.move_history else None

    @property
    def context(self) -> MoveContext:
        """The slice of the game the rules are allowed to see"""
        last_move = self.last_move
        return MoveContext(last_move=last_move.move if last_move else None)

    @property
    def is_over(self) -> bool:
        return self.status in (Status.CHECKMATE, Status.STALEMATE)

    def to_model(self) -> SessionModel:
        """Encode into a format the Service layer uses"""
        history = [record.to_model() for record in self.move_history]
        return SessionModel(
            session_id=self.session_id,
            board=[
                [_piece_to_model(piece) for piece in pieces_in_row]
                for pieces_in_row in self.board.grid
            ],
            current_turn=self.current_turn.value,
            players={color.value: player for color, player in self.players.items()},
            status=self.status.value,
            winner=self.winner.value if self.winner else None,
            created_at=self.created_at,
            move_history=history,
            last_move=history[-1] if history else None,
        )

    # --- PLAYERS ---
    def color_of(self, player: str) -> Optional[Color]:
        return next(
            (color for color, name in self.players.items() if name == player), None
        )

    def player_of(self, color: Color) -> Optional[str]:
        return self.players.get(color)

    def opponent_identity(self, color: Color) -> Optional[str]:
        """Who plays against `color`, if anybody yet"""
        return self.players.get(color.opponent)

    def is_connected(self, color: Color) -> bool:
        return color in self.connected

    def register_player(self, player: str) -> tuple[Color, bool]:
        """
        Seat a player. Returns the color and whether this call actually seated somebody new.
        ----

        * Joining again with an identity that already has a color just hands that color back.
        * Otherwise the first open seat is taken (white before black).
        * Taking the second seat starts the game.
        """
        existing_color = self.color_of(player)
        if existing_color is not None:
            return existing_color, False

        open_seats = self._open_seats()
        if not open_seats:
            raise SessionFullError(f"Session {self.session_id} already has two players.")

        color = open_seats[0]
        self.players[color] = player
        self.connected.add(color)
        if not self._open_seats() and self.status == Status.WAITING:
            self._change_status(Status.ACTIVE)
        return color, True

    def reconnect_player(
        self, player: str, preferred_color: Optional[Color] = None
    ) -> tuple[Color, bool]:
        """
        Bring a player back into the session. Board and history stay untouched.
        ----

        1. identity already seated --> same color, marked live again
        2. preferred color seated but dropped --> rebound to this identity
        3. an open seat --> behaves like `register_player`
        4. a seat whose connection dropped --> rebound to this identity (white, then black)
        5. otherwise the session is full

        The returned bool tells whether an open seat got taken.
        """
        existing_color = self.color_of(player)
        if existing_color is not None:
            self.connected.add(existing_color)
            return existing_color, False

        if preferred_color is not None and self._is_dropped(preferred_color):
            self.players[preferred_color] = player
            self.connected.add(preferred_color)
            return preferred_color, False

        if self._open_seats():
            return self.register_player(player)

        color = next((color for color in SEAT_ORDER if self._is_dropped(color)), None)
        if color is None:
            raise SessionFullError(
                f"Session {self.session_id} has both players connected."
            )
        self.players[color] = player
        self.connected.add(color)
        return color, False

    def disconnect_player(self, player: str) -> Optional[Color]:
        """Only marks the seat as not live. The color stays reserved for a reconnect."""
        color = self.color_of(player)
        if color is not None:
            self.connected.discard(color)
        return color

    # --- MOVES ---
    def legal_moves(self, player: str, square: Square) -> list[Square]:
        """
        Destinations for the piece on `square`, for displaying to the player.

        Only for seated players in an active game. Works for either side regardless of turn,
        so a client can highlight moves while waiting.
        """
        self._get_player_color(player)
        self._assert_active()
        return legal_moves(self.board, square, self.context, self.strict_castling)

    def make_move(
        self,
        player: str,
        from_square: Square,
        to_square: Square,
        promote_to: Optional[PieceType] = None,
    ) -> MoveOutcome:
        """
        Attempt to make a move
        -----

        1. the squares must be on the board
        2. the player must be seated, the game active, and it must be their turn
        3. the rules engine decides if the move is legal (including "does not leave own king in check")
        4. execute the move on a copy of the board
        5. classify the position for the side that moves next
        6. only then commit: board, history, turn, status/winner
        """
        move = Move(from_square, to_square).ensure_within_bounds()

        player_color = self._get_player_color(player)
        self._assert_active()
        self._assert_your_turn(player_color)

        piece = self.board.piece_at(move.from_square)
        if piece is not None and piece.color != player_color:
            raise IllegalMoveError(MoveViolation.OPPONENT_PIECE.value)

        context = self.context
        validate_move(self.board, move, context, promote_to, self.strict_castling)
        executed = execute(self.board, move, promote_to)

        next_turn = player_color.opponent
        result = classify(
            executed.board,
            next_turn,
            MoveContext(last_move=move),
            self.strict_castling,
        )
        record = MoveRecord(
            move=move,
            piece_type=executed.piece.type,
            piece_color=executed.piece.color,
            timestamp=utc_now(),
            captured_piece=executed.captured_piece,
            promoted_to=executed.promoted_to,
        )

        # commit
        self.board = executed.board
        self.move_history.append(record)
        self.current_turn = next_turn
        if result is not None:
            self._finish(result, player_color)

        return MoveOutcome(
            record=record, next_turn=next_turn, result=result, winner=self.winner
        )

    # -- PRIVATE HELPERS ---
    def _open_seats(self) -> list[Color]:
        return [color for color in SEAT_ORDER if self.players.get(color) is None]

    def _is_dropped(self, color: Color) -> bool:
        """Seated, but nobody is live on it"""
        return self.players.get(color) is not None and color not in self.connected

    def _get_player_color(self, player: str) -> Color:
        color = self.color_of(player)
        if color is None:
            raise SessionNotFoundError(
                f"Connection {player!r} does not play in session {self.session_id}."
            )
        return color

    def _assert_active(self) -> None:
        if self.status != Status.ACTIVE:
            raise GameStateError(f"Game is not active. status: {self.status}")

    def _assert_your_turn(self, color: Color) -> None:
        """You must wait for your turn before making a move."""
        if color != self.current_turn:
            raise NotYourTurnError(
                f"It is not your turn. Waiting for {self.current_turn} to make a move first."
            )

    def _finish(self, result: GameResult, mover: Color) -> None:
        """Whoever delivered checkmate wins. A stalemate has no winner."""
        self._change_status(Status(result.value))
        self.winner = mover if result == GameResult.CHECKMATE else None

    def _change_status(self, new_status: Status) -> None:
        self.status = new_status


def _square_to_model(square: Square) -> SquareModel:
    return SquareModel(row=square.row, col=square.col)


def _piece_to_model(piece: Optional[Piece]) -> Optional[PieceModel]:
    if piece is None:
        return None
    return PieceModel(
        type=piece.type.value, color=piece.color.value, has_moved=piece.has_moved
    )

