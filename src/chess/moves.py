"""
Geometry/Base movement and capturing/attacking rules

Key idea: Use strategy pattern to define the movement rule for each piece type.

A rule only looks at the moving piece and the squares it touches.
Whether the move leaves your own king in check is decided later (see src/chess/rules.py), by simulating it.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Callable, Optional, Protocol, Self

from src.chess.castling import (
    CastlingSquares,
    is_castling_shape,
    squares_between_on_row,
)
from src.chess.pieces import Piece
from src.chess.square import Square
from src.core.shared_types import Color, PieceType


class Board(Protocol):
    """Just the parts the movement strategies need"""

    def piece_at(self, square: Square) -> Optional[Piece]: ...
    def is_empty(self, square: Square) -> bool: ...
    def is_opponent(self, square: Square, color: Color) -> bool: ...


# white moves UP the board (towards row 0), black moves DOWN
PAWN_DIRECTION: dict[Color, int] = {Color.WHITE: -1, Color.BLACK: 1}
PAWN_HOME_ROW: dict[Color, int] = {Color.WHITE: 6, Color.BLACK: 1}
PROMOTION_ROW: dict[Color, int] = {Color.WHITE: 0, Color.BLACK: 7}


@dataclass(frozen=True)
class Move:
    """basic definition of a move to be made"""

    from_square: Square
    to_square: Square

    @property
    def row_delta(self) -> int:
        return self.to_square.row - self.from_square.row

    @property
    def col_delta(self) -> int:
        return self.to_square.col - self.from_square.col

    def ensure_within_bounds(self) -> Self:
        self.from_square.ensure_within_bounds()
        self.to_square.ensure_within_bounds()
        return self


@dataclass(frozen=True)
class MoveContext:
    """
    The only part of the game the rules get to see.
    En passant needs to know the previous move. Nothing else does.
    """

    last_move: Optional[Move] = None


NO_CONTEXT = MoveContext()


class MoveViolation(StrEnum):
    """Why a move got refused. The value is the human readable reason sent back to the player."""

    NO_PIECE = "No piece at source position"
    OPPONENT_PIECE = "You can only move your own pieces"
    SAME_SQUARE = "Destination is the same as the origin"
    OWN_PIECE = "Destination is occupied by your own piece"
    WRONG_PATTERN = "Invalid move for this piece"
    PATH_BLOCKED = "Path is blocked"
    INVALID_CASTLING = "Invalid castling"
    CASTLING_OUT_OF_CHECK = "Cannot castle while in check"
    CASTLING_THROUGH_CHECK = "Cannot castle through an attacked square"
    LEAVES_KING_IN_CHECK = "Move would leave king in check"
    PROMOTION_REQUIRED = "A pawn reaching the last row must name a piece to promote to"
    INVALID_PROMOTION = "Invalid promotion"


Violation = Optional[MoveViolation]


# --- GEOMETRY HELPERS ---
def is_straight(move: Move) -> bool:
    return (move.row_delta == 0) != (move.col_delta == 0)


def is_diagonal(move: Move) -> bool:
    return move.row_delta != 0 and abs(move.row_delta) == abs(move.col_delta)


def is_knight_jump(move: Move) -> bool:
    return sorted((abs(move.row_delta), abs(move.col_delta))) == [1, 2]


def is_single_step(move: Move) -> bool:
    return max(abs(move.row_delta), abs(move.col_delta)) == 1


def squares_between(move: Move) -> list[Square]:
    """Squares strictly between origin and destination along a straight or diagonal line"""
    d_row = (move.row_delta > 0) - (move.row_delta < 0)
    d_col = (move.col_delta > 0) - (move.col_delta < 0)
    steps = max(abs(move.row_delta), abs(move.col_delta))
    return [
        move.from_square.offset(d_row * step, d_col * step) for step in range(1, steps)
    ]


def is_path_clear(board: Board, move: Move) -> bool:
    return all(board.is_empty(square) for square in squares_between(move))


def sliding_violation(board: Board, move: Move) -> Violation:
    return None if is_path_clear(board, move) else MoveViolation.PATH_BLOCKED


# --- MOVEMENT RULES ---
def pawn_rule(board: Board, move: Move, piece: Piece, context: MoveContext) -> Violation:
    """
    A pawn:
    - moves by a single square forward onto an empty square.
    - can move by two from its home row, if both squares are empty
    - takes diagonally
    - takes en passant: diagonally onto the empty square behind a pawn that just advanced by two
    """
    direction = PAWN_DIRECTION[piece.color]

    if move.col_delta == 0:
        if move.row_delta == direction:
            return None if board.is_empty(move.to_square) else MoveViolation.PATH_BLOCKED
        if move.row_delta == 2 * direction:
            if move.from_square.row != PAWN_HOME_ROW[piece.color]:
                return MoveViolation.WRONG_PATTERN
            middle = move.from_square.offset(direction, 0)
            both_empty = board.is_empty(middle) and board.is_empty(move.to_square)
            return None if both_empty else MoveViolation.PATH_BLOCKED
        return MoveViolation.WRONG_PATTERN

    if abs(move.col_delta) == 1 and move.row_delta == direction:
        if board.is_opponent(move.to_square, piece.color):
            return None
        if is_en_passant_capture(board, move, piece, context):
            return None
    return MoveViolation.WRONG_PATTERN


def rook_rule(board: Board, move: Move, piece: Piece, context: MoveContext) -> Violation:
    """Rooks move either horizontally or vertically"""
    if not is_straight(move):
        return MoveViolation.WRONG_PATTERN
    return sliding_violation(board, move)


def knight_rule(
    board: Board, move: Move, piece: Piece, context: MoveContext
) -> Violation:
    """Knights jump: two squares one way, one square the other. Nothing in between matters."""
    return None if is_knight_jump(move) else MoveViolation.WRONG_PATTERN


def bishop_rule(
    board: Board, move: Move, piece: Piece, context: MoveContext
) -> Violation:
    """Bishops move diagonally: |delta_row| = |delta_col|"""
    if not is_diagonal(move):
        return MoveViolation.WRONG_PATTERN
    return sliding_violation(board, move)


def queen_rule(board: Board, move: Move, piece: Piece, context: MoveContext) -> Violation:
    """The Queen combines the rook moves and the bishop moves"""
    if not (is_straight(move) or is_diagonal(move)):
        return MoveViolation.WRONG_PATTERN
    return sliding_violation(board, move)


def king_rule(board: Board, move: Move, piece: Piece, context: MoveContext) -> Violation:
    """
    The king can move by a single square at the time.

    Castling is modelled as a king move of two columns. Whether the king is (or passes through) check
    is not looked at here.
    """
    if is_single_step(move):
        return None
    if not is_castling_shape(move.from_square, move.to_square):
        return MoveViolation.WRONG_PATTERN
    return castling_violation(board, move, piece)


def castling_violation(board: Board, move: Move, king: Piece) -> Violation:
    """
    **you are allowed to castle if**

    * Your king has not moved yet.
    * The rook on that side is still there, is yours, and has not moved yet.
    * Every square in between the king and the rook is empty.
    """
    if king.has_moved:
        return MoveViolation.INVALID_CASTLING

    squares = CastlingSquares.for_king_move(move.from_square, move.to_square)
    rook = board.piece_at(squares.rook_from)
    if rook is None or rook.type != PieceType.ROOK:
        return MoveViolation.INVALID_CASTLING
    if rook.color != king.color or rook.has_moved:
        return MoveViolation.INVALID_CASTLING

    path = squares_between_on_row(squares.king_from, squares.rook_from)
    if not all(board.is_empty(square) for square in path):
        return MoveViolation.INVALID_CASTLING
    return None


# -- STRATEGY PATTERN: MOVEMENT RULES ---
MoveRuleFn = Callable[[Board, Move, Piece, MoveContext], Violation]
MOVEMENT_RULES: dict[PieceType, MoveRuleFn] = {
    PieceType.PAWN: pawn_rule,
    PieceType.KNIGHT: knight_rule,
    PieceType.BISHOP: bishop_rule,
    PieceType.ROOK: rook_rule,
    PieceType.QUEEN: queen_rule,
    PieceType.KING: king_rule,
}


def find_piece_violation(
    board: Board, move: Move, context: MoveContext = NO_CONTEXT
) -> Violation:
    """
    Check a move against the rules of the piece standing on the origin square.
    ----

    Universal preconditions first (there is a piece, it actually moves, it does not land on its own side),
    then dispatch on the piece type.
    """
    move.ensure_within_bounds()
    piece = board.piece_at(move.from_square)
    if piece is None:
        return MoveViolation.NO_PIECE
    if move.from_square == move.to_square:
        return MoveViolation.SAME_SQUARE
    target = board.piece_at(move.to_square)
    if target is not None and target.color == piece.color:
        return MoveViolation.OWN_PIECE

    movement_rule = MOVEMENT_RULES[piece.type]
    return movement_rule(board, move, piece, context)


def is_legal_for_piece_type(
    board: Board, move: Move, context: MoveContext = NO_CONTEXT
) -> bool:
    return find_piece_violation(board, move, context) is None


# -- SPECIAL MOVES ---
def is_en_passant_capture(
    board: Board, move: Move, piece: Piece, context: MoveContext
) -> bool:
    """
    A diagonal pawn step onto an empty square is only fine right after the opponent advanced a pawn by two,
    landing next to ours (same row as our origin, in the column we are stepping into).
    """
    last_move = context.last_move
    if piece.type != PieceType.PAWN or last_move is None:
        return False
    if not board.is_empty(move.to_square):
        return False

    last_piece = board.piece_at(last_move.to_square)
    return (
        last_piece is not None
        and last_piece.type == PieceType.PAWN
        and last_piece.color != piece.color
        and abs(last_move.row_delta) == 2
        and last_move.to_square.row == move.from_square.row
        and last_move.to_square.col == move.to_square.col
    )


def is_promotion_move(move: Move, piece: Piece) -> bool:
    """check if the move is a pawn move that reaches the far row"""
    return (
        piece.type == PieceType.PAWN
        and move.to_square.row == PROMOTION_ROW[piece.color]
    )


# --- CAPTURING RULES / ATTACKING RULES ---
def pawn_attacks(board: Board, move: Move, piece: Piece) -> bool:
    """
    Pawns take diagonally, one row forward. Unlike the movement rule, this does not care
    whether anything stands on the target square.
    """
    return move.row_delta == PAWN_DIRECTION[piece.color] and abs(move.col_delta) == 1


def knight_attacks(board: Board, move: Move, piece: Piece) -> bool:
    return is_knight_jump(move)


def bishop_attacks(board: Board, move: Move, piece: Piece) -> bool:
    return is_diagonal(move) and is_path_clear(board, move)


def rook_attacks(board: Board, move: Move, piece: Piece) -> bool:
    return is_straight(move) and is_path_clear(board, move)


def queen_attacks(board: Board, move: Move, piece: Piece) -> bool:
    return (is_straight(move) or is_diagonal(move)) and is_path_clear(board, move)


def king_attacks(board: Board, move: Move, piece: Piece) -> bool:
    """Castling never captures, so a king only attacks its neighbours."""
    return is_single_step(move)


# --- STRATEGY PATTERN: ATTACKING RULES ---
AttackFn = Callable[[Board, Move, Piece], bool]
ATTACK_RULES: dict[PieceType, AttackFn] = {
    PieceType.PAWN: pawn_attacks,
    PieceType.KNIGHT: knight_attacks,
    PieceType.BISHOP: bishop_attacks,
    PieceType.ROOK: rook_attacks,
    PieceType.QUEEN: queen_attacks,
    PieceType.KING: king_attacks,
}


def attacks(board: Board, origin: Square, target: Square) -> bool:
    """Does the piece on `origin` attack `target`? False if `origin` is empty."""
    piece = board.piece_at(origin)
    if piece is None or origin == target:
        return False
    attack_rule = ATTACK_RULES[piece.type]
    return attack_rule(board, Move(origin, target), piece)
