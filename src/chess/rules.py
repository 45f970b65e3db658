"""
Check detection, true legality and end-of-game classification.

The movement rules in moves.py are necessary but not sufficient:
a move is only legal if, after simulating it, the mover's own king is not in check.
Everything that asks "is this move legal?" goes through `find_violation` here.
"""

from typing import Optional

from src.chess.board import Board
from src.chess.castling import CastlingSquares, is_castling_shape
from src.chess.executor import execute
from src.chess.moves import (
    NO_CONTEXT,
    Move,
    MoveContext,
    MoveViolation,
    Violation,
    attacks,
    find_piece_violation,
    is_promotion_move,
)
from src.chess.pieces import PROMOTION_OPTIONS, Piece
from src.chess.square import Square, all_squares
from src.core.exceptions import IllegalMoveError
from src.core.shared_types import Color, GameResult, PieceType


# --- ATTACKS / CHECK ---
def is_square_attacked(board: Board, square: Square, by_color: Color) -> bool:
    """Is any piece of `by_color` attacking the given square?"""
    return any(
        attacks(board, origin, square) for origin in board.locate_color(by_color)
    )


def is_king_in_check(board: Board, color: Color) -> bool:
    """A missing king cannot be in check."""
    king_square = board.find_king(color)
    if king_square is None:
        return False
    return is_square_attacked(board, king_square, color.opponent)


# --- LEGALITY ---
def find_violation(
    board: Board,
    move: Move,
    context: MoveContext = NO_CONTEXT,
    promote_to: Optional[PieceType] = None,
    strict_castling: bool = True,
) -> Violation:
    """
    Full legality check of a single move
    ----

    1. movement rule of the piece (moves.py)
    2. castling safety (only with strict_castling): not out of check, not across an attacked square
    3. simulate on a copy and refuse if your own king ends up in check
    4. promotion: required on the last row, forbidden anywhere else
    """
    violation = find_piece_violation(board, move, context)
    if violation is not None:
        return violation

    # find_piece_violation guarantees there is a piece
    piece = board.piece_at(move.from_square)
    assert piece is not None

    if strict_castling and _is_castling(move, piece):
        violation = _castling_safety_violation(board, move, piece.color)
        if violation is not None:
            return violation

    simulated = execute(board, move)
    if is_king_in_check(simulated.board, piece.color):
        return MoveViolation.LEAVES_KING_IN_CHECK

    return _promotion_violation(move, piece, promote_to)


def validate_move(
    board: Board,
    move: Move,
    context: MoveContext = NO_CONTEXT,
    promote_to: Optional[PieceType] = None,
    strict_castling: bool = True,
) -> None:
    """Raise IllegalMoveError carrying the reason, if the move is not legal."""
    violation = find_violation(board, move, context, promote_to, strict_castling)
    if violation is not None:
        raise IllegalMoveError(violation.value)


def legal_moves(
    board: Board,
    square: Square,
    context: MoveContext = NO_CONTEXT,
    strict_castling: bool = True,
) -> list[Square]:
    """
    Every destination the piece on `square` can legally move to.
    ----

    Try all 64 squares. A pawn move onto the last row counts as one destination
    (the promotion piece is chosen when the move is made).
    """
    piece = board.piece_at(square.ensure_within_bounds())
    if piece is None:
        return []

    destinations: list[Square] = []
    for target in all_squares():
        move = Move(square, target)
        promote_to = PieceType.QUEEN if is_promotion_move(move, piece) else None
        violation = find_violation(board, move, context, promote_to, strict_castling)
        if violation is None:
            destinations.append(target)
    return destinations


def has_any_legal_move(
    board: Board,
    color: Color,
    context: MoveContext = NO_CONTEXT,
    strict_castling: bool = True,
) -> bool:
    return any(
        legal_moves(board, square, context, strict_castling)
        for square in board.locate_color(color)
    )


# --- END OF GAME ---
def classify(
    board: Board,
    color: Color,
    context: MoveContext = NO_CONTEXT,
    strict_castling: bool = True,
) -> Optional[GameResult]:
    """For the side to move: checkmate, stalemate, or None if the game goes on."""
    if has_any_legal_move(board, color, context, strict_castling):
        return None
    if is_king_in_check(board, color):
        return GameResult.CHECKMATE
    return GameResult.STALEMATE


def is_checkmate(
    board: Board,
    color: Color,
    context: MoveContext = NO_CONTEXT,
    strict_castling: bool = True,
) -> bool:
    return is_king_in_check(board, color) and not has_any_legal_move(
        board, color, context, strict_castling
    )


def is_stalemate(
    board: Board,
    color: Color,
    context: MoveContext = NO_CONTEXT,
    strict_castling: bool = True,
) -> bool:
    return not is_king_in_check(board, color) and not has_any_legal_move(
        board, color, context, strict_castling
    )


# -- HELPERS ---
def _is_castling(move: Move, piece: Piece) -> bool:
    return piece.type == PieceType.KING and is_castling_shape(
        move.from_square, move.to_square
    )


def _castling_safety_violation(board: Board, move: Move, color: Color) -> Violation:
    """You cannot castle out of a check, nor across a square the opponent attacks."""
    if is_king_in_check(board, color):
        return MoveViolation.CASTLING_OUT_OF_CHECK
    squares = CastlingSquares.for_king_move(move.from_square, move.to_square)
    if is_square_attacked(board, squares.passed_square, color.opponent):
        return MoveViolation.CASTLING_THROUGH_CHECK
    return None


def _promotion_violation(
    move: Move, piece: Piece, promote_to: Optional[PieceType]
) -> Violation:
    if is_promotion_move(move, piece):
        if promote_to is None:
            return MoveViolation.PROMOTION_REQUIRED
        if promote_to not in PROMOTION_OPTIONS:
            return MoveViolation.INVALID_PROMOTION
        return None
    if promote_to is not None:
        return MoveViolation.INVALID_PROMOTION
    return None
