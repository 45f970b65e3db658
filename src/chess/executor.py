"""
Applies a move to a board.

The executor never touches the board it is given: it works on a copy and hands the copy back.
That same function is used to simulate moves while testing for check, and to commit accepted moves.
"""

from dataclasses import dataclass
from typing import Optional

from src.chess.board import Board
from src.chess.castling import CastlingSquares, is_castling_shape
from src.chess.moves import Move, is_promotion_move
from src.chess.pieces import Piece
from src.chess.square import Square
from src.core.shared_types import PieceType


@dataclass(frozen=True)
class ExecutedMove:
    """Result of a move. `piece` is the moving piece as it was before the move."""

    board: Board
    move: Move
    piece: Piece
    captured_piece: Optional[Piece] = None
    is_en_passant: bool = False
    is_castling: bool = False
    promoted_to: Optional[PieceType] = None


def execute(
    board: Board, move: Move, promote_to: Optional[PieceType] = None
) -> ExecutedMove:
    """
    Produce the board after `move`.
    ----

    Assumes the move was found legal for the piece type already.

    1. en passant: a pawn stepping diagonally onto an empty square takes the pawn next to it
       (origin row, destination column)
    2. castling: a king moving two columns brings the rook to the square it passed over
    3. the moving piece gets marked as moved (and promoted, if asked and on the last row)
    """
    new_board = board.copy()
    piece = new_board.piece_at(move.from_square)
    if piece is None:
        raise ValueError(f"Cannot execute {move}: no piece on the origin square.")

    captured_piece = new_board.piece_at(move.to_square)
    is_en_passant = _is_en_passant(new_board, move, piece)
    if is_en_passant:
        captured_piece = new_board.remove_piece(
            Square(move.from_square.row, move.to_square.col)
        )

    is_castling = piece.type == PieceType.KING and is_castling_shape(
        move.from_square, move.to_square
    )
    if is_castling:
        _move_castling_rook(new_board, move)

    promoted_to = promote_to if is_promotion_move(move, piece) else None
    moved_piece = piece.promoted_to(promoted_to) if promoted_to else piece.moved()
    new_board.remove_piece(move.from_square)
    new_board.place_piece(moved_piece, move.to_square)

    return ExecutedMove(
        board=new_board,
        move=move,
        piece=piece,
        captured_piece=captured_piece,
        is_en_passant=is_en_passant,
        is_castling=is_castling,
        promoted_to=promoted_to,
    )


def _is_en_passant(board: Board, move: Move, piece: Piece) -> bool:
    return (
        piece.type == PieceType.PAWN
        and move.col_delta != 0
        and board.is_empty(move.to_square)
    )


def _move_castling_rook(board: Board, king_move: Move) -> None:
    squares = CastlingSquares.for_king_move(king_move.from_square, king_move.to_square)
    rook = board.remove_piece(squares.rook_from)
    if rook is not None:
        board.place_piece(rook.moved(), squares.rook_to)
