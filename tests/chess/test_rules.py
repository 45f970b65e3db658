"""Unit tests for /src/chess/rules.py"""

import pytest

from src.chess.board import Board
from src.chess.moves import Move, MoveContext, MoveViolation
from src.chess.rules import (
    classify,
    find_violation,
    has_any_legal_move,
    is_checkmate,
    is_king_in_check,
    is_square_attacked,
    is_stalemate,
    legal_moves,
    validate_move,
)
from src.chess.square import Square, all_squares
from src.core.exceptions import IllegalMoveError
from src.core.shared_types import Color, GameResult, PieceType
from tests.helpers import CHECKMATE_FEN, STALEMATE_FEN

# black rook on (0,4), white bishop on (6,4) shielding the white king on (7,4)
PINNED_BISHOP_FEN = "4r3/8/8/8/8/8/4B3/4K3"


# -- CHECK --
def test_no_check_at_the_start(starting_board: Board) -> None:
    assert not is_king_in_check(starting_board, Color.WHITE)
    assert not is_king_in_check(starting_board, Color.BLACK)


def test_rook_gives_check() -> None:
    board = Board.from_fen(CHECKMATE_FEN)
    assert is_king_in_check(board, Color.WHITE)


def test_missing_king_is_not_in_check(empty_board: Board) -> None:
    assert not is_king_in_check(empty_board, Color.WHITE)


def test_square_attacked() -> None:
    board = Board.from_fen(STALEMATE_FEN)
    assert is_square_attacked(board, Square(6, 6), Color.BLACK)
    assert is_square_attacked(board, Square(7, 6), Color.BLACK)
    assert not is_square_attacked(board, Square(7, 7), Color.BLACK)


# -- LEGALITY --
def test_pinned_piece_cannot_move() -> None:
    """Allowed for a bishop, but it exposes the king: refused"""
    board = Board.from_fen(PINNED_BISHOP_FEN)
    move = Move(Square(6, 4), Square(5, 5))
    assert find_violation(board, move) == MoveViolation.LEAVES_KING_IN_CHECK
    with pytest.raises(IllegalMoveError) as exc_info:
        validate_move(board, move)
    assert exc_info.value.reason == "Move would leave king in check"


def test_self_check_moves_never_listed() -> None:
    """Everything that fails the simulation is absent from legal_moves"""
    board = Board.from_fen(PINNED_BISHOP_FEN)
    assert legal_moves(board, Square(6, 4)) == []
    for target in all_squares():
        move = Move(Square(6, 4), target)
        if find_violation(board, move) == MoveViolation.LEAVES_KING_IN_CHECK:
            assert target not in legal_moves(board, Square(6, 4))


def test_king_cannot_step_into_check() -> None:
    board = Board.from_fen(PINNED_BISHOP_FEN)
    # the rook only covers col 4
    moves = legal_moves(board, Square(7, 4))
    assert Square(7, 3) in moves
    assert Square(7, 5) in moves
    assert Square(6, 3) in moves
    assert Square(6, 4) not in moves  # own bishop


def test_validate_move_passes_legal_move(starting_board: Board) -> None:
    validate_move(starting_board, Move(Square(6, 4), Square(4, 4)))


def test_validate_move_reason(starting_board: Board) -> None:
    with pytest.raises(IllegalMoveError) as exc_info:
        validate_move(starting_board, Move(Square(5, 4), Square(4, 4)))
    assert exc_info.value.reason == "No piece at source position"


# -- LEGAL MOVES IN THE STARTING POSITION --
@pytest.mark.parametrize("row", [1, 6])
def test_starting_position_legal_move_counts(starting_board: Board, row: int) -> None:
    back_row = 0 if row == 1 else 7
    for col in range(8):
        assert len(legal_moves(starting_board, Square(row, col))) == 2
    expected = {0: 0, 1: 2, 2: 0, 3: 0, 4: 0, 5: 0, 6: 2, 7: 0}
    for col, count in expected.items():
        assert len(legal_moves(starting_board, Square(back_row, col))) == count


def test_legal_moves_of_empty_square(starting_board: Board) -> None:
    assert legal_moves(starting_board, Square(4, 4)) == []


def test_legal_moves_includes_en_passant() -> None:
    board = Board.from_fen("4k3/8/8/4Pp2/8/8/8/4K3")
    context = MoveContext(last_move=Move(Square(1, 5), Square(3, 5)))
    assert Square(2, 5) in legal_moves(board, Square(3, 4), context)
    assert Square(2, 5) not in legal_moves(board, Square(3, 4))


def test_legal_moves_includes_promotion_square() -> None:
    board = Board.from_fen("k7/4P3/8/8/8/8/8/K7")
    assert legal_moves(board, Square(1, 4)) == [Square(0, 4)]


# -- CASTLING SAFETY --
def test_cannot_castle_out_of_check() -> None:
    board = Board.from_fen("4r3/8/8/8/8/8/8/R3K2R")
    move = Move(Square(7, 4), Square(7, 6))
    assert find_violation(board, move) == MoveViolation.CASTLING_OUT_OF_CHECK


def test_cannot_castle_through_attacked_square() -> None:
    board = Board.from_fen("5r2/8/8/8/8/8/8/R3K2R")
    move = Move(Square(7, 4), Square(7, 6))
    assert find_violation(board, move) == MoveViolation.CASTLING_THROUGH_CHECK
    # the queen side is not affected
    assert find_violation(board, Move(Square(7, 4), Square(7, 2))) is None


def test_lenient_castling_only_checks_the_landing_square() -> None:
    board = Board.from_fen("5r2/8/8/8/8/8/8/R3K2R")
    move = Move(Square(7, 4), Square(7, 6))
    assert find_violation(board, move, strict_castling=False) is None


def test_cannot_castle_into_check_either_way() -> None:
    board = Board.from_fen("6r1/8/8/8/8/8/8/R3K2R")
    move = Move(Square(7, 4), Square(7, 6))
    assert find_violation(board, move) == MoveViolation.LEAVES_KING_IN_CHECK
    assert (
        find_violation(board, move, strict_castling=False)
        == MoveViolation.LEAVES_KING_IN_CHECK
    )


# -- PROMOTION --
@pytest.mark.parametrize(
    "promote_to", [PieceType.QUEEN, PieceType.ROOK, PieceType.BISHOP, PieceType.KNIGHT]
)
def test_promotion_choices(promote_to: PieceType) -> None:
    board = Board.from_fen("k7/4P3/8/8/8/8/8/K7")
    assert find_violation(board, Move(Square(1, 4), Square(0, 4)), promote_to=promote_to) is None


def test_promotion_must_be_named() -> None:
    board = Board.from_fen("k7/4P3/8/8/8/8/8/K7")
    move = Move(Square(1, 4), Square(0, 4))
    assert find_violation(board, move) == MoveViolation.PROMOTION_REQUIRED


@pytest.mark.parametrize("promote_to", [PieceType.KING, PieceType.PAWN])
def test_invalid_promotion_piece(promote_to: PieceType) -> None:
    board = Board.from_fen("k7/4P3/8/8/8/8/8/K7")
    move = Move(Square(1, 4), Square(0, 4))
    assert find_violation(board, move, promote_to=promote_to) == MoveViolation.INVALID_PROMOTION


def test_promotion_piece_on_ordinary_move(starting_board: Board) -> None:
    move = Move(Square(6, 4), Square(4, 4))
    violation = find_violation(starting_board, move, promote_to=PieceType.QUEEN)
    assert violation == MoveViolation.INVALID_PROMOTION


# -- END OF GAME --
def test_checkmate_fixture() -> None:
    board = Board.from_fen(CHECKMATE_FEN)
    assert is_checkmate(board, Color.WHITE)
    assert not is_stalemate(board, Color.WHITE)
    assert classify(board, Color.WHITE) == GameResult.CHECKMATE


def test_stalemate_fixture() -> None:
    board = Board.from_fen(STALEMATE_FEN)
    assert is_stalemate(board, Color.WHITE)
    assert not is_checkmate(board, Color.WHITE)
    assert classify(board, Color.WHITE) == GameResult.STALEMATE


def test_game_goes_on_at_the_start(starting_board: Board) -> None:
    assert has_any_legal_move(starting_board, Color.WHITE)
    assert has_any_legal_move(starting_board, Color.BLACK)
    assert classify(starting_board, Color.WHITE) is None


def test_check_that_can_be_answered_is_not_mate() -> None:
    """The king takes the undefended rook next to it"""
    board = Board.from_fen("8/8/8/8/8/8/8/6rK")
    assert is_king_in_check(board, Color.WHITE)
    assert classify(board, Color.WHITE) is None


def test_defended_rook_next_to_the_king_is_mate() -> None:
    board = Board.from_fen("8/8/8/8/8/8/6r1/6rK")
    assert classify(board, Color.WHITE) == GameResult.CHECKMATE
