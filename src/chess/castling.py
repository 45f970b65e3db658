"""Helpers for implementing Castling rules. Need to be imported by multiple sources"""

from dataclasses import dataclass
from enum import Enum
from typing import Self

from src.chess.square import BOARD_DIMENSIONS, Square


class CastlingSide(Enum):
    """Values are the column the rook starts from."""

    KING_SIDE = BOARD_DIMENSIONS[1] - 1
    QUEEN_SIDE = 0


@dataclass(frozen=True)
class CastlingSquares:
    """
    Store the squares where king/rook start from/end up in by castling.
    NOTE: The rook always lands on the square the king passed over.
    """

    side: CastlingSide
    king_from: Square
    king_to: Square
    rook_from: Square
    rook_to: Square

    @classmethod
    def for_king_move(cls, king_from: Square, king_to: Square) -> Self:
        """Derive the rook squares from a two-column king move on its row"""
        side = (
            CastlingSide.KING_SIDE
            if king_to.col > king_from.col
            else CastlingSide.QUEEN_SIDE
        )
        step = 1 if side == CastlingSide.KING_SIDE else -1
        rook_from = Square(king_from.row, side.value)
        rook_to = Square(king_from.row, king_to.col - step)
        return cls(side, king_from, king_to, rook_from, rook_to)

    @property
    def passed_square(self) -> Square:
        """The square the king crosses on its way (same one the rook ends on)."""
        return self.rook_to


def is_castling_shape(king_from: Square, king_to: Square) -> bool:
    """A king move of exactly two columns along its own row"""
    return king_from.row == king_to.row and abs(king_to.col - king_from.col) == 2


def squares_between_on_row(from_square: Square, to_square: Square) -> list[Square]:
    """
    Find the squares strictly in between the two specified squares that are on the same row

    Needed for checking if you can still castle (the path between king and rook has to be empty)
    """

    if from_square.row != to_square.row:
        raise ValueError(
            f"squares_between_on_row requires both squares to lie on the same row. \n from: {from_square}\n to:{to_square}"
        )

    step = 1 if to_square.col > from_square.col else -1
    return [
        Square(from_square.row, col)
        for col in range(from_square.col + step, to_square.col, step)
    ]
