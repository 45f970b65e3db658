"""
A square on the board

(placed in its own module as multiple other modules need to import it)
"""

from __future__ import annotations

from dataclasses import dataclass

from src.core.exceptions import InvalidSquareError

# Chess board is always 8x8 (rows, cols).
BOARD_DIMENSIONS = (8, 8)


@dataclass(frozen=True)
class Square:
    """
    Row 0 is the top of the board as dealt (black's back rank), row 7 the bottom (white's back rank).
    Col 0 is the left-most column.
    """

    row: int
    col: int

    def is_within_bounds(self) -> bool:
        return (0 <= self.row < BOARD_DIMENSIONS[0]) and (
            0 <= self.col < BOARD_DIMENSIONS[1]
        )

    def ensure_within_bounds(self) -> Square:
        """The bounds guard. Everything that indexes the board goes through here first."""
        if not self.is_within_bounds():
            raise InvalidSquareError(
                f"Square ({self.row}, {self.col}) is off the board. Rows and cols run from 0 to 7."
            )
        return self

    def offset(self, d_row: int, d_col: int) -> Square:
        return Square(self.row + d_row, self.col + d_col)


def all_squares() -> list[Square]:
    return [
        Square(row, col)
        for row in range(BOARD_DIMENSIONS[0])
        for col in range(BOARD_DIMENSIONS[1])
    ]
