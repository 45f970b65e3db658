"""
Type definitions used across layers
"""

from enum import StrEnum


class Status(StrEnum):
    WAITING = "waiting"
    ACTIVE = "active"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"


class GameResult(StrEnum):
    """How a finished game ended. Values match the terminal Status values."""

    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self == Color.WHITE else Color.WHITE


class PieceType(StrEnum):
    PAWN = "pawn"
    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
    KING = "king"
