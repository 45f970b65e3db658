"""Defines the chess pieces"""

from dataclasses import dataclass, replace
from typing import Self

from src.core.shared_types import Color, PieceType

FEN_TO_PIECE: dict[str, PieceType] = {
    "p": PieceType.PAWN,
    "n": PieceType.KNIGHT,
    "b": PieceType.BISHOP,
    "r": PieceType.ROOK,
    "q": PieceType.QUEEN,
    "k": PieceType.KING,
}

PIECE_TO_FEN: dict[PieceType, str] = {value: key for key, value in FEN_TO_PIECE.items()}

# A pawn reaching the far row must pick one of these. There is no default.
PROMOTION_OPTIONS: tuple[PieceType, ...] = (
    PieceType.QUEEN,
    PieceType.ROOK,
    PieceType.BISHOP,
    PieceType.KNIGHT,
)


@dataclass(frozen=True)
class Piece:
    """
    Pieces are values: moving or promoting one gives back a new Piece.
    So a Piece on one Board can never be changed through another Board that happens to share it.
    """

    type: PieceType
    color: Color
    # only the king and rooks actually care (castling eligibility)
    has_moved: bool = False

    @classmethod
    def from_fen(cls, letter: str) -> Self:
        """Upper case letters are white pieces, lower case black ones"""
        color = Color.WHITE if letter.isupper() else Color.BLACK
        return cls(FEN_TO_PIECE[letter.lower()], color)

    def to_fen(self) -> str:
        letter = PIECE_TO_FEN[self.type]
        return letter.upper() if self.color == Color.WHITE else letter

    def moved(self) -> Self:
        return replace(self, has_moved=True)

    def promoted_to(self, new_type: PieceType) -> Self:
        return replace(self, type=new_type, has_moved=True)
