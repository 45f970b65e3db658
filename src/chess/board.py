"""The Game board: an 8x8 grid of optional pieces plus positional queries."""

from dataclasses import dataclass
from typing import Iterator, Optional, Self

from src.chess.pieces import FEN_TO_PIECE, Piece
from src.chess.square import BOARD_DIMENSIONS, Square
from src.core.exceptions import InvalidRequestError
from src.core.shared_types import Color, PieceType

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR"

Grid = list[list[Optional[Piece]]]


@dataclass
class Board:
    grid: Grid

    @classmethod
    def empty(cls) -> Self:
        return cls(
            [[None] * BOARD_DIMENSIONS[1] for _ in range(BOARD_DIMENSIONS[0])]
        )

    @classmethod
    def starting(cls) -> Self:
        return cls.from_fen(STARTING_FEN)

    @classmethod
    def from_fen(cls, fen_str: str) -> Self:
        """Construct a board from the piece placement part of a FEN string.

        ex. standard starting position:
        rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR
        means:
        * black pieces are on row 0, starting with a rook on col 0
        * black pawns cover row 1 entirely
        * rows 2 through 5 have 8 consecutive empty squares
        * row 6 holds the white pawns (capital letters)
        * row 7 the white pieces

        Every piece is created with has_moved=False.
        """
        fen_by_rows = fen_str.split("/")
        if len(fen_by_rows) != BOARD_DIMENSIONS[0]:
            raise InvalidRequestError(
                f"FEN placement needs {BOARD_DIMENSIONS[0]} rows, got {len(fen_by_rows)}: {fen_str!r}"
            )

        board = cls.empty()
        for row, fen_one_row in enumerate(fen_by_rows):
            col = 0
            for character in fen_one_row:
                if character.isdigit():
                    # A number denotes the amount of empty squares after each other
                    col += int(character)
                    continue
                is_piece_letter = character.lower() in FEN_TO_PIECE
                if col >= BOARD_DIMENSIONS[1] or not is_piece_letter:
                    raise InvalidRequestError(
                        f"Cannot place {character!r} on FEN row {row}: {fen_one_row!r}"
                    )
                board.grid[row][col] = Piece.from_fen(character)
                col += 1
            if col != BOARD_DIMENSIONS[1]:
                raise InvalidRequestError(
                    f"FEN row {row} does not describe exactly {BOARD_DIMENSIONS[1]} squares: {fen_one_row!r}"
                )
        return board

    def to_fen(self) -> str:
        """Rows are separated by slashes in FEN string."""
        return "/".join(self._row_to_fen(row) for row in range(BOARD_DIMENSIONS[0]))

    def _row_to_fen(self, row: int) -> str:
        """FEN string of a single row"""
        fen_characters: list[str] = []
        empty_count = 0
        for piece in self.grid[row]:
            if piece is None:
                empty_count += 1
                continue
            if empty_count > 0:
                fen_characters.append(str(empty_count))
                empty_count = 0
            fen_characters.append(piece.to_fen())

        # if the entire row is empty, then we still place this number in the string
        if empty_count > 0:
            fen_characters.append(str(empty_count))
        return "".join(fen_characters)

    # --- POSITIONAL QUERIES ---
    def piece_at(self, square: Square) -> Optional[Piece]:
        square.ensure_within_bounds()
        return self.grid[square.row][square.col]

    def is_empty(self, square: Square) -> bool:
        return self.piece_at(square) is None

    def is_opponent(self, square: Square, color: Color) -> bool:
        piece = self.piece_at(square)
        return piece is not None and piece.color != color

    def pieces(self) -> Iterator[tuple[Square, Piece]]:
        for row, pieces_in_row in enumerate(self.grid):
            for col, piece in enumerate(pieces_in_row):
                if piece is not None:
                    yield Square(row, col), piece

    def locate_color(self, color: Color) -> list[Square]:
        return [square for square, piece in self.pieces() if piece.color == color]

    def find_king(self, color: Color) -> Optional[Square]:
        """Scans the whole board. None if that king is missing (then it also cannot be in check)."""
        return next(
            (
                square
                for square, piece in self.pieces()
                if piece.type == PieceType.KING and piece.color == color
            ),
            None,
        )

    # --- UPDATES ---
    # NOTE: Only used on boards nobody else holds: fresh fixtures, or the executor's own copy.
    def place_piece(self, piece: Piece, square: Square) -> None:
        square.ensure_within_bounds()
        self.grid[square.row][square.col] = piece

    def remove_piece(self, square: Square) -> Optional[Piece]:
        piece = self.piece_at(square)
        self.grid[square.row][square.col] = None
        return piece

    def copy(self) -> Self:
        """Pieces are immutable, so copying the rows is a full (deep enough) copy."""
        return type(self)([list(pieces_in_row) for pieces_in_row in self.grid])
