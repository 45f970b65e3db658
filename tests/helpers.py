"""Board placements and builders shared by tests of multiple layers"""

from src.chess.board import Board
from src.chess.game import Game

EMPTY_FEN = "/".join(["8"] * 8)
# white king in the corner, black rooks on col 7 and col 6
CHECKMATE_FEN = "7r/6r1/8/8/8/8/8/7K"
# white king alone in the corner, not in check, every neighbour covered
STALEMATE_FEN = "8/8/8/8/8/6q1/5k2/7K"
# kings and rooks only, all on their starting squares
CASTLING_FEN = "r3k2r/8/8/8/8/8/8/R3K2R"

WHITE_PLAYER = "conn-white"
BLACK_PLAYER = "conn-black"


def game_with_board(fen: str, strict_castling: bool = True) -> Game:
    """Active game whose board is replaced by the given placement"""
    game = Game.new_game("fixture-session", strict_castling=strict_castling)
    game.register_player(WHITE_PLAYER)
    game.register_player(BLACK_PLAYER)
    game.board = Board.from_fen(fen)
    return game
