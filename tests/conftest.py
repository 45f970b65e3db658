"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

import pytest

from src.chess.board import Board
from src.chess.game import Game
from src.db.memory_repository import InMemoryGameRepository
from src.services.session_manager import SessionManager
from tests.helpers import BLACK_PLAYER, CASTLING_FEN, WHITE_PLAYER


@pytest.fixture
def empty_board() -> Board:
    return Board.empty()


@pytest.fixture
def starting_board() -> Board:
    return Board.starting()


@pytest.fixture
def castling_board() -> Board:
    """Only the Kings and the Rooks. Ready to perform any castling move (if allowed)."""
    return Board.from_fen(CASTLING_FEN)


@pytest.fixture
def active_game() -> Game:
    """A game with both seats taken, white to move"""
    game = Game.new_game("test-session")
    game.register_player(WHITE_PLAYER)
    game.register_player(BLACK_PLAYER)
    return game


@pytest.fixture
def repository() -> InMemoryGameRepository:
    return InMemoryGameRepository()


@pytest.fixture
def manager(repository: InMemoryGameRepository) -> SessionManager:
    return SessionManager(repository)
