"""Unit tests for src/services/session_manager.py"""

import threading
from unittest.mock import patch

import pytest

from src.chess.square import Square
from src.core.config import Settings
from src.core.exceptions import (
    InternalGameError,
    NotYourTurnError,
    SessionFullError,
    SessionNotFoundError,
)
from src.core.shared_types import Color, GameResult, PieceType, Status
from src.db.memory_repository import InMemoryGameRepository
from src.services.session_manager import SessionManager

FOOLS_MATE = [
    ((6, 5), (5, 5)),
    ((1, 4), (3, 4)),
    ((6, 6), (4, 6)),
    ((0, 3), (4, 7)),
]


@pytest.fixture
def session_id(manager: SessionManager) -> str:
    """A session with alice (white) and bob (black) seated"""
    session_id = manager.create_session()
    manager.join_session(session_id, "alice")
    manager.join_session(session_id, "bob")
    return session_id


def test_from_settings() -> None:
    manager = SessionManager.from_settings(
        Settings(session_id_bytes=8, strict_castling=False)
    )
    assert not manager.strict_castling
    session_id = manager.create_session()
    assert len(session_id) == 16


# -- LIFECYCLE --
def test_create_session(manager: SessionManager) -> None:
    session_id = manager.create_session()
    state = manager.get_session(session_id)
    assert state is not None
    assert state.status == Status.WAITING
    assert state.players == {"white": None, "black": None}
    assert manager.list_sessions() == [session_id]
    assert manager.session_count() == 1


def test_created_ids_are_unique(manager: SessionManager) -> None:
    ids = {manager.create_session() for _ in range(100)}
    assert len(ids) == 100


def test_join_session(manager: SessionManager) -> None:
    session_id = manager.create_session()
    first = manager.join_session(session_id, "alice")
    assert first.color == Color.WHITE
    assert first.newly_joined
    assert not first.activated
    assert first.state.status == Status.WAITING

    second = manager.join_session(session_id, "bob")
    assert second.color == Color.BLACK
    assert second.activated
    assert second.state.status == Status.ACTIVE


def test_join_twice_returns_same_color(manager: SessionManager) -> None:
    session_id = manager.create_session()
    first = manager.join_session(session_id, "alice")
    again = manager.join_session(session_id, "alice")
    assert again.color == first.color
    assert not again.newly_joined
    assert again.state.status == first.state.status == Status.WAITING


def test_join_unknown_session(manager: SessionManager) -> None:
    with pytest.raises(SessionNotFoundError):
        manager.join_session("nope", "alice")


def test_join_full_session(manager: SessionManager, session_id: str) -> None:
    with pytest.raises(SessionFullError):
        manager.join_session(session_id, "carol")


def test_disconnect_and_reconnect(manager: SessionManager, session_id: str) -> None:
    manager.apply_move(session_id, "alice", Square(6, 4), Square(4, 4))
    assert manager.disconnect(session_id, "bob") == Color.BLACK

    result = manager.reconnect(session_id, "bob-again")
    assert result.color == Color.BLACK
    assert result.reconnected
    assert result.state.current_turn == Color.BLACK
    assert len(result.state.move_history) == 1
    assert manager.player_of(session_id, Color.BLACK) == "bob-again"
    assert manager.color_of(session_id, "bob-again") == Color.BLACK


def test_reconnect_when_everybody_is_connected(
    manager: SessionManager, session_id: str
) -> None:
    with pytest.raises(SessionFullError):
        manager.reconnect(session_id, "carol")


def test_reconnect_unknown_session(manager: SessionManager) -> None:
    with pytest.raises(SessionNotFoundError):
        manager.reconnect("nope", "alice")


def test_disconnect_unknown_session(manager: SessionManager) -> None:
    assert manager.disconnect("nope", "alice") is None


def test_end_session(manager: SessionManager, session_id: str) -> None:
    assert manager.end_session(session_id)
    assert manager.get_session(session_id) is None
    assert not manager.end_session(session_id)


# -- MOVES --
def test_apply_move(manager: SessionManager, session_id: str) -> None:
    result = manager.apply_move(session_id, "alice", Square(6, 4), Square(4, 4))
    assert result.next_turn == Color.BLACK
    assert result.result is None
    assert result.state.current_turn == Color.BLACK
    assert result.state.last_move is not None
    assert result.state.last_move.to_square.row == 4


def test_apply_move_reports_capture(manager: SessionManager, session_id: str) -> None:
    manager.apply_move(session_id, "alice", Square(6, 4), Square(4, 4))
    manager.apply_move(session_id, "bob", Square(1, 3), Square(3, 3))
    result = manager.apply_move(session_id, "alice", Square(4, 4), Square(3, 3))
    assert result.captured_piece is not None
    assert result.captured_piece.type == PieceType.PAWN
    assert result.captured_piece.color == Color.BLACK
    assert manager.opponent_of(session_id, Color.WHITE) == "bob"


def test_apply_move_wrong_turn(manager: SessionManager, session_id: str) -> None:
    with pytest.raises(NotYourTurnError):
        manager.apply_move(session_id, "bob", Square(1, 4), Square(3, 4))
    state = manager.get_session(session_id)
    assert state is not None and state.move_history == []


def test_apply_move_unknown_session(manager: SessionManager) -> None:
    with pytest.raises(SessionNotFoundError):
        manager.apply_move("nope", "alice", Square(6, 4), Square(4, 4))


def test_checkmate(manager: SessionManager, session_id: str) -> None:
    players = {Color.WHITE: "alice", Color.BLACK: "bob"}
    turn = Color.WHITE
    for origin, target in FOOLS_MATE:
        result = manager.apply_move(session_id, players[turn], Square(*origin), Square(*target))
        turn = result.next_turn
    assert result.result == GameResult.CHECKMATE
    assert result.winner == Color.BLACK
    assert result.state.status == Status.CHECKMATE
    assert result.state.winner == Color.BLACK


def test_legal_moves(manager: SessionManager, session_id: str) -> None:
    moves = manager.legal_moves(session_id, "alice", Square(7, 6))
    assert set(moves) == {Square(5, 5), Square(5, 7)}


def test_internal_error_is_contained(manager: SessionManager, session_id: str) -> None:
    """A bug inside one session comes out as InternalGameError, and other sessions keep working"""
    other = manager.create_session()
    manager.join_session(other, "carol")
    manager.join_session(other, "dave")

    with patch("src.chess.game.classify", side_effect=RuntimeError("boom")):
        with pytest.raises(InternalGameError):
            manager.apply_move(session_id, "alice", Square(6, 4), Square(4, 4))

    # nothing got committed, and the lock was released
    state = manager.get_session(session_id)
    assert state is not None and state.move_history == []
    manager.apply_move(session_id, "alice", Square(6, 4), Square(4, 4))
    manager.apply_move(other, "carol", Square(6, 3), Square(4, 3))


# -- CONCURRENCY --
def test_concurrent_moves_on_one_session(
    manager: SessionManager, session_id: str
) -> None:
    """Two submissions of the same first move: exactly one of them is applied"""
    barrier = threading.Barrier(2)
    outcomes: list[str] = []
    lock = threading.Lock()

    def submit() -> None:
        barrier.wait()
        try:
            manager.apply_move(session_id, "alice", Square(6, 4), Square(4, 4))
            outcome = "applied"
        except NotYourTurnError:
            outcome = "rejected"
        with lock:
            outcomes.append(outcome)

    workers = [threading.Thread(target=submit) for _ in range(2)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert sorted(outcomes) == ["applied", "rejected"]
    state = manager.get_session(session_id)
    assert state is not None and len(state.move_history) == 1


def test_concurrent_joins_fill_two_seats(manager: SessionManager) -> None:
    session_id = manager.create_session()
    colors: list[Color] = []
    refused: list[str] = []
    lock = threading.Lock()

    def join(name: str) -> None:
        try:
            result = manager.join_session(session_id, name)
        except SessionFullError:
            with lock:
                refused.append(name)
            return
        with lock:
            colors.append(result.color)

    workers = [threading.Thread(target=join, args=(f"player-{n}",)) for n in range(6)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert sorted(colors) == [Color.BLACK, Color.WHITE]
    assert len(refused) == 4


def test_sessions_play_in_parallel() -> None:
    manager = SessionManager(InMemoryGameRepository())
    session_ids = []
    for n in range(10):
        session_id = manager.create_session()
        manager.join_session(session_id, f"white-{n}")
        manager.join_session(session_id, f"black-{n}")
        session_ids.append(session_id)

    def play(n: int, session_id: str) -> None:
        players = {Color.WHITE: f"white-{n}", Color.BLACK: f"black-{n}"}
        turn = Color.WHITE
        for origin, target in FOOLS_MATE:
            result = manager.apply_move(
                session_id, players[turn], Square(*origin), Square(*target)
            )
            turn = result.next_turn

    workers = [
        threading.Thread(target=play, args=(n, session_id))
        for n, session_id in enumerate(session_ids)
    ]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    for session_id in session_ids:
        state = manager.get_session(session_id)
        assert state is not None
        assert state.status == Status.CHECKMATE
        assert len(state.move_history) == 4
