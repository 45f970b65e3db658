"""Orchestration of communication from the session router to the domain layer (and the reverse direction)."""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, Self

from src.chess.game import Game, MoveRecord
from src.chess.pieces import Piece
from src.chess.square import Square
from src.core.config import Settings
from src.core.exceptions import GameError, InternalGameError, SessionNotFoundError
from src.core.models import SessionModel
from src.core.shared_types import Color, GameResult, PieceType, Status
from src.db.memory_repository import InMemoryGameRepository
from src.db.repository import GameRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JoinResult:
    """Seat assignment plus a snapshot of the session taken while it was locked"""

    session_id: str
    color: Color
    state: SessionModel
    newly_joined: bool = False
    activated: bool = False
    reconnected: bool = False


@dataclass(frozen=True)
class MoveResult:
    session_id: str
    record: MoveRecord
    next_turn: Color
    state: SessionModel
    result: Optional[GameResult] = None
    winner: Optional[Color] = None

    @property
    def captured_piece(self) -> Optional[Piece]:
        return self.record.captured_piece


class SessionManager:
    """Creates, joins and looks up sessions, and feeds moves through the rules engine one session at a time."""

    def __init__(self, repository: GameRepository, strict_castling: bool = True) -> None:
        self.repo = repository
        self.strict_castling = strict_castling

    @classmethod
    def from_settings(cls, settings: Settings) -> Self:
        repository = InMemoryGameRepository(id_bytes=settings.session_id_bytes)
        return cls(repository, strict_castling=settings.strict_castling)

    # -- Session lifecycle ---
    def create_session(self) -> str:
        """Fresh starting board, status waiting, no players yet."""
        game = self.repo.create_game(
            lambda session_id: Game.new_game(session_id, self.strict_castling)
        )
        logger.info("Session %s created", game.session_id)
        return game.session_id

    def join_session(self, session_id: str, connection: str) -> JoinResult:
        """Take the first open seat. Joining again with the same connection returns the same color."""
        with self._session(session_id) as game:
            was_waiting = game.status == Status.WAITING
            color, newly_joined = game.register_player(connection)
            activated = was_waiting and game.status == Status.ACTIVE
            state = game.to_model()

        if newly_joined:
            logger.info(
                "Connection %s joined session %s as %s", connection, session_id, color
            )
        return JoinResult(session_id, color, state, newly_joined, activated)

    def reconnect(
        self,
        session_id: str,
        connection: str,
        preferred_color: Optional[Color] = None,
    ) -> JoinResult:
        """Re-bind a connection to its color (or to a seat whose connection dropped). Board and history are kept."""
        with self._session(session_id) as game:
            was_waiting = game.status == Status.WAITING
            color, newly_joined = game.reconnect_player(connection, preferred_color)
            activated = was_waiting and game.status == Status.ACTIVE
            state = game.to_model()

        logger.info(
            "Connection %s reconnected to session %s as %s",
            connection,
            session_id,
            color,
        )
        return JoinResult(
            session_id, color, state, newly_joined, activated, reconnected=True
        )

    def disconnect(self, session_id: str, connection: str) -> Optional[Color]:
        """Marks the seat as not live, nothing else. Unknown sessions are ignored."""
        try:
            with self._session(session_id) as game:
                color = game.disconnect_player(connection)
        except SessionNotFoundError:
            return None

        if color is not None:
            logger.info(
                "Connection %s (%s) disconnected from session %s",
                connection,
                color,
                session_id,
            )
        return color

    def end_session(self, session_id: str) -> bool:
        """Remove a session from memory."""
        removed = self.repo.delete_game(session_id) is not None
        if removed:
            logger.info("Session %s removed", session_id)
        return removed

    # -- Moves ---
    def apply_move(
        self,
        session_id: str,
        connection: str,
        from_square: Square,
        to_square: Square,
        promote_to: Optional[PieceType] = None,
    ) -> MoveResult:
        """
        Make a move attempt.
        ----

        The session stays locked from the turn check until the new snapshot is taken,
        so two submissions for the same session are handled strictly one after the other.
        """
        with self._session(session_id) as game:
            outcome = game.make_move(connection, from_square, to_square, promote_to)
            state = game.to_model()

        logger.debug(
            "Session %s: %s %s (%d,%d)->(%d,%d)",
            session_id,
            outcome.record.piece_color,
            outcome.record.piece_type,
            from_square.row,
            from_square.col,
            to_square.row,
            to_square.col,
        )
        if outcome.result is not None:
            logger.info(
                "Session %s ended: %s, winner: %s",
                session_id,
                outcome.result,
                outcome.winner,
            )
        return MoveResult(
            session_id=session_id,
            record=outcome.record,
            next_turn=outcome.next_turn,
            state=state,
            result=outcome.result,
            winner=outcome.winner,
        )

    def legal_moves(
        self, session_id: str, connection: str, square: Square
    ) -> list[Square]:
        with self._session(session_id) as game:
            return game.legal_moves(connection, square)

    # -- Lookups ---
    def get_session(self, session_id: str) -> Optional[SessionModel]:
        try:
            with self._session(session_id) as game:
                return game.to_model()
        except SessionNotFoundError:
            return None

    def color_of(self, session_id: str, connection: str) -> Optional[Color]:
        game = self.repo.get_game(session_id)
        return game.color_of(connection) if game else None

    def player_of(self, session_id: str, color: Color) -> Optional[str]:
        game = self.repo.get_game(session_id)
        return game.player_of(color) if game else None

    def opponent_of(self, session_id: str, color: Color) -> Optional[str]:
        game = self.repo.get_game(session_id)
        return game.opponent_identity(color) if game else None

    def list_sessions(self) -> list[str]:
        return self.repo.list_game_ids()

    def session_count(self) -> int:
        return len(self.repo.list_game_ids())

    # -- Internal helpers --
    @contextmanager
    def _session(self, session_id: str) -> Iterator[Game]:
        """
        Lock one session for the duration of the block.

        Expected rejections (GameError) pass through untouched. Anything else is a bug inside this one session:
        it gets logged and surfaces as InternalGameError, so the registry and other sessions carry on.
        """
        with self.repo.locked(session_id) as game:
            try:
                yield game
            except GameError:
                raise
            except Exception as exc:
                logger.exception("Internal error in session %s", session_id)
                raise InternalGameError(
                    f"Internal error in session {session_id}."
                ) from exc
