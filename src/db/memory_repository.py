"""Implementation of (Game)Repository that keeps every session in process memory"""

import secrets
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator

from src.chess.game import Game
from src.core.exceptions import SessionNotFoundError
from src.db.repository import GameFactory

IdGenerator = Callable[[], str]


@dataclass
class SessionEntry:
    """A Game plus the lock that serializes everything done to it"""

    game: Game
    lock: threading.Lock = field(default_factory=threading.Lock)


class InMemoryGameRepository:
    """
    Sessions live in a dict keyed by session id.
    ----

    * One lock per session: moves on one session never wait for another session.
    * The registry lock is only held to allocate an id / insert / remove an entry.
    """

    def __init__(
        self, id_bytes: int = 4, id_generator: IdGenerator | None = None
    ) -> None:
        self._entries: dict[str, SessionEntry] = {}
        self._registry_lock = threading.Lock()
        self._generate_id = id_generator or (lambda: secrets.token_hex(id_bytes))

    def create_game(self, factory: GameFactory) -> Game:
        """Regenerates the id until it does not collide with an existing session."""
        with self._registry_lock:
            game_id = self._generate_id()
            while game_id in self._entries:
                game_id = self._generate_id()
            game = factory(game_id)
            self._entries[game_id] = SessionEntry(game)
        return game

    def get_game(self, game_id: str) -> Game | None:
        entry = self._entries.get(game_id)
        return entry.game if entry else None

    @contextmanager
    def locked(self, game_id: str) -> Iterator[Game]:
        entry = self._entries.get(game_id)
        if entry is None:
            raise SessionNotFoundError(f"Game with {game_id=} not found.")
        with entry.lock:
            yield entry.game

    def delete_game(self, game_id: str) -> Game | None:
        with self._registry_lock:
            entry = self._entries.pop(game_id, None)
        return entry.game if entry else None

    def list_game_ids(self) -> list[str]:
        with self._registry_lock:
            return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
