"""Protocol repository (the in-memory registry implements it; any other storage would have to as well)"""

from typing import Callable, ContextManager, Protocol

from src.chess.game import Game

GameFactory = Callable[[str], Game]


class GameRepository(Protocol):
    """Session registry. Owns every Game for its whole lifetime."""

    def create_game(self, factory: GameFactory) -> Game:
        """Allocate a fresh, unused session id and store the Game the factory builds for it."""
        ...

    def get_game(self, game_id: str) -> Game | None:
        """Get game by ID, if record exists. NOTE: unlocked, so only for read-only peeks."""
        ...

    def locked(self, game_id: str) -> ContextManager[Game]:
        """Hold the lock of one session for the duration of the `with` block. Raises SessionNotFoundError."""
        ...

    def delete_game(self, game_id: str) -> Game | None:
        """Remove a game's record."""
        ...

    def list_game_ids(self) -> list[str]:
        """All session ids currently held."""
        ...
