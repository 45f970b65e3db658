"""
Error taxonomy shared by all layers.

Every error is a recoverable, per-request outcome. The `code` is what gets reported over the wire,
so clients can branch on it without parsing messages.
"""


class GameError(Exception):
    """Base class for everything the chess server rejects on purpose."""

    code: str = "game_error"


# --- STRUCTURAL ERRORS ---
class InvalidRequestError(GameError):
    """Malformed intent: missing fields, wrong types, unknown intent type."""

    code = "invalid_request"


class InvalidSquareError(InvalidRequestError):
    """Coordinates outside of the 8x8 board."""


# --- SESSION ERRORS ---
class RepositoryError(GameError):
    code = "repository_error"


class SessionNotFoundError(RepositoryError):
    """No such session, or the connection is not bound to one of its colors."""

    code = "session_not_found"


class SessionFullError(GameError):
    code = "session_full"


# --- TURN ERRORS ---
class GameStateError(GameError):
    """The session is not accepting this intent in its current status."""

    code = "not_active"


class NotYourTurnError(GameError):
    code = "wrong_turn"


# --- RULE VIOLATIONS ---
class IllegalMoveError(GameError):
    """Move rejected by the rules engine. `reason` is human readable."""

    code = "illegal_move"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


# --- INVARIANT BREACH ---
class InternalGameError(GameError):
    """Something inside a single session broke. Only that session is affected."""

    code = "internal_error"
