"""Runtime configuration, read from environment variables at start-up."""

import os
from typing import Self

from pydantic import BaseModel, Field

ENV_PREFIX = "CHESS_"


class Settings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    log_level: str = "INFO"
    # 4 bytes = 32 bits of entropy, the lower bound for unguessable session ids
    session_id_bytes: int = Field(default=4, ge=4, le=32)
    # forbid castling out of / through check
    strict_castling: bool = True

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Self:
        """Build settings from `CHESS_*` variables. Unset variables keep their defaults."""
        environ = dict(os.environ) if environ is None else environ
        values = {
            name: environ[f"{ENV_PREFIX}{name.upper()}"]
            for name in cls.model_fields
            if f"{ENV_PREFIX}{name.upper()}" in environ
        }
        return cls.model_validate(values)
