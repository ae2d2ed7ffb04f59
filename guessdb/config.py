import logging
import os
from dataclasses import dataclass

from .security import DEFAULT_HASH_TIMEOUT


@dataclass
class Settings:
    """Runtime settings, read from the environment by the bootstrap code."""
    db_filename: str = "guess.db"
    hash_timeout: float = DEFAULT_HASH_TIMEOUT
    log_level: int = logging.INFO

    @classmethod
    def from_env(cls) -> "Settings":
        level_name = os.getenv("LOG_LEVEL", "INFO").upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            level = logging.INFO
        return cls(
            db_filename=os.getenv("DB_FILENAME", "guess.db"),
            hash_timeout=float(os.getenv("HASH_TIMEOUT_SECONDS", str(DEFAULT_HASH_TIMEOUT))),
            log_level=level,
        )
