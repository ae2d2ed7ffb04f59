"""The guess database: the only object callers hold.

Constructing a :class:`GuessDatabase` creates the schema and then sweeps games
left incomplete by a previous run, before any other operation is reachable.
Account creation and authentication are coroutines because password hashing
runs on a worker thread; every store call is an ordinary blocking call.

A finished :class:`guessdb.game.Round` is handed over with
`record_game(round.to_new_game())`.
"""
from typing import List, Optional
import time

from sqlmodel import Session

from . import crud, models
from .config import Settings
from .init_db import create_db_engine, ensure_schema
from .logging_utils import get_logger
from .security import DEFAULT_HASH_TIMEOUT, hash_password_async, verify_password_async

logger = get_logger("guessdb.store")


class GuessDatabase:
    def __init__(self, path: str, hash_timeout: float = DEFAULT_HASH_TIMEOUT):
        self._engine = create_db_engine(path)
        self._hash_timeout = hash_timeout
        try:
            ensure_schema(self._engine)
            with Session(self._engine) as session:
                crud.sweep_incomplete(session)
        except BaseException:
            self._engine.dispose()
            raise

    @classmethod
    def from_settings(cls, settings: Settings) -> "GuessDatabase":
        return cls(settings.db_filename, hash_timeout=settings.hash_timeout)

    def close(self) -> None:
        self._engine.dispose()

    # Accounts

    async def create_account(self, username: str, password: str) -> models.AccountPublic:
        password_hash = await hash_password_async(password, self._hash_timeout)
        with Session(self._engine) as session:
            return crud.create_account(session, username, password_hash)

    def get_account(self, username: str) -> Optional[models.AccountPublic]:
        with Session(self._engine) as session:
            return crud.get_account(session, username)

    async def authenticate(self, username: str, password: str) -> Optional[models.AccountPublic]:
        """Return id + username when the password matches, else None.

        Unknown usernames return before any hashing happens, so they answer
        faster than a wrong password does.
        """
        with Session(self._engine) as session:
            account = crud.get_account_row(session, username)
            if account is None:
                return None
            account_id, stored_hash = account.id, account.password_hash
        start = time.perf_counter()
        ok = await verify_password_async(password, stored_hash, self._hash_timeout)
        logger.debug("password_verified", extra={"account_id": account_id, "duration_ms": int((time.perf_counter() - start) * 1000)})
        if not ok:
            logger.info("authentication_failed", extra={"account_id": account_id})
            return None
        return models.AccountPublic(id=account_id, username=username)

    # Games

    def add_game(self, secret: int, account_id: int) -> models.GamePublic:
        with Session(self._engine) as session:
            return crud.add_game(session, secret, account_id)

    def update_game(self, game: models.GamePublic) -> models.GamePublic:
        with Session(self._engine) as session:
            return crud.update_game(session, game)

    def add_guess(self, game_id: int, value: int, ts: Optional[int] = None) -> models.GuessPublic:
        with Session(self._engine) as session:
            return crud.add_guess(session, game_id, value, ts)

    def record_game(self, new_game: models.NewGame) -> models.GameRecord:
        with Session(self._engine) as session:
            return crud.record_game(session, new_game)

    def get_game(self, game_id: int) -> models.GameRecord:
        with Session(self._engine) as session:
            return crud.get_game(session, game_id)

    def get_games(self) -> List[models.GameRecord]:
        with Session(self._engine) as session:
            return crud.get_games(session)
