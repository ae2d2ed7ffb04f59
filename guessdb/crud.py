from sqlmodel import Session, select as sqlmodel_select, col
from sqlalchemy import delete as sa_delete
from sqlalchemy.exc import IntegrityError
from datetime import datetime, timezone
from typing import List, Optional
import time

from . import models
from .errors import DuplicateUsername, NotFound
from .logging_utils import get_logger

logger = get_logger("guessdb.crud")


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def sweep_incomplete(session: Session) -> int:
    """Delete every incomplete game; their guesses go with them by cascade."""
    result = session.execute(
        sa_delete(models.Game)
        .where(models.Game.completed == False)  # noqa: E712
        .execution_options(synchronize_session=False)
    )
    session.commit()
    removed = result.rowcount or 0
    logger.info("incomplete_games_swept", extra={"count": removed})
    return removed


# Accounts

def _account_public(account: models.Account) -> models.AccountPublic:
    return models.AccountPublic(id=account.id, username=account.username)


def create_account(session: Session, username: str, password_hash: str) -> models.AccountPublic:
    """Insert an account whose password was already hashed by the caller.

    The unique index on username decides duplicates, so concurrent
    registrations cannot both succeed.
    """
    account = models.Account(username=username, password_hash=password_hash)
    session.add(account)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise DuplicateUsername(username) from e
    session.refresh(account)
    logger.info("account_created", extra={"account_id": account.id})
    return _account_public(account)


def get_account_row(session: Session, username: str) -> Optional[models.Account]:
    return session.exec(
        sqlmodel_select(models.Account).where(models.Account.username == username)
    ).first()


def get_account(session: Session, username: str) -> Optional[models.AccountPublic]:
    account = get_account_row(session, username)
    if account is None:
        return None
    return _account_public(account)


# Games

def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Read naive timestamps as UTC; aware ones keep their offset."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _game_public(game: models.Game) -> models.GamePublic:
    public = models.GamePublic.model_validate(game, from_attributes=True)
    public.completed_at = as_utc(public.completed_at)
    return public


def _insert_game(session: Session, secret: int, account_id: int) -> models.Game:
    if session.get(models.Account, account_id) is None:
        raise NotFound("account", account_id)
    game = models.Game(secret=secret, completed=False, account_id=account_id)
    session.add(game)
    session.flush()
    return game


def _insert_guess(session: Session, game_id: int, value: int, ts: Optional[int] = None) -> models.Guess:
    guess = models.Guess(game_id=game_id, value=value, time=now_ms() if ts is None else ts)
    session.add(guess)
    return guess


def add_game(session: Session, secret: int, account_id: int) -> models.GamePublic:
    game = _insert_game(session, secret, account_id)
    session.commit()
    session.refresh(game)
    return _game_public(game)


def update_game(session: Session, game: models.GamePublic) -> models.GamePublic:
    """Persist completion fields of an existing game. Never inserts."""
    row = session.get(models.Game, game.id)
    if row is None:
        raise NotFound("game", game.id)
    row.completed = game.completed
    row.completed_at = as_utc(game.completed_at)
    session.add(row)
    session.commit()
    session.refresh(row)
    return _game_public(row)


def add_guess(session: Session, game_id: int, value: int, ts: Optional[int] = None) -> models.GuessPublic:
    if session.get(models.Game, game_id) is None:
        raise NotFound("game", game_id)
    guess = _insert_guess(session, game_id, value, ts)
    session.commit()
    session.refresh(guess)
    return models.GuessPublic(game_id=guess.game_id, value=guess.value, time=guess.time)


def record_game(session: Session, new_game: models.NewGame) -> models.GameRecord:
    """Insert a finished game, its completion and all its guesses in one transaction.

    Any failure rolls back every step; no partial game is left behind.
    """
    try:
        game = _insert_game(session, new_game.secret, new_game.account_id)
        game.completed = True
        game.completed_at = datetime.now(timezone.utc)
        session.add(game)
        for value in new_game.guesses:
            _insert_guess(session, game.id, value)
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error("record_game_failed", extra={"account_id": new_game.account_id, "error": str(e)})
        raise
    logger.info("game_recorded", extra={"game_id": game.id, "account_id": new_game.account_id, "count": len(new_game.guesses)})
    return get_game(session, game.id)


def _guess_values(session: Session, game_id: int) -> List[int]:
    return list(session.exec(
        sqlmodel_select(models.Guess.value)
        .where(models.Guess.game_id == game_id)
        .order_by(col(models.Guess.time), col(models.Guess.id))
    ).all())


def _game_records_stmt():
    return (
        sqlmodel_select(models.Game, models.Account.username)
        .join(models.Account, col(models.Game.account_id) == col(models.Account.id))
    )


def _to_record(session: Session, game: models.Game, username: str) -> models.GameRecord:
    return models.GameRecord(
        id=game.id,
        secret=game.secret,
        completed=game.completed,
        completed_at=as_utc(game.completed_at),
        username=username,
        guesses=_guess_values(session, game.id),
    )


def get_game(session: Session, game_id: int) -> models.GameRecord:
    row = session.exec(_game_records_stmt().where(models.Game.id == game_id)).first()
    if row is None:
        raise NotFound("game", game_id)
    game, username = row
    return _to_record(session, game, username)


def get_games(session: Session) -> List[models.GameRecord]:
    """Return every completed game with its owner and guesses, oldest first."""
    rows = session.exec(
        _game_records_stmt()
        .where(models.Game.completed == True)  # noqa: E712
        .order_by(col(models.Game.id))
    ).all()
    return [_to_record(session, game, username) for game, username in rows]
