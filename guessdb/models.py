from typing import List, Optional
from sqlmodel import SQLModel, Field
from datetime import datetime


class Account(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(unique=True, index=True)
    password_hash: str


class Game(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    secret: int
    completed: bool = False
    completed_at: Optional[datetime] = None
    account_id: int = Field(foreign_key="account.id", ondelete="CASCADE", index=True)


class Guess(SQLModel, table=True):
    # surrogate key; also orders guesses that share a timestamp
    id: Optional[int] = Field(default=None, primary_key=True)
    game_id: int = Field(foreign_key="game.id", ondelete="CASCADE", index=True)
    value: int
    time: int  # epoch milliseconds


# Plain records handed to callers; never carry the password hash.

class AccountPublic(SQLModel):
    id: int
    username: str


class GamePublic(SQLModel):
    id: int
    secret: int
    completed: bool = False
    completed_at: Optional[datetime] = None
    account_id: int


class GuessPublic(SQLModel):
    game_id: int
    value: int
    time: int


class GameRecord(SQLModel):
    """A game joined with its owner's username and its guesses in time order."""
    id: int
    secret: int
    completed: bool
    completed_at: Optional[datetime] = None
    username: str
    guesses: List[int] = Field(default_factory=list)


class NewGame(SQLModel):
    """A finished round as handed to record_game."""
    secret: int
    account_id: int
    guesses: List[int] = Field(default_factory=list)
