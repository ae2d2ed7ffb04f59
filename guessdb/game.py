import random
from typing import List, Optional

from .models import NewGame

LOW = 1
HIGH = 10


class Round:
    """One guessing round, kept in memory until it is won and recorded."""

    def __init__(self, account_id: int, secret: Optional[int] = None, low: int = LOW, high: int = HIGH, rng: Optional[random.Random] = None):
        if low > high:
            raise ValueError(f"empty range [{low}, {high}]")
        rng = rng or random.Random()
        self.account_id = account_id
        self.low = low
        self.high = high
        self.secret = rng.randint(low, high) if secret is None else secret
        self.guesses: List[int] = []

    @property
    def complete(self) -> bool:
        return bool(self.guesses) and self.guesses[-1] == self.secret

    def guess(self, value: int) -> str:
        """Record a guess and say whether it is "low", "high" or "correct"."""
        if self.complete:
            raise ValueError("round already complete")
        self.guesses.append(value)
        if value < self.secret:
            return "low"
        if value > self.secret:
            return "high"
        return "correct"

    def to_new_game(self) -> NewGame:
        return NewGame(secret=self.secret, account_id=self.account_id, guesses=list(self.guesses))
