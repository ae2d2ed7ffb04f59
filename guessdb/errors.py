"""Errors raised by the guess store. Nothing here is retried internally."""


class GuessDbError(Exception):
    """Base class for store errors."""


class DuplicateUsername(GuessDbError):
    def __init__(self, username: str):
        super().__init__(f"username already taken: {username!r}")
        self.username = username


class NotFound(GuessDbError):
    def __init__(self, kind: str, key):
        super().__init__(f"{kind} not found: {key!r}")
        self.kind = kind
        self.key = key


class HashingFailure(GuessDbError):
    """The password hashing primitive failed or ran past its time bound."""


class StorageUnavailable(GuessDbError):
    def __init__(self, path: str, reason: str = ""):
        msg = f"storage unavailable: {path}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)
        self.path = path
