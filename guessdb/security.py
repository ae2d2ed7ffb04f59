from functools import partial

import anyio
from passlib.context import CryptContext

from .errors import HashingFailure

# argon2 hashes are self-describing: "$argon2id$v=19$m=...,t=...,p=...$<salt>$<digest>",
# with a fresh random salt per call, so verification needs nothing but the stored string.
pwd = CryptContext(schemes=["argon2"], deprecated="auto")

DEFAULT_HASH_TIMEOUT = 10.0


def hash_password(password: str) -> str:
    """Return a salted argon2 hash of *password*."""
    try:
        return pwd.hash(password)
    except Exception as e:
        raise HashingFailure(f"hash failed: {e}") from e


def verify_password(password: str, hashed: str) -> bool:
    """Verify *password* against an argon2 *hashed* string."""
    try:
        return pwd.verify(password, hashed)
    except Exception as e:
        raise HashingFailure(f"verify failed: {e}") from e


async def _run_bounded(func, timeout: float):
    try:
        with anyio.fail_after(timeout):
            # abandon the worker on timeout; the thread finishes on its own
            return await anyio.to_thread.run_sync(func, abandon_on_cancel=True)
    except TimeoutError as e:
        raise HashingFailure(f"hashing exceeded {timeout}s") from e


async def hash_password_async(password: str, timeout: float = DEFAULT_HASH_TIMEOUT) -> str:
    return await _run_bounded(partial(hash_password, password), timeout)


async def verify_password_async(password: str, hashed: str, timeout: float = DEFAULT_HASH_TIMEOUT) -> bool:
    return await _run_bounded(partial(verify_password, password, hashed), timeout)
