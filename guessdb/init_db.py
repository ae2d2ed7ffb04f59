from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine, SQLModel
from . import models  # noqa: F401  registers the tables on SQLModel.metadata
from .errors import StorageUnavailable
from .logging_utils import get_logger

logger = get_logger("guessdb.init_db")


def database_url(path: str) -> str:
    if "://" in path:
        return path
    return f"sqlite:///{path}"


def _enable_foreign_keys(dbapi_connection, connection_record):
    # SQLite ships with foreign key enforcement off, per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(path: str) -> Engine:
    """Build an engine for the storage file at `path`.

    `:memory:` gets a single shared connection so every session sees the
    same database.
    """
    url = database_url(path)
    if path == ":memory:":
        engine = create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    else:
        engine = create_engine(url, echo=False, connect_args={"check_same_thread": False})
    event.listen(engine, "connect", _enable_foreign_keys)
    return engine


def ensure_schema(engine: Engine) -> None:
    """Create the account, game and guess tables if they are missing."""
    try:
        SQLModel.metadata.create_all(engine)
    except SQLAlchemyError as e:
        logger.error("schema_failed", extra={"path": str(engine.url), "error": str(e)})
        raise StorageUnavailable(str(engine.url), str(e)) from e
    logger.info("schema_ensured", extra={"path": str(engine.url)})


def init_db(path: str = "guess.db") -> Engine:
    engine = create_db_engine(path)
    ensure_schema(engine)
    return engine


if __name__ == '__main__':
    from .config import Settings
    from .logging_utils import setup_logging

    settings = Settings.from_env()
    setup_logging(settings.log_level)
    init_db(settings.db_filename).dispose()
