import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from src.notep_api.config import DATABASE_URL, DB_POOL_SIZE


def build_engine(url: str = DATABASE_URL, **kwargs) -> Engine:
    """
    Create an engine for the given URL.

    SQLite needs check_same_thread=False for multithreading in FastAPI; other
    backends run at REPEATABLE READ so conditional writes are not subject to
    lost updates.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("isolation_level", "REPEATABLE READ")
        kwargs.setdefault("pool_size", DB_POOL_SIZE)
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(url, future=True, **kwargs)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = build_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = engine) -> None:
    """Create the users and notes tables if they do not exist yet."""
    from src.notep_api.models import Base

    Base.metadata.create_all(bind=bind)


def get_db():
    """
    Dependency that provides a database session and ensures proper cleanup.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
