"""
Engine, sessions and the readiness check

Use cases own their transactions (commit or roll back through
run_with_optimistic_retry); get_db only scopes a session to the request.
"""
from functools import lru_cache

import psycopg
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from hearth.config import get_settings


class Base(DeclarativeBase):
    pass


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite ignores ON DELETE CASCADE unless each connection opts in."""
    @event.listens_for(engine, "connect")
    def _foreign_keys_on(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    url = get_settings().get_sqlalchemy_url()
    engine = create_engine(url, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        enable_sqlite_foreign_keys(engine)
    return sessionmaker(bind=engine, autoflush=False)


def get_db():
    """FastAPI dependency: one session per request, always closed."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def check_db_connection() -> None:
    """
    Readiness check against PostgreSQL, bypassing the ORM pool

    Raises:
        psycopg.OperationalError: database unreachable
    """
    dsn = get_settings().DATABASE_URL.replace("postgresql+psycopg://", "postgresql://", 1)
    with psycopg.connect(dsn, connect_timeout=3) as conn:
        conn.execute("SELECT 1").fetchone()
