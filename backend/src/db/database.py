"""
Engine and session handling.

One engine per process, built from EVSCHED_DB_URL. PostgreSQL gets a
pre-pinged connection pool; SQLite (development and tests) shares a single
connection so that ``sqlite:///:memory:`` keeps its tables between sessions.
Foreign keys are switched on for every SQLite connection.
"""

from pathlib import Path
from typing import Generator

from dotenv import load_dotenv
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from backend.src.config.settings import get_settings
from backend.src.utils.logging_config import get_logger


load_dotenv(dotenv_path=Path(__file__).resolve().parents[3] / ".env")

logger = get_logger("db")

# Pool sizing for server databases
POOL_OPTIONS = {
    "pool_size": 10,
    "max_overflow": 5,
    "pool_pre_ping": True,
    "pool_recycle": 3600,
}


def create_db_engine(database_url: str) -> Engine:
    """Engine for ``database_url`` with backend-appropriate pooling."""
    if database_url.startswith("sqlite"):
        options = {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    else:
        options = POOL_OPTIONS
    return create_engine(database_url, future=True, **options)


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    if type(dbapi_conn).__module__.startswith("sqlite3"):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


DATABASE_URL = get_settings().database_url
engine = create_db_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, future=True)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency yielding a session that is closed after the request.

    Usage:
        @router.get("/profiles")
        def list_profiles(db: Session = Depends(get_db)):
            ...
    """
    with SessionLocal() as db:
        yield db


def check_connection(db: Session) -> bool:
    """True if the database answers ``SELECT 1``; failures are logged."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database connectivity check failed: {e}")
        return False
    return True


def init_db() -> None:
    """
    Create any missing tables from the model metadata.

    Development convenience only; deployed databases are migrated with
    Alembic.
    """
    from backend.src.models import Base
    Base.metadata.create_all(bind=engine)


def dispose_engine() -> None:
    engine.dispose()
