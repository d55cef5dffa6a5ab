"""
Database Engine & Session Management
SQLAlchemy setup over an embedded SQLite store with dependency injection for FastAPI.
"""
import os
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base

from idverify.config import get_settings

settings = get_settings()

if settings.DATABASE_URL.startswith("sqlite:///"):
    # Ensure data directory exists
    os.makedirs(os.path.dirname(settings.DATABASE_URL.replace("sqlite:///", "")) or ".", exist_ok=True)

_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 15} if _is_sqlite else {},
    echo=settings.DEBUG,
)


def _set_sqlite_pragmas(dbapi_connection, connection_record):
    """WAL journal for crash safety and concurrent readers alongside the single writer."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=15000")
    cursor.close()


if _is_sqlite:
    event.listen(engine, "connect", _set_sqlite_pragmas)


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency: yields a database session, auto-closes on finish."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables. Called once at application startup."""
    from idverify.models import verification as _verification_model  # noqa: F401
    from idverify.models import audit as _audit_model                # noqa: F401

    Base.metadata.create_all(bind=engine)


def dispose_db():
    """Release pooled connections. Called at application shutdown."""
    engine.dispose()
