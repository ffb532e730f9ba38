import logging
import os
from datetime import datetime, timezone
from typing import Generator

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

# Get database URL from environment variables
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./stitch.db")


def _make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


# Create SQLAlchemy engine
engine = _make_engine(DATABASE_URL)

# Create a scoped session factory
SessionLocal = scoped_session(sessionmaker(autocommit=False, autoflush=False, bind=engine))


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite drops tzinfo so every column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def reconfigure(url: str) -> None:
    """Point the engine and session factory at another database (tests, scripts)."""
    global engine, SessionLocal
    SessionLocal.remove()
    engine.dispose()
    engine = _make_engine(url)
    SessionLocal = scoped_session(sessionmaker(autocommit=False, autoflush=False, bind=engine))


def get_session_factory():
    return SessionLocal


def get_db() -> Generator:
    """Dependency for getting database session.

    Yields:
        Session: A database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Initialize the database by creating all tables."""
    # Import Base to ensure models are registered with SQLAlchemy
    from ..models.sql_models import Base

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready at %s", engine.url)
