"""
Database Setup

Creates the SQLAlchemy engine and session factory used by the recipe
store and the workstate store. The FastAPI dependency `get_db` yields a
session per request and always closes it.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from recipe_assistant.config import get_settings

settings = get_settings()

connect_args = {"check_same_thread": False} if settings.is_sqlite else {}

engine = create_engine(
    settings.database_url,
    echo=settings.database_echo,
    connect_args=connect_args,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db():
    """Create all tables that don't exist yet."""
    # Entities must be imported so they register on Base.metadata
    from recipe_assistant.models import entities  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    """Yield a database session for a single request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
