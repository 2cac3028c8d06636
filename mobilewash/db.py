# mobilewash/db.py
import os

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.exc import SQLAlchemyError

from mobilewash import monitoring

# Default dev DB; on Vercel api/index.py sets DATABASE_URL to /tmp before import
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./mobilewash.db")


def _make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


engine = _make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def reconfigure(url: str):
    """Reconfigure the DB engine and session factory at runtime (for tests)."""
    global engine, SessionLocal
    engine = _make_engine(url)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_session():
    # Looked up at call time so reconfigure() takes effect
    return SessionLocal()


def init_db():
    # Create tables if they don't exist
    try:
        import mobilewash.models as models  # noqa: F401
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        # Surface in logs; don't crash the app at import time
        monitoring.logger.error("DB init failed", extra={"error": str(e)})
