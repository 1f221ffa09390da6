"""
Audit log storage. SQLite unless SIGN_DATABASE_URL points elsewhere.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sign_server.config import DATABASE_URL
from sign_server.models import Base


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {}
    # FastAPI runs sync dependencies in a threadpool
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if url.startswith("sqlite:///:memory:"):
        # One shared connection, otherwise every session sees an empty database
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create the audit table if missing."""
    Base.metadata.create_all(bind=engine)


def get_db():
    """Dependency: yield a DB session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
