# ticketing/db/session.py
from sqlalchemy import create_engine as sa_create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from ticketing.core.config import settings


def create_engine(url: str) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        # Request handlers run in a threadpool; writers wait on the file lock
        connect_args = {"check_same_thread": False, "timeout": 15}
    return sa_create_engine(
        url,
        echo=settings.DB_ECHO,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


engine = create_engine(settings.DATABASE_URL)

# Factory for per-request sessions.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Yield a session for the duration of one request, then close it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
