"""Generate database session"""

from functools import lru_cache
from typing import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, scoped_session, sessionmaker

from src.core.config import get_settings
from src.db.schema import Base


@lru_cache
def get_engine() -> Engine:
    settings = get_settings()
    engine = create_engine(settings.database_url, echo=settings.database_echo)
    # Ensure all tables are created
    Base.metadata.create_all(bind=engine)
    return engine


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine())


def get_db() -> Generator[Session, None, None]:
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def thread_local_session() -> scoped_session[Session]:
    """
    Session proxy for the long-running tracker: the reconciliation thread and the threads handling
    scout submissions each get their own Session behind it.
    """
    return scoped_session(get_session_factory())
