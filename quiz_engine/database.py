"""Database configuration, session dependency and the submission unit of work."""

from typing import Iterator, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from quiz_engine.config import settings

_connect_args = (
    {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
)

engine = create_engine(
    settings.database_url, echo=settings.sql_echo, connect_args=_connect_args
)


def create_db_and_tables(bind: Optional[Engine] = None) -> None:
    """Create database tables based on SQLModel metadata."""
    SQLModel.metadata.create_all(bind or engine)


def get_session() -> Iterator[Session]:
    """FastAPI dependency that yields a database session."""
    with Session(engine) as session:
        yield session


def get_engine() -> Engine:
    """FastAPI dependency for callers that open their own unit of work."""
    return engine


class UnitOfWork:
    """One transaction scope over a fresh session.

    Used as a context manager; anything not committed when the block exits
    (normal return, policy denial or exception) is rolled back and the
    session is closed.
    """

    def __init__(self, bind: Engine):
        self._bind = bind
        self.session: Optional[Session] = None
        self._committed = False

    def __enter__(self) -> "UnitOfWork":
        self.session = Session(self._bind)
        self._committed = False
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if not self._committed:
                self.session.rollback()
        finally:
            self.session.close()
            self.session = None

    def commit(self) -> None:
        self.session.commit()
        self._committed = True

    def rollback(self) -> None:
        self.session.rollback()
