from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from marketplace.errors import StoreUnavailable

# Timestamps are stored as naive UTC; SQLite drops tzinfo on the way back anyway.
EPOCH = datetime(1970, 1, 1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class Database:
    """Owns the engine and session factory for one application instance."""

    def __init__(self, url: str) -> None:
        connect_args = {}
        if url.startswith("sqlite"):
            # check_same_thread=False is required for SQLite when using threads (Uvicorn workers)
            connect_args["check_same_thread"] = False
        self.url = url
        self.engine = create_engine(url, connect_args=connect_args)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_all(self) -> None:
        # Import models so they register on Base.metadata.
        from marketplace import db_models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def session(self) -> Session:
        return self.SessionLocal()

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def store_errors(session: Session, what: str) -> Iterator[None]:
    """Roll back and re-raise storage failures as StoreUnavailable."""
    try:
        yield
    except SQLAlchemyError as exc:
        session.rollback()
        raise StoreUnavailable(f"{what} unavailable") from exc


__all__ = ["Base", "Database", "EPOCH", "get_db", "store_errors", "utcnow"]
