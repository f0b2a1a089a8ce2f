from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.db import EPOCH, store_errors
from marketplace.db_models import LoginAttempt


class AttemptLedger:
    """Persistent failed-login counter for one account kind.

    Records are created lazily on the first write and never deleted; a
    successful login resets the counter to zero instead.
    """

    def __init__(self, session: Session, kind: str) -> None:
        self._session = session
        self.kind = kind

    def _row(self, email: str) -> Optional[LoginAttempt]:
        stmt = select(LoginAttempt).where(LoginAttempt.kind == self.kind, LoginAttempt.email == email)
        return self._session.execute(stmt).scalars().first()

    def get_attempt_count(self, email: str) -> int:
        with store_errors(self._session, "attempt ledger"):
            row = self._row(email)
        return row.attempt_count if row else 0

    def get_last_attempt_time(self, email: str) -> datetime:
        with store_errors(self._session, "attempt ledger"):
            row = self._row(email)
        return row.last_attempt_at if row else EPOCH

    def record_attempt(self, email: str, count: int, timestamp: datetime) -> None:
        with store_errors(self._session, "attempt ledger"):
            row = self._row(email)
            if row is None:
                row = LoginAttempt(kind=self.kind, email=email)
                self._session.add(row)
            row.attempt_count = count
            row.last_attempt_at = timestamp
            try:
                self._session.commit()
            except IntegrityError:
                # Lost a create race; the row exists now.
                self._session.rollback()
                self._update(email, count, timestamp)

    def record_failure(self, email: str, timestamp: datetime) -> int:
        """Atomically add one failed attempt and return the new count."""
        with store_errors(self._session, "attempt ledger"):
            stmt = (
                update(LoginAttempt)
                .where(LoginAttempt.kind == self.kind, LoginAttempt.email == email)
                .values(attempt_count=LoginAttempt.attempt_count + 1, last_attempt_at=timestamp)
                .execution_options(synchronize_session=False)
            )
            if self._session.execute(stmt).rowcount == 0:
                self._session.add(
                    LoginAttempt(kind=self.kind, email=email, attempt_count=1, last_attempt_at=timestamp)
                )
                try:
                    self._session.flush()
                except IntegrityError:
                    self._session.rollback()
                    self._session.execute(stmt)
            count = self._session.execute(
                select(LoginAttempt.attempt_count).where(
                    LoginAttempt.kind == self.kind, LoginAttempt.email == email
                )
            ).scalar_one()
            self._session.commit()
        return count

    def _update(self, email: str, count: int, timestamp: datetime) -> None:
        self._session.execute(
            update(LoginAttempt)
            .where(LoginAttempt.kind == self.kind, LoginAttempt.email == email)
            .values(attempt_count=count, last_attempt_at=timestamp)
            .execution_options(synchronize_session=False)
        )
        self._session.commit()


__all__ = ["AttemptLedger"]
