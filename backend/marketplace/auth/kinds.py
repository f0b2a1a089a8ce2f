from __future__ import annotations

import re
from datetime import timedelta
from enum import Enum
from functools import partial
from typing import Dict, List, Optional, Tuple, Type

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from marketplace.auth.throttle import LoginThrottle, normalize_email
from marketplace.core.settings import Settings
from marketplace.db import store_errors
from marketplace.db_models import AccountMixin, Customer, Seller, User
from marketplace.security.ledger import AttemptLedger
from marketplace.security.passwords import verify_password
from marketplace.security.tokens import TokenIssuer


class AccountKind(str, Enum):
    USER = "user"
    CUSTOMER = "customer"
    SELLER = "seller"

    @property
    def model(self) -> Type[AccountMixin]:
        return _MODELS[self]

    @property
    def id_field(self) -> str:
        return f"{self.value}_id"


_MODELS: Dict[AccountKind, Type[AccountMixin]] = {
    AccountKind.USER: User,
    AccountKind.CUSTOMER: Customer,
    AccountKind.SELLER: Seller,
}

_LIKE_SPECIALS = re.compile(r"[\\%_]")


class AccountStore:
    """Credential store for one account kind."""

    def __init__(self, session: Session, model: Type[AccountMixin]) -> None:
        self._session = session
        self._model = model

    def find_by_email(self, email: str) -> Optional[AccountMixin]:
        with store_errors(self._session, f"{self._model.__tablename__} store"):
            stmt = select(self._model).where(self._model.email == normalize_email(email))
            return self._session.execute(stmt).scalars().first()

    def get(self, account_id: int) -> Optional[AccountMixin]:
        with store_errors(self._session, f"{self._model.__tablename__} store"):
            return self._session.get(self._model, account_id)

    def page(
        self,
        offset: int,
        limit: int,
        search: Optional[Tuple[str, str]] = None,
        sort: Tuple[str, bool] = ("email", False),
    ) -> Tuple[int, List[AccountMixin]]:
        """Return ``(total, rows)`` for one page of accounts.

        ``search`` is a ``(column, key)`` pair matched case-insensitively as a
        substring; ``sort`` is ``(column, descending)``. Columns are limited to
        ``name`` and ``email``.
        """
        stmt = select(self._model)
        if search is not None:
            column, key = search
            pattern = "%" + _LIKE_SPECIALS.sub(r"\\\g<0>", key) + "%"
            stmt = stmt.where(getattr(self._model, column).ilike(pattern, escape="\\"))

        column, descending = sort
        order = getattr(self._model, column)
        with store_errors(self._session, f"{self._model.__tablename__} store"):
            total = self._session.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
            rows = self._session.execute(
                stmt.order_by(order.desc() if descending else order.asc(), self._model.id)
                .offset(offset)
                .limit(limit)
            ).scalars().all()
        return total, list(rows)


def build_login_throttle(
    kind: AccountKind,
    session: Session,
    settings: Settings,
    tokens: TokenIssuer,
    dummy_hash: str,
) -> LoginThrottle:
    return LoginThrottle(
        accounts=AccountStore(session, kind.model),
        ledger=AttemptLedger(session, kind.value),
        verify_password=verify_password,
        issue_token=partial(tokens.issue, kind=kind.value),
        dummy_hash=dummy_hash,
        max_attempts=settings.login_fail_limit,
        lockout=timedelta(seconds=settings.login_lockout_seconds),
        label=kind.value,
    )


__all__ = ["AccountKind", "AccountStore", "build_login_throttle"]
