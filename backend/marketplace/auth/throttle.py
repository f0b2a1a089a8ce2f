"""
Login throttle engine shared by every account kind.

One ``authenticate`` call walks START -> LOOKUP -> (LOCKED_OUT | VERIFY) ->
(ACCEPT | REJECT):

* the account is looked up first, and a dummy hash stands in when it does not
  exist, so "unknown email" and "wrong password" cost the same;
* an email with ``max_attempts`` failures inside the lockout window is refused
  with ``TooManyAttempts`` before any password verification and without
  touching the ledger;
* once the window has elapsed the counter is reset and the same call goes on
  to verify the password;
* the verifier runs exactly once on every call that is not locked out;
* success resets the counter and issues a token, any other outcome charges
  one attempt.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol, Union

from marketplace.db import utcnow
from marketplace.errors import TooManyAttempts
from marketplace.security.logger import auth_logger as logger

MAX_ATTEMPTS = 5
LOCKOUT = timedelta(minutes=30)


class Account(Protocol):
    id: int
    name: str
    email: str
    password_hash: str


class CredentialStore(Protocol):
    def find_by_email(self, email: str) -> Optional[Account]: ...


class Ledger(Protocol):
    def get_attempt_count(self, email: str) -> int: ...

    def get_last_attempt_time(self, email: str) -> datetime: ...

    def record_attempt(self, email: str, count: int, timestamp: datetime) -> None: ...

    def record_failure(self, email: str, timestamp: datetime) -> int: ...


@dataclass(frozen=True)
class AuthSuccess:
    email: str
    name: str
    account_id: int
    token: str


@dataclass(frozen=True)
class AuthFailure:
    attempts_so_far: int


AuthResult = Union[AuthSuccess, AuthFailure]


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class LoginThrottle:
    def __init__(
        self,
        accounts: CredentialStore,
        ledger: Ledger,
        verify_password: Callable[[str, str], bool],
        issue_token: Callable[[str, int], str],
        *,
        dummy_hash: str,
        max_attempts: int = MAX_ATTEMPTS,
        lockout: timedelta = LOCKOUT,
        clock: Optional[Callable[[], datetime]] = None,
        label: str = "account",
    ) -> None:
        self._accounts = accounts
        self._ledger = ledger
        self._verify = verify_password
        self._issue_token = issue_token
        self._dummy_hash = dummy_hash
        self.max_attempts = max_attempts
        self.lockout = lockout
        self._clock = clock
        self.label = label

    def _now(self) -> datetime:
        return (self._clock or utcnow)()

    def authenticate(self, email: str, password: str) -> AuthResult:
        email = normalize_email(email)

        account = self._accounts.find_by_email(email)
        account_found = account is not None
        stored_hash = account.password_hash if account_found else self._dummy_hash

        attempts = self._ledger.get_attempt_count(email)
        last_attempt_at = self._ledger.get_last_attempt_time(email)
        lockout_deadline = last_attempt_at + self.lockout
        now = self._now()

        if attempts >= self.max_attempts:
            if now < lockout_deadline:
                retry_after = max(math.ceil((lockout_deadline - now).total_seconds()), 1)
                logger.warning(
                    f"Locked out {self.label} login for {email} attempts={attempts} retry_after={retry_after}s"
                )
                raise TooManyAttempts(retry_after)
            logger.info(f"Lockout expired for {self.label} {email}; attempts reset")
            attempts = 0
            self._ledger.record_attempt(email, 0, now)

        verified = self._verify(password, stored_hash)

        if account_found and verified:
            self._ledger.record_attempt(email, 0, now)
            token = self._issue_token(account.email, account.id)
            logger.info(f"Successful {self.label} login for {email}")
            return AuthSuccess(email=account.email, name=account.name, account_id=account.id, token=token)

        failed = self._ledger.record_failure(email, now)
        logger.warning(f"Failed {self.label} login for {email} attempts={failed} Password:[REDACTED]")
        return AuthFailure(attempts_so_far=failed)


__all__ = [
    "AuthFailure",
    "AuthResult",
    "AuthSuccess",
    "LOCKOUT",
    "LoginThrottle",
    "MAX_ATTEMPTS",
    "normalize_email",
]
