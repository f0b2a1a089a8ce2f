from __future__ import annotations


class TooManyAttempts(Exception):
    """Raised when an email is inside its lockout window."""

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(f"Too many failed login attempts. Retry after {retry_after}s")


class StoreUnavailable(Exception):
    """A credential store or attempt ledger call failed at the storage layer."""


class InvalidToken(Exception):
    """Token is malformed, expired, badly signed or issued for another account kind."""


__all__ = ["InvalidToken", "StoreUnavailable", "TooManyAttempts"]
