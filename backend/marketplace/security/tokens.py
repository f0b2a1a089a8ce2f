from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from marketplace.core.settings import Settings
from marketplace.errors import InvalidToken


@dataclass(frozen=True)
class TokenClaims:
    email: str
    account_id: int
    kind: Optional[str] = None


class TokenIssuer:
    """Signs and validates time-bound JWTs carrying (email, account_id)."""

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int = 60) -> None:
        self._secret = secret or "your-secret-key"
        self._algorithm = algorithm or "HS256"
        self.expire_minutes = expire_minutes

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(settings.jwt_secret, settings.jwt_algorithm, settings.access_token_expire_minutes)

    def issue(
        self,
        email: str,
        account_id: int,
        kind: Optional[str] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta if expires_delta is not None else timedelta(minutes=self.expire_minutes))
        to_encode = {"sub": email, "account_id": account_id, "iat": now, "exp": expire}
        if kind:
            to_encode["kind"] = kind
        return jwt.encode(to_encode, self._secret, algorithm=self._algorithm)

    def validate(self, token: str, kind: Optional[str] = None) -> TokenClaims:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as exc:
            raise InvalidToken("token_expired_or_invalid") from exc

        email = payload.get("sub")
        account_id = payload.get("account_id")
        token_kind = payload.get("kind")
        if not isinstance(email, str) or not isinstance(account_id, int):
            raise InvalidToken("missing_claims")
        if kind is not None and token_kind != kind:
            raise InvalidToken("wrong_account_kind")
        return TokenClaims(email=email, account_id=account_id, kind=token_kind)


__all__ = ["TokenClaims", "TokenIssuer"]
