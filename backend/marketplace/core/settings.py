from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Optional

from pydantic import BaseModel, Field

DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


class Settings(BaseModel):
    database_url: str = Field(default="sqlite:///./marketplace.db")
    jwt_secret: str = Field(default="your-secret-key")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60)
    login_fail_limit: int = Field(default=5)
    login_lockout_seconds: int = Field(default=30 * 60)
    login_rate_limit: str = Field(default="10/minute")
    enable_rate_limit: bool = Field(default=True)
    allowed_origins: List[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))
    auth_log_file: str = Field(default="auth.log")


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name, default)
    if value == "":
        return default
    return value


def _origins(raw: Optional[str]) -> List[str]:
    """
    Optionally override via:
      ALLOWED_ORIGINS="https://shop.example.com"
      (comma-separated list if multiple)
    """
    origins = [o.strip() for o in (raw or "").split(",") if o.strip()]
    return origins or list(DEFAULT_ALLOWED_ORIGINS)


def _load_settings() -> Settings:
    env = _env
    return Settings(
        database_url=env("DATABASE_URL", "sqlite:///./marketplace.db"),
        jwt_secret=env("JWT_SECRET", "your-secret-key"),
        jwt_algorithm=env("JWT_ALGORITHM", "HS256"),
        access_token_expire_minutes=int(env("ACCESS_TOKEN_EXPIRE_MINUTES", "60")),
        login_fail_limit=int(env("LOGIN_FAIL_LIMIT", "5")),
        login_lockout_seconds=int(env("LOGIN_LOCKOUT_SECONDS", str(30 * 60))),
        login_rate_limit=env("LOGIN_RATE_LIMIT", "10/minute"),
        enable_rate_limit=env("ENABLE_RATE_LIMIT", "1") == "1",
        allowed_origins=_origins(env("ALLOWED_ORIGINS")),
        auth_log_file=env("AUTH_LOG_FILE", "auth.log"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return _load_settings()


def reload_settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()


__all__ = ["DEFAULT_ALLOWED_ORIGINS", "Settings", "get_settings", "reload_settings"]
