from __future__ import annotations

import argparse
import sys
from pathlib import Path

from pydantic import EmailStr, TypeAdapter, ValidationError

if __package__ in (None, ""):
    sys.path.append(str(Path(__file__).resolve().parent.parent))

from marketplace.auth.kinds import AccountKind, AccountStore  # noqa: E402
from marketplace.auth.throttle import normalize_email  # noqa: E402
from marketplace.core.settings import get_settings  # noqa: E402
from marketplace.db import Database  # noqa: E402
from marketplace.security.passwords import hash_password  # noqa: E402

DEFAULT_NAME = "Administrator"
DEFAULT_EMAIL = "admin@example.com"
DEFAULT_PASSWORD = "Admin#123"

_EMAIL = TypeAdapter(EmailStr)


def seed_account(kind: AccountKind, name: str, email: str, password: str, database_url: str | None = None) -> int:
    try:
        email = _EMAIL.validate_python(normalize_email(email))
    except ValidationError:
        print(f"[ERR] Invalid email address: {email!r}")
        return 2

    database = Database(database_url or get_settings().database_url)
    database.create_all()
    session = database.session()
    try:
        if AccountStore(session, kind.model).find_by_email(email):
            print(f"[ERR] {kind.value.capitalize()} {email} already exists")
            return 1

        session.add(kind.model(name=name, email=email, password_hash=hash_password(password)))
        session.commit()
        print(f"[OK] Created default {kind.value} {email}")
        return 0
    finally:
        session.close()
        database.dispose()


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a default account of the given kind.")
    parser.add_argument("kind", choices=[k.value for k in AccountKind])
    parser.add_argument("--name", default=DEFAULT_NAME)
    parser.add_argument("--email", default=DEFAULT_EMAIL)
    parser.add_argument("--password", default=DEFAULT_PASSWORD)
    parser.add_argument("--database-url", default=None, help="Defaults to DATABASE_URL.")
    return parser.parse_args()


if __name__ == "__main__":
    args = _parse_args()
    raise SystemExit(seed_account(AccountKind(args.kind), args.name, args.email, args.password, args.database_url))
