from __future__ import annotations

import subprocess
import sys
from pathlib import Path

from marketplace.auth.kinds import AccountKind, AccountStore
from marketplace.db import Database
from marketplace.security.passwords import verify_password

HERE = Path(__file__).parent
ROOT = HERE.parent
SCRIPTS = ROOT / "scripts"


def _seed(db_url: str, kind: str, *extra: str) -> int:
    return subprocess.call(
        [sys.executable, str(SCRIPTS / "seed_account.py"), kind, "--database-url", db_url, *extra]
    )


def test_seed_default_seller_is_idempotent(tmp_path: Path) -> None:
    db_url = f"sqlite:///{tmp_path / 'seed.db'}"

    assert _seed(db_url, "seller", "--password", "Seed#pass1") == 0
    # Second run refuses to duplicate the account.
    assert _seed(db_url, "seller") == 1

    database = Database(db_url)
    session = database.session()
    try:
        seller = AccountStore(session, AccountKind.SELLER.model).find_by_email("admin@example.com")
        assert seller is not None
        assert seller.name == "Administrator"
        assert verify_password("Seed#pass1", seller.password_hash)
        assert AccountStore(session, AccountKind.CUSTOMER.model).find_by_email("admin@example.com") is None
    finally:
        session.close()
        database.dispose()


def test_seed_rejects_an_invalid_email(tmp_path: Path) -> None:
    db_url = f"sqlite:///{tmp_path / 'seed.db'}"

    assert _seed(db_url, "user", "--email", "admin@shop.local") == 2
    assert _seed(db_url, "user", "--email", "not-an-email") == 2
    # Nothing was written, not even the schema.
    assert not (tmp_path / "seed.db").exists()
