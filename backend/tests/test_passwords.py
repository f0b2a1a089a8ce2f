import pytest

from marketplace.security.passwords import dummy_password_hash, hash_password, verify_password


def test_hash_and_verify():
    stored = hash_password("S3cret!pw")

    assert stored.startswith("$argon2id$")
    assert verify_password("S3cret!pw", stored)
    assert not verify_password("wrong", stored)


def test_pepper_changes_the_hash_input(monkeypatch):
    monkeypatch.setenv("PASSWORD_PEPPER", "pepper-one")
    stored = hash_password("S3cret!pw")
    assert verify_password("S3cret!pw", stored)

    monkeypatch.setenv("PASSWORD_PEPPER", "pepper-two")
    assert not verify_password("S3cret!pw", stored)


def test_malformed_hash_is_a_mismatch():
    assert verify_password("anything", "not-a-hash") is False
    assert verify_password("", hash_password("x")) is False


def test_empty_password_still_runs_a_verification(monkeypatch):
    calls = []

    class RecordingArgon:
        def verify(self, secret, hash):
            calls.append((secret, hash))
            return False

    monkeypatch.delenv("PASSWORD_PEPPER", raising=False)
    monkeypatch.setattr("marketplace.security.passwords._argon", RecordingArgon())

    assert verify_password("", "$argon2id$stored") is False
    assert verify_password(None, "") is False
    assert calls == [("", "$argon2id$stored"), ("", "")]


def test_empty_password_cannot_be_hashed():
    with pytest.raises(ValueError):
        hash_password("")


def test_dummy_hash_is_stable_and_real():
    assert dummy_password_hash() == dummy_password_hash()
    assert dummy_password_hash().startswith("$argon2id$")
    assert not verify_password("guess", dummy_password_hash())
