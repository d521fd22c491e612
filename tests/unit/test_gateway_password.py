"""Unit tests for password hashing utilities."""

from src.bb_gateway.auth.password import hash_password, verify_password


def test_hash_is_not_plain():
    hashed = hash_password("Biscuit42")
    assert hashed != "Biscuit42"
    assert len(hashed) > 20


def test_verify_correct_password():
    assert verify_password("Biscuit42", hash_password("Biscuit42")) is True


def test_verify_wrong_password():
    assert verify_password("Cracker99", hash_password("Biscuit42")) is False


def test_malformed_stored_hash_is_a_mismatch():
    assert verify_password("Biscuit42", "not-a-bcrypt-hash") is False


def test_same_plain_produces_different_hashes():
    # bcrypt uses random salt each time
    assert hash_password("Biscuit42") != hash_password("Biscuit42")
