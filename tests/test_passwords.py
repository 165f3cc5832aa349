import pytest

from mediscan.services.passwords import hash_password, verify_password


def test_hash_is_salted_and_verifies():
    first = hash_password("secret1")
    second = hash_password("secret1")
    assert first != second
    assert "secret1" not in first
    assert verify_password("secret1", first)
    assert verify_password("secret1", second)


def test_wrong_password_does_not_verify():
    assert not verify_password("secret2", hash_password("secret1"))


def test_malformed_digest_raises_instead_of_mismatch():
    with pytest.raises(ValueError):
        verify_password("secret1", "not-a-real-digest")
