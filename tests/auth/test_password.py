"""Tests for password hashing and validation."""

import pytest

from nurnexus.auth.password import (
    check_needs_rehash,
    hash_password,
    unusable_password_hash,
    validate_password,
    verify_password,
)
from nurnexus.errors import ValidationError


class TestPasswordHashing:
    def test_hash_and_verify(self):
        password = "SecureP@ss1"
        hashed = hash_password(password)
        assert verify_password(password, hashed) is True

    def test_wrong_password_rejected(self):
        hashed = hash_password("CorrectP@ss1")
        assert verify_password("WrongP@ss1", hashed) is False

    def test_hash_is_salted(self):
        assert hash_password("SecureP@ss1") != hash_password("SecureP@ss1")

    def test_argon2id_format(self):
        assert hash_password("SecureP@ss1").startswith("$argon2id$")

    def test_invalid_hash_returns_false(self):
        assert verify_password("anything", "not-a-hash") is False
        assert verify_password("anything", "") is False

    def test_fresh_hash_needs_no_rehash(self):
        assert check_needs_rehash(hash_password("SecureP@ss1")) is False

    def test_unusable_hashes_differ(self):
        assert unusable_password_hash() != unusable_password_hash()


class TestPasswordPolicy:
    def test_valid_password(self):
        assert validate_password("longenough") == "longenough"

    def test_empty_password_rejected(self):
        with pytest.raises(ValidationError, match="Please provide email and password"):
            validate_password("")

    def test_none_rejected(self):
        with pytest.raises(ValidationError):
            validate_password(None)

    def test_whitespace_only_rejected(self):
        with pytest.raises(ValidationError):
            validate_password("          ")

    def test_short_password_rejected(self):
        with pytest.raises(ValidationError, match="at least 8"):
            validate_password("Short1!")

    def test_too_long_password_rejected(self):
        with pytest.raises(ValidationError, match="must not exceed 128"):
            validate_password("a" * 129)

    def test_minimum_is_configurable(self, override_settings):
        override_settings(password_min_length=12)
        with pytest.raises(ValidationError, match="at least 12"):
            validate_password("elevenchars")
