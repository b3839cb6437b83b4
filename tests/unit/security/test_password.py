"""
Tests for password hashing.
"""

from notekeeper.security.password import hash_password, verify_password


class TestPasswordHashing:
    def test_hash_is_not_plaintext(self):
        hashed = hash_password("correct horse battery staple")
        assert hashed != "correct horse battery staple"
        assert hashed.startswith("$bcrypt-sha256$")

    def test_verify_round_trip(self):
        hashed = hash_password("s3cret-password")
        assert verify_password("s3cret-password", hashed) is True
        assert verify_password("wrong-password", hashed) is False

    def test_long_passwords_are_not_truncated(self):
        base = "x" * 80
        hashed = hash_password(base + "a")
        assert verify_password(base + "b", hashed) is False

    def test_same_password_gets_different_salts(self):
        assert hash_password("repeatable") != hash_password("repeatable")
