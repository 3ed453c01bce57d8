"""Tests for password hashing, tokens and API key comparison."""

import pytest

from habitflow.core.security import (
    check_api_key,
    hash_password,
    hash_password_async,
    new_session_token,
    password_context,
    verify_password,
    verify_password_async,
)


class TestPasswords:
    def test_hash_and_verify(self):
        encoded = hash_password("correct horse")
        assert encoded.startswith("$pbkdf2-sha256$1000$")
        assert verify_password("correct horse", encoded)
        assert not verify_password("wrong", encoded)

    def test_salts_differ(self):
        assert hash_password("pw") != hash_password("pw")

    def test_other_round_counts_still_verify(self):
        encoded = hash_password("pw", rounds=2000)
        assert encoded.startswith("$pbkdf2-sha256$2000$")
        assert verify_password("pw", encoded)

    def test_malformed_hash(self):
        assert not verify_password("pw", "not-a-hash")
        assert not verify_password("pw", "md5$1$salt$digest")

    def test_broken_settings_are_not_hidden(self, monkeypatch):
        def broken_settings():
            raise ValueError("PASSWORD_HASH_ITERATIONS is not an integer")

        monkeypatch.setattr("habitflow.core.security.get_settings", broken_settings)
        password_context.cache_clear()
        try:
            with pytest.raises(ValueError):
                hash_password("pw")
            with pytest.raises(ValueError):
                verify_password("pw", "not-a-hash")
        finally:
            password_context.cache_clear()

    @pytest.mark.asyncio
    async def test_async_helpers(self):
        encoded = await hash_password_async("pw")
        assert await verify_password_async("pw", encoded)
        assert not await verify_password_async("nope", encoded)


def test_session_tokens_are_unique():
    tokens = {new_session_token() for _ in range(50)}
    assert len(tokens) == 50


class TestApiKey:
    def test_disabled_when_not_configured(self):
        assert check_api_key(None, "")

    def test_match(self):
        assert check_api_key("k", "k")
        assert not check_api_key("x", "k")
        assert not check_api_key(None, "k")
