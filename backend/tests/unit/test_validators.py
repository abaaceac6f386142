"""
入力値バリデーション 単体テスト
"""
from __future__ import annotations

import pytest

from app.core.errors import ValidationError
from app.services.validators import (
    normalize_email,
    normalize_notes,
    validate_level,
    validate_name,
    validate_password,
    validate_status,
    validate_tag_name,
    validate_quote_content,
    validate_username,
)


class TestUserFields:
    def test_email_is_normalized(self):
        assert normalize_email("  Alice@Example.COM ") == "alice@example.com"

    @pytest.mark.parametrize("email", ["", "alice", "alice@", "alice@x", "a b@x.io", "a" * 251 + "@x.io"])
    def test_invalid_email(self, email):
        with pytest.raises(ValidationError):
            normalize_email(email)

    @pytest.mark.parametrize("username", ["ab", "a" * 51, "alice!", "al ice"])
    def test_invalid_username(self, username):
        with pytest.raises(ValidationError):
            validate_username(username)

    def test_valid_username(self):
        assert validate_username("alice_01") == "alice_01"

    @pytest.mark.parametrize(
        "password",
        ["Pass1", "password1", "PASSWORD1", "Password", "Aa1" + "x" * 70],
    )
    def test_weak_password(self, password):
        with pytest.raises(ValidationError):
            validate_password(password)

    def test_strong_password(self):
        assert validate_password("Pass1word") == "Pass1word"

    def test_password_byte_limit_counts_utf8(self):
        # 24文字 x 3バイト = 72 バイトちょうどは許可
        assert validate_password("Aa1" + "あ" * 23)
        with pytest.raises(ValidationError):
            validate_password("Aa1" + "あ" * 24)

    def test_names(self):
        assert validate_name("  Mary-Jane ", "first name") == "Mary-Jane"
        assert validate_name("O'Neil Jr.", "last name") == "O'Neil Jr."
        assert validate_name("", "first name") is None
        assert validate_name(None, "first name") is None
        with pytest.raises(ValidationError):
            validate_name("A", "first name")
        with pytest.raises(ValidationError):
            validate_name("R2D2", "first name")


class TestRecordFields:
    @pytest.mark.parametrize("level", [0, 11, -1])
    def test_level_out_of_range(self, level):
        with pytest.raises(ValidationError):
            validate_level(level, "happy level")

    def test_level_bool_rejected(self):
        with pytest.raises(ValidationError):
            validate_level(True, "happy level")

    def test_level_bounds_inclusive(self):
        assert validate_level(1, "happy level") == 1
        assert validate_level(10, "happy level") == 10

    def test_status(self):
        assert validate_status("PUBLIC") == "public"
        with pytest.raises(ValidationError):
            validate_status("friends")

    def test_empty_notes_become_none(self):
        assert normalize_notes("") is None
        assert normalize_notes("   ") is None
        assert normalize_notes(None) is None
        assert normalize_notes(" calm day ") == "calm day"


class TestQuoteFields:
    def test_quote_content_limits(self):
        assert validate_quote_content("  Be kind. ") == "Be kind."
        with pytest.raises(ValidationError):
            validate_quote_content("   ")
        with pytest.raises(ValidationError):
            validate_quote_content("x" * 1001)

    def test_tag_name(self):
        assert validate_tag_name(" self-care_2 ") == "self-care_2"
        with pytest.raises(ValidationError):
            validate_tag_name("calm!")
        with pytest.raises(ValidationError):
            validate_tag_name("x" * 101)
