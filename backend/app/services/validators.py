"""
PEACE - Input Validators
ドメイン値の検証と正規化

各関数は正規化済みの値を返し、不正な値には ValidationError を送出する。
"""
import re
from typing import Optional

from app.core.errors import ValidationError
from app.models.mood_record import MAX_LEVEL, MIN_LEVEL, RecordStatus
from app.models.quote import (
    MAX_QUOTE_AUTHOR_LENGTH,
    MAX_QUOTE_CONTENT_LENGTH,
    MAX_TAG_NAME_LENGTH,
)

MAX_EMAIL_LENGTH = 255
MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 50
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 50
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_BYTES = 72  # bcrypt の入力上限

_EMAIL_RE = re.compile(r"^[a-z0-9._%+\-]+@[a-z0-9.\-]+\.[a-z]{2,}$")
_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
_NAME_RE = re.compile(r"^(?:[^\W\d_]|[ \-'.])+$")
_TAG_NAME_RE = re.compile(r"^[A-Za-z0-9 _\-]+$")


def normalize_email(email: str) -> str:
    value = (email or "").strip().lower()
    if not value:
        raise ValidationError("email is required")
    if len(value) > MAX_EMAIL_LENGTH:
        raise ValidationError("email is too long")
    if not _EMAIL_RE.match(value):
        raise ValidationError("invalid email format")
    return value


def validate_username(username: str) -> str:
    value = (username or "").strip()
    if not value:
        raise ValidationError("username is required")
    if len(value) < MIN_USERNAME_LENGTH:
        raise ValidationError(f"username must be at least {MIN_USERNAME_LENGTH} characters")
    if len(value) > MAX_USERNAME_LENGTH:
        raise ValidationError(f"username must be at most {MAX_USERNAME_LENGTH} characters")
    if not _USERNAME_RE.match(value):
        raise ValidationError("username can only contain letters, numbers and underscores")
    return value


def validate_password(password: str) -> str:
    """
    パスワード強度の検証

    - 8文字以上、72バイト以下
    - 大文字・小文字・数字をそれぞれ1文字以上含む
    """
    if not password:
        raise ValidationError("password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")

    has_upper = any(c.isupper() for c in password)
    has_lower = any(c.islower() for c in password)
    has_digit = any(c.isdigit() for c in password)
    if not (has_upper and has_lower and has_digit):
        raise ValidationError(
            "password must contain at least one uppercase letter, one lowercase letter and one digit"
        )
    return password


def validate_name(value: Optional[str], field: str) -> Optional[str]:
    """姓・名の検証（未指定・空文字は None として扱う）"""
    if value is None:
        return None
    name = value.strip()
    if not name:
        return None
    if len(name) < MIN_NAME_LENGTH or len(name) > MAX_NAME_LENGTH:
        raise ValidationError(
            f"{field} must be between {MIN_NAME_LENGTH} and {MAX_NAME_LENGTH} characters"
        )
    if not _NAME_RE.match(name):
        raise ValidationError(
            f"{field} can only contain letters, spaces, hyphens, apostrophes and dots"
        )
    return name


def is_valid_name(value: Optional[str]) -> bool:
    try:
        return validate_name(value, "name") is not None
    except ValidationError:
        return False


def validate_level(value: int, field: str) -> int:
    # bool は int のサブクラスなので明示的に除外
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value < MIN_LEVEL or value > MAX_LEVEL:
        raise ValidationError(f"{field} must be between {MIN_LEVEL} and {MAX_LEVEL}")
    return value


def validate_status(value: Optional[str]) -> str:
    status = (value or "").strip().lower()
    if status not in {s.value for s in RecordStatus}:
        raise ValidationError("status must be either 'public' or 'private'")
    return status


def normalize_notes(value: Optional[str]) -> Optional[str]:
    """空文字のメモは未指定と同じく None で保存する"""
    if value is None:
        return None
    notes = value.strip()
    return notes or None


def validate_quote_content(value: str) -> str:
    content = (value or "").strip()
    if not content:
        raise ValidationError("quote content cannot be empty")
    if len(content) > MAX_QUOTE_CONTENT_LENGTH:
        raise ValidationError(
            f"quote content cannot exceed {MAX_QUOTE_CONTENT_LENGTH} characters"
        )
    return content


def validate_quote_author(value: str) -> str:
    author = (value or "").strip()
    if not author:
        raise ValidationError("quote author cannot be empty")
    if len(author) > MAX_QUOTE_AUTHOR_LENGTH:
        raise ValidationError(
            f"quote author cannot exceed {MAX_QUOTE_AUTHOR_LENGTH} characters"
        )
    return author


def validate_tag_name(value: str) -> str:
    name = (value or "").strip()
    if not name:
        raise ValidationError("tag name cannot be empty")
    if len(name) > MAX_TAG_NAME_LENGTH:
        raise ValidationError(f"tag name cannot exceed {MAX_TAG_NAME_LENGTH} characters")
    if not _TAG_NAME_RE.match(name):
        raise ValidationError(
            "tag name can only contain letters, numbers, spaces, hyphens and underscores"
        )
    return name
