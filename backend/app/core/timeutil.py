"""
PEACE - Time Utilities
日時の UTC 正規化と RFC 3339 / YYYY-MM-DD 形式の変換

日付計算はすべて UTC で行う。
"""
import re
from datetime import date, datetime, timezone

DATE_FORMAT = "%Y-%m-%d"

# 秒の小数部（桁数は任意）
_FRACTION = re.compile(r"([Tt ]\d{2}:\d{2}:\d{2})\.(\d+)")


def utc_now() -> datetime:
    """現在のUTC時刻を取得"""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """naive な datetime は UTC とみなし、aware なものは UTC に変換する"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_time(value: str) -> datetime:
    """
    ISO 8601 / RFC 3339 文字列を UTC の datetime に変換

    例: "2025-08-23T17:00:00.000Z", "2025-08-23T17:00:00+09:00", "2025-08-23"
    """
    text = value.strip()
    if not text:
        raise ValueError("empty time value")
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat が受け付けるマイクロ秒（6桁）にそろえる
    text = _FRACTION.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text)
    return ensure_utc(datetime.fromisoformat(text))


def format_time(value: datetime) -> str:
    """RFC 3339（ミリ秒精度, Z 付き）で出力"""
    return ensure_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_utc_date(value: datetime) -> date:
    return ensure_utc(value).date()


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def parse_date(value: str) -> date:
    return datetime.strptime(value, DATE_FORMAT).date()
