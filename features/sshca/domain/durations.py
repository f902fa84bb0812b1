"""期間文字列の解析と正規化

ロールのTTLやtidyのsafety_bufferは ``"2h"`` や ``"1h30m"`` のような
期間文字列で指定される。保存時は ``"2h0m0s"`` 形式の正規化文字列に書き換える。
"""
from __future__ import annotations

import re
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from .exceptions import SSHCAValidationError

# 単位ごとのマイクロ秒換算
_UNIT_MICROSECONDS: dict[str, Decimal] = {
    "ns": Decimal("0.001"),
    "us": Decimal(1),
    "µs": Decimal(1),
    "μs": Decimal(1),
    "ms": Decimal(1_000),
    "s": Decimal(1_000_000),
    "m": Decimal(60_000_000),
    "h": Decimal(3_600_000_000),
}

_COMPONENT_PATTERN = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_SECONDS_PATTERN = re.compile(r"^\d+$")

_MICROS_PER_SECOND = 1_000_000
_MICROS_PER_MINUTE = 60 * _MICROS_PER_SECOND
_MICROS_PER_HOUR = 60 * _MICROS_PER_MINUTE


def parse_duration(value: str | int | float | timedelta) -> timedelta:
    """期間指定を ``timedelta`` に変換する

    文字列は ``"90s"``, ``"1h30m"``, ``"1.5h"`` のような単位付き表記か、
    秒数のみの数字列を受け付ける。数値は秒として扱う。
    """

    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise SSHCAValidationError(f"期間の形式が不正です: {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)

    text = str(value).strip()
    if not text:
        raise SSHCAValidationError("期間が指定されていません")
    if _SECONDS_PATTERN.fullmatch(text):
        return timedelta(seconds=int(text))

    sign = 1
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise SSHCAValidationError(f"期間の形式が不正です: {value!r}")

    total = Decimal(0)
    position = 0
    while position < len(text):
        match = _COMPONENT_PATTERN.match(text, position)
        if match is None:
            raise SSHCAValidationError(f"期間の形式が不正です: {value!r}")
        try:
            amount = Decimal(match.group(1))
        except InvalidOperation as exc:  # pragma: no cover - 正規表現で弾かれる
            raise SSHCAValidationError(f"期間の形式が不正です: {value!r}") from exc
        total += amount * _UNIT_MICROSECONDS[match.group(2)]
        position = match.end()

    return timedelta(microseconds=int(total) * sign)


def format_duration(value: timedelta) -> str:
    """``timedelta`` を ``"2h0m0s"`` 形式の正規化文字列にする"""

    micros = (value.days * 86_400 + value.seconds) * _MICROS_PER_SECOND + value.microseconds
    if micros == 0:
        return "0s"

    sign = "-" if micros < 0 else ""
    micros = abs(micros)

    if micros < _MICROS_PER_SECOND:
        if micros < 1_000:
            return f"{sign}{micros}µs"
        return f"{sign}{_with_fraction(micros, 1_000)}ms"

    hours, remainder = divmod(micros, _MICROS_PER_HOUR)
    minutes, remainder = divmod(remainder, _MICROS_PER_MINUTE)
    text = f"{_with_fraction(remainder, _MICROS_PER_SECOND)}s"
    if hours or minutes:
        text = f"{minutes}m{text}"
    if hours:
        text = f"{hours}h{text}"
    return sign + text


def _with_fraction(value: int, unit: int) -> str:
    whole, fraction = divmod(value, unit)
    if not fraction:
        return str(whole)
    digits = len(str(unit)) - 1
    return f"{whole}.{fraction:0{digits}d}".rstrip("0")


__all__ = ["format_duration", "parse_duration"]
