"""SSH証明書の種別に関する定義"""
from __future__ import annotations

from enum import Enum

from .exceptions import SSHCAValidationError


class CertificateType(str, Enum):
    """SSH証明書の種別"""

    USER = "user"
    HOST = "host"

    @classmethod
    def from_str(cls, value: str | None) -> "CertificateType":
        """文字列から種別を解決"""

        if value is None or not str(value).strip():
            return cls.USER
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise SSHCAValidationError(f"未知のcert_typeです: {value}") from exc
