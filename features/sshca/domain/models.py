"""SSH CA機能で利用するドメインモデル"""
from __future__ import annotations

import calendar
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from core.time import format_rfc3339, parse_rfc3339

from .cert_type import CertificateType
from .durations import parse_duration
from .exceptions import SSHCAValidationError

ROLE_NAME_PATTERN = re.compile(r"^\w(?:[\w.-]*\w)?$")


@dataclass(slots=True)
class SSHRole:
    """署名リクエストを制約するロール定義

    ``ttl`` / ``max_ttl`` は書き込み時にクランプ済みの正規化文字列として保持する。
    """

    name: str
    ttl: str = ""
    max_ttl: str = ""
    allowed_critical_options: tuple[str, ...] = ()
    allowed_extensions: tuple[str, ...] = ()
    default_critical_options: dict[str, str] = field(default_factory=dict)
    default_extensions: dict[str, str] = field(default_factory=dict)
    allow_user_certificates: bool = True
    allow_host_certificates: bool = True
    allowed_valid_principals: tuple[str, ...] = ()
    allow_bare_domains: bool = False
    allow_subdomains: bool = False

    @property
    def ttl_delta(self) -> timedelta | None:
        return parse_duration(self.ttl) if self.ttl else None

    @property
    def max_ttl_delta(self) -> timedelta | None:
        return parse_duration(self.max_ttl) if self.max_ttl else None

    def allows(self, cert_type: CertificateType) -> bool:
        """証明書種別がロールで許可されているか"""

        if cert_type is CertificateType.HOST:
            return self.allow_host_certificates
        return self.allow_user_certificates

    def to_record(self) -> dict[str, Any]:
        """ストレージ保存用の辞書を返す"""

        return {
            "ttl": self.ttl,
            "max_ttl": self.max_ttl,
            "allowed_critical_options": ",".join(self.allowed_critical_options),
            "allowed_extensions": ",".join(self.allowed_extensions),
            "default_critical_options": dict(self.default_critical_options),
            "default_extensions": dict(self.default_extensions),
            "allow_user_certificates": self.allow_user_certificates,
            "allow_host_certificates": self.allow_host_certificates,
            "allowed_valid_principals": ",".join(self.allowed_valid_principals),
            "allow_bare_domains": self.allow_bare_domains,
            "allow_subdomains": self.allow_subdomains,
        }

    @classmethod
    def from_record(cls, name: str, data: dict[str, Any]) -> "SSHRole":
        return cls(
            name=name,
            ttl=str(data.get("ttl") or ""),
            max_ttl=str(data.get("max_ttl") or ""),
            allowed_critical_options=split_csv(data.get("allowed_critical_options")),
            allowed_extensions=split_csv(data.get("allowed_extensions")),
            default_critical_options=stringify_values(data.get("default_critical_options")),
            default_extensions=stringify_values(data.get("default_extensions")),
            allow_user_certificates=bool(data.get("allow_user_certificates", True)),
            allow_host_certificates=bool(data.get("allow_host_certificates", True)),
            allowed_valid_principals=split_csv(data.get("allowed_valid_principals")),
            allow_bare_domains=bool(data.get("allow_bare_domains", False)),
            allow_subdomains=bool(data.get("allow_subdomains", False)),
        )


@dataclass(slots=True)
class RevocationInfo:
    """失効時刻のレスポンス表現"""

    revocation_time: int
    revocation_time_rfc3339: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "revocation_time": self.revocation_time,
            "revocation_time_rfc3339": self.revocation_time_rfc3339,
        }


@dataclass(slots=True)
class CertificateRecord:
    """``certs/`` と ``revoked/`` に保存される証明書レコード"""

    serial_number: str
    certificate: str
    valid_before: datetime
    revocation: datetime | None = None

    @property
    def is_revoked(self) -> bool:
        return self.revocation is not None

    def expired_before(self, cutoff: datetime) -> bool:
        return self.valid_before < cutoff

    def revocation_info(self) -> RevocationInfo:
        if self.revocation is None:
            raise ValueError(f"証明書は失効していません: {self.serial_number}")
        return RevocationInfo(
            revocation_time=calendar.timegm(self.revocation.utctimetuple()),
            revocation_time_rfc3339=format_rfc3339(self.revocation),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "serial_number": self.serial_number,
            "certificate": self.certificate,
            "valid_before": format_rfc3339(self.valid_before),
            "revocation": format_rfc3339(self.revocation) if self.revocation else None,
        }

    @classmethod
    def from_record(cls, serial_number: str, data: dict[str, Any]) -> "CertificateRecord":
        """保存済み辞書から復元する

        必須項目が欠けている場合は ``KeyError`` / ``ValueError`` を送出する。
        """

        certificate = data["certificate"]
        if not isinstance(certificate, str) or not certificate.strip():
            raise ValueError("certificateが空です")
        valid_before = parse_rfc3339(data["valid_before"])
        if valid_before is None:
            raise ValueError("valid_beforeが設定されていません")
        return cls(
            serial_number=str(data.get("serial_number") or serial_number),
            certificate=certificate,
            valid_before=valid_before,
            revocation=parse_rfc3339(data.get("revocation") or ""),
        )


def split_csv(value: Any) -> tuple[str, ...]:
    """カンマ区切り文字列またはシーケンスを空要素なしのタプルにする"""

    if value is None:
        return ()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = [str(item) for item in value]
    else:
        raise SSHCAValidationError(f"リスト形式ではありません: {value!r}")
    return tuple(item.strip() for item in items if item and item.strip())


def stringify_values(value: Any) -> dict[str, str]:
    """値を文字列化したマップを返す"""

    if not value:
        return {}
    if not isinstance(value, dict):
        raise SSHCAValidationError(f"マップ形式ではありません: {value!r}")
    return {str(key): _stringify(item) for key, item in value.items()}


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


__all__ = [
    "ROLE_NAME_PATTERN",
    "CertificateRecord",
    "RevocationInfo",
    "SSHRole",
    "split_csv",
    "stringify_values",
]
