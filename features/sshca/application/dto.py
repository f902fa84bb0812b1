"""SSH CA機能のDTO"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from features.sshca.domain.cert_type import CertificateType


@dataclass(slots=True, kw_only=True)
class RoleInput:
    """ロール書き込みの入力。``ttl`` / ``max_ttl`` は空文字で未指定"""

    name: str
    ttl: str = ""
    max_ttl: str = ""
    allowed_critical_options: tuple[str, ...] = ()
    allowed_extensions: tuple[str, ...] = ()
    default_critical_options: dict[str, Any] = field(default_factory=dict)
    default_extensions: dict[str, Any] = field(default_factory=dict)
    allow_user_certificates: bool = True
    allow_host_certificates: bool = True
    allowed_valid_principals: tuple[str, ...] = ()
    allow_bare_domains: bool = False
    allow_subdomains: bool = False


@dataclass(slots=True, kw_only=True)
class SignCertificateInput:
    """署名リクエスト。``None`` の項目はロールの既定値を使う"""

    role_name: str
    public_key: str
    key_id: str | None = None
    cert_type: CertificateType = CertificateType.USER
    valid_principals: tuple[str, ...] = ()
    critical_options: dict[str, str] | None = None
    extensions: dict[str, str] | None = None
    ttl: timedelta | None = None


@dataclass(slots=True)
class SignCertificateOutput:
    serial_number: str
    signed_key: str
    key_id: str
    cert_type: CertificateType
    valid_after: datetime
    valid_before: datetime
    ttl: timedelta
    lease: dict[str, Any]


@dataclass(slots=True, kw_only=True)
class CAConfigInput:
    public_key: str
    private_key: str


@dataclass(slots=True, kw_only=True)
class TidyInput:
    tidy_cert_store: bool = False
    tidy_revocation_list: bool = False
    safety_buffer: timedelta | None = None


__all__ = [
    "CAConfigInput",
    "RoleInput",
    "SignCertificateInput",
    "SignCertificateOutput",
    "TidyInput",
]
