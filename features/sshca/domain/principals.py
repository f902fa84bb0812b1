"""プリンシパルの検証ロジック"""
from __future__ import annotations

from collections.abc import Iterable

from .cert_type import CertificateType
from .exceptions import SSHCAValidationError
from .models import SSHRole


def principal_allowed(role: SSHRole, principal: str, cert_type: CertificateType) -> bool:
    """単一のプリンシパルがロールの許可ルールに合致するか判定する"""

    allowed = role.allowed_valid_principals
    if not allowed:
        return True
    if cert_type is not CertificateType.HOST:
        return principal in allowed
    # ホスト証明書では許可リストをドメインとして扱う
    for entry in allowed:
        if role.allow_bare_domains and principal == entry:
            return True
        if role.allow_subdomains and principal.endswith("." + entry):
            return True
    return False


def validate_principals(
    role: SSHRole,
    principals: Iterable[str],
    cert_type: CertificateType,
) -> list[str]:
    """要求されたプリンシパル一覧を検証し、そのまま返す

    許可リストを持つロールでは空の指定を認めない。一つでも許可されないものが
    あれば :class:`SSHCAValidationError` を送出する。
    """

    requested = list(principals)
    if role.allowed_valid_principals and not requested:
        raise SSHCAValidationError("このロールではvalid_principalsの指定が必須です")
    for principal in requested:
        if not principal_allowed(role, principal, cert_type):
            raise SSHCAValidationError(f"許可されていないプリンシパルです: {principal}")
    return requested


__all__ = ["principal_allowed", "validate_principals"]
