"""署名結果をリース付きシークレットとして扱うための定義"""
from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Protocol

from features.sshca.domain.exceptions import SSHCANotFoundError, SSHCAValidationError
from features.sshca.domain.models import RevocationInfo

if TYPE_CHECKING:
    from .revocation import RevocationStore

SECRET_TYPE = "sshca"


class Revocable(Protocol):
    """リース失効時に呼び出されるシークレット"""

    secret_type: str

    def revoke(self, internal_data: Mapping[str, Any]) -> RevocationInfo: ...


class CertificateSecret:
    """署名済み証明書のシークレット。失効するとCRLに載る"""

    secret_type = SECRET_TYPE

    def __init__(self, revocation_store: "RevocationStore") -> None:
        self._revocation_store = revocation_store

    @classmethod
    def lease(cls, serial_number: str, ttl: timedelta) -> dict[str, Any]:
        """署名レスポンスに添えるリース情報"""

        return {
            "secret_type": cls.secret_type,
            "ttl": int(ttl.total_seconds()),
            "renewable": False,
            "internal_data": {"serial_number": serial_number},
        }

    def revoke(self, internal_data: Mapping[str, Any]) -> RevocationInfo:
        serial_number = internal_data.get("serial_number") if internal_data else None
        if not isinstance(serial_number, str) or not serial_number:
            raise SSHCAValidationError("シークレットにserial_numberが含まれていません")
        return self._revocation_store.revoke(serial_number)


class SecretRegistry:
    """シークレット種別から失効処理を引くレジストリ"""

    def __init__(self) -> None:
        self._secrets: dict[str, Revocable] = {}

    def register(self, secret: Revocable) -> None:
        self._secrets[secret.secret_type] = secret

    def get(self, secret_type: str) -> Revocable:
        try:
            return self._secrets[secret_type]
        except KeyError:
            raise SSHCANotFoundError(f"未知のシークレット種別です: {secret_type}") from None

    def revoke(self, secret_type: str, internal_data: Mapping[str, Any]) -> RevocationInfo:
        return self.get(secret_type).revoke(internal_data)


__all__ = ["CertificateSecret", "Revocable", "SECRET_TYPE", "SecretRegistry"]
