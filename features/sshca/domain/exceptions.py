"""SSH CA機能で利用する例外定義"""
from __future__ import annotations


class SSHCAError(Exception):
    """SSH CA関連の基本例外"""


class SSHCAValidationError(SSHCAError):
    """リクエスト内容がロールのポリシーに違反している場合の例外"""


class SSHCANotFoundError(SSHCAError):
    """対象が存在しない場合の基本例外"""


class RoleNotFoundError(SSHCANotFoundError):
    """ロールが存在しない場合の例外"""


class CertificateNotFoundError(SSHCANotFoundError):
    """シリアル番号に対応する証明書が存在しない場合の例外"""


class CANotConfiguredError(SSHCANotFoundError):
    """CA鍵が未設定の場合の例外"""


class SSHCAStorageError(SSHCAError):
    """ストレージの読み書きに失敗した場合の例外"""


class RecordDecodeError(SSHCAError):
    """保存済みレコードをデコードできない場合の例外"""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key


class CRLBuildError(SSHCAError):
    """CRLの再構築に失敗した場合の例外"""


class CertificateSigningError(SSHCAError):
    """証明書署名時の例外"""


class SerialNumberExhaustedError(CertificateSigningError):
    """一意なシリアル番号を払い出せなかった場合の例外"""


class SSHCAConfigurationError(SSHCAError):
    """アプリケーション設定が不正な場合の例外"""


__all__ = [
    "CANotConfiguredError",
    "CRLBuildError",
    "CertificateNotFoundError",
    "CertificateSigningError",
    "RecordDecodeError",
    "RoleNotFoundError",
    "SSHCAConfigurationError",
    "SSHCAError",
    "SSHCANotFoundError",
    "SSHCAStorageError",
    "SSHCAValidationError",
    "SerialNumberExhaustedError",
]
