"""SSH CA機能で利用する共通サービス定義"""
from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from flask import current_app

from core.time import utc_now
from features.sshca.domain.durations import parse_duration
from features.sshca.domain.exceptions import SSHCAConfigurationError, SSHCAValidationError
from features.sshca.infrastructure.ca_store import CAKeyStore
from features.sshca.infrastructure.certificate_store import CertificateStore
from features.sshca.infrastructure.role_store import RoleStore
from features.sshca.infrastructure.storage import StorageBackend

from .crl import CRLBuilder
from .leases import CertificateSecret, SecretRegistry
from .revocation import RevocationStore

EXTENSION_KEY = "sshca"


@dataclass(slots=True, frozen=True)
class SSHCASettings:
    """署名やtidyで参照するシステム設定値"""

    default_lease_ttl: timedelta = timedelta(hours=768)
    max_lease_ttl: timedelta = timedelta(hours=768)
    clock_skew: timedelta = timedelta(seconds=30)
    serial_retry_limit: int = 5
    tidy_safety_buffer: timedelta = timedelta(hours=72)

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "SSHCASettings":
        """Flask設定から値を読み込む

        不正な値は :class:`SSHCAConfigurationError` とする。
        """

        defaults = cls()
        try:
            settings = cls(
                default_lease_ttl=_duration(config, "SSHCA_DEFAULT_LEASE_TTL", defaults.default_lease_ttl),
                max_lease_ttl=_duration(config, "SSHCA_MAX_LEASE_TTL", defaults.max_lease_ttl),
                clock_skew=_duration(config, "SSHCA_CLOCK_SKEW", defaults.clock_skew),
                serial_retry_limit=int(config.get("SSHCA_SERIAL_RETRY_LIMIT") or defaults.serial_retry_limit),
                tidy_safety_buffer=_duration(
                    config, "SSHCA_TIDY_SAFETY_BUFFER", defaults.tidy_safety_buffer
                ),
            )
        except (SSHCAValidationError, TypeError, ValueError) as exc:
            raise SSHCAConfigurationError(f"SSH CAの設定が不正です: {exc}") from exc

        if settings.max_lease_ttl <= timedelta(0):
            raise SSHCAConfigurationError("SSHCA_MAX_LEASE_TTLは正の値である必要があります")
        if settings.default_lease_ttl <= timedelta(0):
            raise SSHCAConfigurationError("SSHCA_DEFAULT_LEASE_TTLは正の値である必要があります")
        if settings.default_lease_ttl > settings.max_lease_ttl:
            raise SSHCAConfigurationError(
                "SSHCA_DEFAULT_LEASE_TTLはSSHCA_MAX_LEASE_TTL以下である必要があります"
            )
        if settings.clock_skew < timedelta(0):
            raise SSHCAConfigurationError("SSHCA_CLOCK_SKEWは0以上である必要があります")
        if settings.serial_retry_limit < 1:
            raise SSHCAConfigurationError("SSHCA_SERIAL_RETRY_LIMITは1以上である必要があります")
        if settings.tidy_safety_buffer <= timedelta(0):
            raise SSHCAConfigurationError("SSHCA_TIDY_SAFETY_BUFFERは正の値である必要があります")
        return settings


def _duration(config: Mapping[str, Any], key: str, default: timedelta) -> timedelta:
    value = config.get(key)
    if value is None or value == "":
        return default
    return parse_duration(value)


@dataclass(slots=True)
class SSHCAServices:
    storage: StorageBackend
    role_store: RoleStore
    certificate_store: CertificateStore
    ca_store: CAKeyStore
    revocation_store: RevocationStore
    secret_registry: SecretRegistry
    settings: SSHCASettings = field(default_factory=SSHCASettings)
    clock: Callable[[], datetime] = utc_now


def build_services(
    storage: StorageBackend,
    settings: SSHCASettings | None = None,
    *,
    clock: Callable[[], datetime] = utc_now,
) -> SSHCAServices:
    """ストレージを共有するサービス一式を組み立てる

    失効ロックはここで1つだけ生成し、RevocationStoreが所有する。
    """

    certificate_store = CertificateStore(storage)
    revocation_store = RevocationStore(
        certificate_store,
        CRLBuilder(certificate_store),
        lock=threading.Lock(),
        clock=clock,
    )
    registry = SecretRegistry()
    registry.register(CertificateSecret(revocation_store))
    return SSHCAServices(
        storage=storage,
        role_store=RoleStore(storage),
        certificate_store=certificate_store,
        ca_store=CAKeyStore(storage),
        revocation_store=revocation_store,
        secret_registry=registry,
        settings=settings or SSHCASettings(),
        clock=clock,
    )


def resolve_services() -> SSHCAServices:
    """現在のFlaskアプリに登録されたサービスを返す"""

    try:
        return current_app.extensions[EXTENSION_KEY]
    except KeyError as exc:
        raise SSHCAConfigurationError("SSH CAサービスが初期化されていません") from exc


__all__ = [
    "EXTENSION_KEY",
    "SSHCAServices",
    "SSHCASettings",
    "build_services",
    "resolve_services",
]
