"""SSH CA機能のユースケース"""
from __future__ import annotations

import calendar
import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from features.sshca.application.services import SSHCAServices, resolve_services
from features.sshca.domain.cert_type import CertificateType
from features.sshca.domain.durations import format_duration, parse_duration
from features.sshca.domain.exceptions import (
    SerialNumberExhaustedError,
    SSHCAValidationError,
)
from features.sshca.domain.models import (
    ROLE_NAME_PATTERN,
    CertificateRecord,
    RevocationInfo,
    SSHRole,
    stringify_values,
)
from features.sshca.domain.principals import validate_principals
from features.sshca.infrastructure.certificate_store import CertificateNamespace
from features.sshca.infrastructure.key_utils import (
    compute_fingerprint,
    format_serial,
    generate_serial,
    keys_match,
    load_public_key,
    load_signing_key,
    sign_certificate,
)

from .dto import (
    CAConfigInput,
    RoleInput,
    SignCertificateInput,
    SignCertificateOutput,
)
from .leases import CertificateSecret

signing_logger = logging.getLogger("sshca.signing")
role_logger = logging.getLogger("sshca.roles")

TTL_PLACEHOLDER = "(system default)"
TTL_CAPPED_PLACEHOLDER = "(system default, capped to role max)"


class WriteRoleUseCase:
    """ロールの作成・更新ユースケース

    書き込みは全項目の置き換え。TTLはシステム上限でクランプしてから保存する。
    """

    def __init__(self, services: SSHCAServices | None = None) -> None:
        self._services = services or resolve_services()

    def execute(self, payload: RoleInput) -> SSHRole:
        if not payload.name:
            raise SSHCAValidationError("ロール名は必須です")
        if not ROLE_NAME_PATTERN.fullmatch(payload.name):
            raise SSHCAValidationError(
                "ロール名には英数字・アンダースコア・ハイフン・ドットのみ使用できます"
            )

        settings = self._services.settings

        if payload.max_ttl:
            max_ttl = _parse_ttl(payload.max_ttl, "max_ttl")
        else:
            max_ttl = settings.max_lease_ttl
        if max_ttl > settings.max_lease_ttl:
            raise SSHCAValidationError("max_ttlがシステムの最大リース期間を超えています")

        if payload.ttl:
            ttl = _parse_ttl(payload.ttl, "ttl")
        else:
            ttl = settings.default_lease_ttl
        if ttl > max_ttl:
            if payload.ttl:
                raise SSHCAValidationError("ttlはmax_ttlおよびシステムの最大リース期間以下である必要があります")
            ttl = max_ttl

        role = SSHRole(
            name=payload.name,
            ttl=format_duration(ttl),
            max_ttl=format_duration(max_ttl),
            allowed_critical_options=tuple(payload.allowed_critical_options),
            allowed_extensions=tuple(payload.allowed_extensions),
            default_critical_options=stringify_values(payload.default_critical_options),
            default_extensions=stringify_values(payload.default_extensions),
            allow_user_certificates=payload.allow_user_certificates,
            allow_host_certificates=payload.allow_host_certificates,
            allowed_valid_principals=tuple(payload.allowed_valid_principals),
            allow_bare_domains=payload.allow_bare_domains,
            allow_subdomains=payload.allow_subdomains,
        )
        saved = self._services.role_store.save(role)
        role_logger.info(
            "role written",
            extra={"event": "sshca.role.write", "role": saved.name, "ttl": saved.ttl, "max_ttl": saved.max_ttl},
        )
        return saved


class GetRoleUseCase:
    """ロール参照ユースケース。未設定のTTLはプレースホルダで表示する"""

    def __init__(self, services: SSHCAServices | None = None) -> None:
        self._services = services or resolve_services()

    def execute(self, name: str) -> dict[str, Any]:
        role = self._services.role_store.get(name)
        data = role.to_record()
        if not data["max_ttl"]:
            data["max_ttl"] = TTL_PLACEHOLDER
            if not data["ttl"]:
                data["ttl"] = TTL_PLACEHOLDER
        elif not data["ttl"]:
            data["ttl"] = TTL_CAPPED_PLACEHOLDER
        return data


class ListRolesUseCase:
    def __init__(self, services: SSHCAServices | None = None) -> None:
        self._services = services or resolve_services()

    def execute(self) -> list[str]:
        return self._services.role_store.list_names()


class DeleteRoleUseCase:
    """ロール削除。参照中の証明書の有無は確認しない"""

    def __init__(self, services: SSHCAServices | None = None) -> None:
        self._services = services or resolve_services()

    def execute(self, name: str) -> None:
        self._services.role_store.delete(name)
        role_logger.info("role deleted", extra={"event": "sshca.role.delete", "role": name})


class ConfigureCAUseCase:
    """CA鍵ペアの登録ユースケース"""

    def __init__(self, services: SSHCAServices | None = None) -> None:
        self._services = services or resolve_services()

    def execute(self, payload: CAConfigInput) -> None:
        if not payload.public_key or not payload.public_key.strip():
            raise SSHCAValidationError("public_keyは必須です")
        if not payload.private_key or not payload.private_key.strip():
            raise SSHCAValidationError("private_keyは必須です")

        public_key = load_public_key(payload.public_key)
        private_key = load_signing_key(payload.private_key)
        if not keys_match(private_key, public_key):
            raise SSHCAValidationError("public_keyとprivate_keyが対応していません")

        self._services.ca_store.save(payload.public_key, payload.private_key)
        signing_logger.info(
            "CA key pair configured",
            extra={"event": "sshca.config.ca", "fingerprint": compute_fingerprint(public_key)},
        )


class GetPublicKeyUseCase:
    def __init__(self, services: SSHCAServices | None = None) -> None:
        self._services = services or resolve_services()

    def execute(self) -> str:
        return self._services.ca_store.get_public_key()


class SignCertificateUseCase:
    """公開鍵にロールのポリシーを適用してSSH証明書を署名する"""

    def __init__(
        self,
        services: SSHCAServices | None = None,
        *,
        serial_generator: Callable[[], int] = generate_serial,
    ) -> None:
        self._services = services or resolve_services()
        self._serial_generator = serial_generator

    def execute(self, payload: SignCertificateInput) -> SignCertificateOutput:
        role = self._services.role_store.get(payload.role_name)

        cert_type = payload.cert_type
        if not role.allows(cert_type):
            raise SSHCAValidationError(f"このロールでは{cert_type.value}証明書を署名できません")

        principals = validate_principals(role, payload.valid_principals, cert_type)
        critical_options = _resolve_options(
            payload.critical_options,
            role.allowed_critical_options,
            role.default_critical_options,
            "critical option",
        )
        extensions = _resolve_options(
            payload.extensions,
            role.allowed_extensions,
            role.default_extensions,
            "extension",
        )
        ttl = self._effective_ttl(role, payload.ttl)

        public_key = load_public_key(payload.public_key)
        signing_key = self._services.ca_store.load_signing_key()
        key_id = payload.key_id or f"{role.name}-{compute_fingerprint(public_key)}"

        now = calendar.timegm(self._services.clock().utctimetuple())
        valid_after = max(now - int(self._services.settings.clock_skew.total_seconds()), 0)
        valid_before = now + int(ttl.total_seconds())

        serial = self._allocate_serial()
        serial_number = format_serial(serial)

        signed_key = sign_certificate(
            signing_key=signing_key,
            public_key=public_key,
            serial=serial,
            cert_type=cert_type,
            key_id=key_id,
            principals=principals,
            critical_options=critical_options,
            extensions=extensions,
            valid_after=valid_after,
            valid_before=valid_before,
            allow_any_principal=not role.allowed_valid_principals,
        )

        not_after = datetime.fromtimestamp(valid_before, tz=timezone.utc)
        self._services.certificate_store.save(
            CertificateNamespace.ISSUED,
            CertificateRecord(
                serial_number=serial_number,
                certificate=signed_key,
                valid_before=not_after,
            ),
        )

        signing_logger.info(
            "certificate signed",
            extra={
                "event": "sshca.sign",
                "role": role.name,
                "serial_number": serial_number,
                "cert_type": cert_type.value,
                "ttl_seconds": int(ttl.total_seconds()),
            },
        )

        return SignCertificateOutput(
            serial_number=serial_number,
            signed_key=signed_key,
            key_id=key_id,
            cert_type=cert_type,
            valid_after=datetime.fromtimestamp(valid_after, tz=timezone.utc),
            valid_before=not_after,
            ttl=ttl,
            lease=CertificateSecret.lease(serial_number, ttl),
        )

    def _effective_ttl(self, role: SSHRole, requested: timedelta | None) -> timedelta:
        settings = self._services.settings
        role_ttl = role.ttl_delta
        if role_ttl is None:
            role_ttl = settings.default_lease_ttl
        role_max_ttl = role.max_ttl_delta
        if role_max_ttl is None:
            role_max_ttl = settings.max_lease_ttl

        if requested is not None and requested < timedelta(0):
            raise SSHCAValidationError("ttlに負の値は指定できません")
        if not requested:
            requested = role_ttl
        ttl = min(requested, role_ttl, role_max_ttl)
        if ttl <= timedelta(0):
            raise SSHCAValidationError("ロールの有効期間が0のため署名できません")
        return ttl

    def _allocate_serial(self) -> int:
        store = self._services.certificate_store
        limit = self._services.settings.serial_retry_limit
        for _ in range(limit):
            serial = self._serial_generator()
            if not store.exists(CertificateNamespace.ISSUED, format_serial(serial)):
                return serial
            signing_logger.warning(
                "serial number collision",
                extra={"event": "sshca.sign.serial_collision", "serial_number": format_serial(serial)},
            )
        raise SerialNumberExhaustedError(
            f"一意なシリアル番号を{limit}回の試行で払い出せませんでした"
        )


class RevokeCertificateUseCase:
    def __init__(self, services: SSHCAServices | None = None) -> None:
        self._services = services or resolve_services()

    def execute(self, serial_number: str) -> RevocationInfo:
        return self._services.revocation_store.revoke(serial_number)


class RevokeLeaseUseCase:
    """リース失効フック。シークレット種別に応じた失効処理を呼び出す"""

    def __init__(self, services: SSHCAServices | None = None) -> None:
        self._services = services or resolve_services()

    def execute(self, secret_type: str, internal_data: Mapping[str, Any]) -> RevocationInfo:
        return self._services.secret_registry.revoke(secret_type, internal_data)


class GetCRLUseCase:
    def __init__(self, services: SSHCAServices | None = None) -> None:
        self._services = services or resolve_services()

    def execute(self) -> str:
        return self._services.certificate_store.read_crl()


class RebuildCRLUseCase:
    def __init__(self, services: SSHCAServices | None = None) -> None:
        self._services = services or resolve_services()

    def execute(self) -> int:
        return self._services.revocation_store.rebuild_crl()


def _parse_ttl(value: str, field_name: str) -> timedelta:
    try:
        ttl = parse_duration(value)
    except SSHCAValidationError as exc:
        raise SSHCAValidationError(f"{field_name}が不正です: {exc}") from exc
    if ttl <= timedelta(0):
        raise SSHCAValidationError(f"{field_name}は正の期間である必要があります")
    return ttl


def _resolve_options(
    requested: Mapping[str, str] | None,
    allowed: tuple[str, ...],
    defaults: Mapping[str, str],
    label: str,
) -> dict[str, str]:
    if not requested:
        return dict(defaults)
    if allowed:
        for name in requested:
            if name not in allowed:
                raise SSHCAValidationError(f"許可されていない{label}です: {name}")
    return {str(name): str(value) for name, value in requested.items()}


__all__ = [
    "ConfigureCAUseCase",
    "DeleteRoleUseCase",
    "GetCRLUseCase",
    "GetPublicKeyUseCase",
    "GetRoleUseCase",
    "ListRolesUseCase",
    "RebuildCRLUseCase",
    "RevokeCertificateUseCase",
    "RevokeLeaseUseCase",
    "SignCertificateUseCase",
    "TTL_CAPPED_PLACEHOLDER",
    "TTL_PLACEHOLDER",
    "WriteRoleUseCase",
]
