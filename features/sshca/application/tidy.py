"""期限切れ証明書レコードの掃除"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from features.sshca.application.services import SSHCAServices, resolve_services
from features.sshca.domain.exceptions import RecordDecodeError, SSHCAValidationError
from features.sshca.infrastructure.certificate_store import CertificateNamespace

from .dto import TidyInput

logger = logging.getLogger("sshca.tidy")


class TidyStatus(str, Enum):
    """tidy結果のステータス"""

    DELETED = "deleted"
    KEPT = "kept"
    CORRUPT = "corrupt"


@dataclass(slots=True)
class TidyEntryResult:
    namespace: CertificateNamespace
    serial_number: str
    status: TidyStatus
    reason: str | None = None


@dataclass(slots=True)
class TidyResult:
    cutoff: datetime
    entries: list[TidyEntryResult] = field(default_factory=list)

    def count(self, namespace: CertificateNamespace, status: TidyStatus) -> int:
        return sum(1 for item in self.entries if item.namespace is namespace and item.status is status)

    @property
    def corrupt_keys(self) -> list[str]:
        return [
            item.namespace.value + item.serial_number
            for item in self.entries
            if item.status is TidyStatus.CORRUPT
        ]

    def summary(self) -> dict[str, object]:
        return {
            "cutoff": self.cutoff.isoformat(),
            "deleted_certificates": self.count(CertificateNamespace.ISSUED, TidyStatus.DELETED),
            "deleted_revoked": self.count(CertificateNamespace.REVOKED, TidyStatus.DELETED),
            "corrupt": self.corrupt_keys,
        }


class TidyCertificatesUseCase:
    """``valid_before`` が ``now - safety_buffer`` より前のレコードを削除する

    ロックは取らない。CRLの再構築も行わない。
    """

    def __init__(self, services: SSHCAServices | None = None) -> None:
        self._services = services or resolve_services()

    def execute(self, payload: TidyInput, *, now: datetime | None = None) -> TidyResult:
        buffer = payload.safety_buffer
        if buffer is None:
            raise SSHCAValidationError("safety_bufferは必須です")
        if buffer <= timedelta(0):
            raise SSHCAValidationError("safety_bufferは正の期間である必要があります")

        now = now or self._services.clock()
        result = TidyResult(cutoff=now - buffer)

        namespaces: list[CertificateNamespace] = []
        if payload.tidy_cert_store:
            namespaces.append(CertificateNamespace.ISSUED)
        if payload.tidy_revocation_list:
            namespaces.append(CertificateNamespace.REVOKED)

        for namespace in namespaces:
            self._tidy_namespace(namespace, result)

        logger.info(
            "certificate tidy finished",
            extra={"event": "sshca.tidy", **result.summary()},
        )
        return result

    def _tidy_namespace(self, namespace: CertificateNamespace, result: TidyResult) -> None:
        store = self._services.certificate_store
        for serial in store.list_serials(namespace):
            try:
                record = store.find(namespace, serial)
            except RecordDecodeError as exc:
                logger.error(
                    "corrupt certificate record",
                    extra={"event": "sshca.tidy.corrupt", "key": exc.key},
                )
                result.entries.append(
                    TidyEntryResult(
                        namespace=namespace,
                        serial_number=serial,
                        status=TidyStatus.CORRUPT,
                        reason=str(exc),
                    )
                )
                continue

            if record is None:
                continue

            if record.expired_before(result.cutoff):
                store.delete(namespace, serial)
                status = TidyStatus.DELETED
            else:
                status = TidyStatus.KEPT
            result.entries.append(
                TidyEntryResult(namespace=namespace, serial_number=serial, status=status)
            )


__all__ = ["TidyCertificatesUseCase", "TidyEntryResult", "TidyResult", "TidyStatus"]
