"""証明書失効とCRL更新の排他制御"""
from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from core.time import utc_now
from features.sshca.domain.exceptions import CertificateNotFoundError, SSHCAValidationError
from features.sshca.domain.models import RevocationInfo
from features.sshca.infrastructure.certificate_store import CertificateNamespace, CertificateStore

from .crl import CRLBuilder

logger = logging.getLogger("sshca.revocation")


class RevocationStore:
    """発行済み証明書を失効済みへ移し、CRLを再構築する

    失効レコードとCRLの組を書き換える処理はすべて ``lock`` の下で行う。
    ロックはプロセス内でのみ有効。
    """

    def __init__(
        self,
        certificate_store: CertificateStore,
        crl_builder: CRLBuilder,
        *,
        lock: threading.Lock | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = certificate_store
        self._crl_builder = crl_builder
        self._lock = lock or threading.Lock()
        self._clock = clock

    @property
    def lock(self) -> threading.Lock:
        return self._lock

    def revoke(self, serial_number: str) -> RevocationInfo:
        """シリアル番号の証明書を失効させる

        既に失効済みなら保存済みの失効時刻をそのまま返し、CRLは再構築しない。
        CRLの再構築に失敗しても失効レコードは残り、例外は呼び出し側に伝播する。
        """

        serial = (serial_number or "").strip()
        if not serial:
            raise SSHCAValidationError("serial_numberは必須です")

        with self._lock:
            existing = self._store.find(CertificateNamespace.REVOKED, serial)
            if existing is not None and existing.is_revoked:
                logger.info(
                    "certificate already revoked",
                    extra={
                        "event": "sshca.revoke",
                        "serial_number": serial,
                        "already_revoked": True,
                    },
                )
                return existing.revocation_info()

            issued = self._store.find(CertificateNamespace.ISSUED, serial) or existing
            if issued is None:
                raise CertificateNotFoundError(f"不明なシリアル番号です: {serial}")

            revoked = replace(issued, serial_number=serial, revocation=self._clock())
            self._store.save(CertificateNamespace.REVOKED, revoked)
            logger.info(
                "certificate revoked",
                extra={
                    "event": "sshca.revoke",
                    "serial_number": serial,
                    "already_revoked": False,
                },
            )
            self._crl_builder.rebuild()

        return revoked.revocation_info()

    def rebuild_crl(self) -> int:
        with self._lock:
            return self._crl_builder.rebuild()


__all__ = ["RevocationStore"]
