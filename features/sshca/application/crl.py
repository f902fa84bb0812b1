"""失効済み証明書からCRLを再構築する"""
from __future__ import annotations

import logging

from features.sshca.domain.exceptions import CRLBuildError, RecordDecodeError, SSHCAStorageError
from features.sshca.infrastructure.certificate_store import CertificateNamespace, CertificateStore

logger = logging.getLogger("sshca.revocation")


class CRLBuilder:
    """``revoked/`` 配下の全レコードから ``crl`` を作り直す

    CRLは差分更新せず常に全件から再生成する。呼び出し側で失効ロックを
    保持していることが前提。
    """

    def __init__(self, certificate_store: CertificateStore) -> None:
        self._store = certificate_store

    def rebuild(self) -> int:
        """CRLを再生成し、含まれる証明書数を返す"""

        try:
            serials = self._store.list_serials(CertificateNamespace.REVOKED)
            certificates: list[str] = []
            for serial in serials:
                record = self._store.find(CertificateNamespace.REVOKED, serial)
                if record is None:
                    raise CRLBuildError(f"失効済み証明書が見つかりません: {serial}")
                certificates.append(record.certificate)
            self._store.write_crl("\n".join(certificates))
        except (RecordDecodeError, SSHCAStorageError) as exc:
            raise CRLBuildError(f"CRLの再構築に失敗しました: {exc}") from exc

        logger.info(
            "CRL rebuilt",
            extra={"event": "sshca.crl.rebuild", "entries": len(certificates)},
        )
        return len(certificates)


__all__ = ["CRLBuilder"]
