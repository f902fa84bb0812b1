"""発行済み・失効済み証明書レコードとCRLの永続化ストア"""
from __future__ import annotations

from enum import Enum

from features.sshca.domain.exceptions import RecordDecodeError
from features.sshca.domain.models import CertificateRecord

from .encoding import decode_record, encode_record
from .storage import StorageBackend

CRL_KEY = "crl"


class CertificateNamespace(str, Enum):
    """証明書レコードの保存先"""

    ISSUED = "certs/"
    REVOKED = "revoked/"


class CertificateStore:
    """``certs/<serial>`` と ``revoked/<serial>`` のレコードを扱う"""

    def __init__(self, storage: StorageBackend) -> None:
        self._storage = storage

    def exists(self, namespace: CertificateNamespace, serial_number: str) -> bool:
        return self._storage.get(namespace.value + serial_number) is not None

    def find(self, namespace: CertificateNamespace, serial_number: str) -> CertificateRecord | None:
        """レコードを読み込む。存在しない場合は ``None``

        デコードできないレコードは :class:`RecordDecodeError` とする。
        """

        key = namespace.value + serial_number
        raw = self._storage.get(key)
        if raw is None:
            return None
        data = decode_record(key, raw)
        try:
            return CertificateRecord.from_record(serial_number, data)
        except (KeyError, TypeError, ValueError) as exc:
            raise RecordDecodeError(key, f"証明書レコードが不正です: {exc}") from exc

    def save(self, namespace: CertificateNamespace, record: CertificateRecord) -> CertificateRecord:
        self._storage.put(namespace.value + record.serial_number, encode_record(record.to_record()))
        return record

    def delete(self, namespace: CertificateNamespace, serial_number: str) -> None:
        self._storage.delete(namespace.value + serial_number)

    def list_serials(self, namespace: CertificateNamespace) -> list[str]:
        return [serial for serial in self._storage.list(namespace.value) if not serial.endswith("/")]

    def read_crl(self) -> str:
        return self._storage.get(CRL_KEY) or ""

    def write_crl(self, body: str) -> None:
        self._storage.put(CRL_KEY, body)


__all__ = ["CRL_KEY", "CertificateNamespace", "CertificateStore"]
