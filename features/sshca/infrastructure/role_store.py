"""ロール定義を管理するストア"""
from __future__ import annotations

from features.sshca.domain.exceptions import (
    RecordDecodeError,
    RoleNotFoundError,
    SSHCAValidationError,
)
from features.sshca.domain.models import SSHRole

from .encoding import decode_record, encode_record
from .storage import StorageBackend

ROLE_PREFIX = "role/"


class RoleStore:
    """``role/<name>`` に保存されたロールのCRUD"""

    def __init__(self, storage: StorageBackend) -> None:
        self._storage = storage

    def find(self, name: str) -> SSHRole | None:
        key = ROLE_PREFIX + name
        raw = self._storage.get(key)
        if raw is None:
            return None
        data = decode_record(key, raw)
        try:
            return SSHRole.from_record(name, data)
        except (TypeError, ValueError, SSHCAValidationError) as exc:
            raise RecordDecodeError(key, str(exc)) from exc

    def get(self, name: str) -> SSHRole:
        role = self.find(name)
        if role is None:
            raise RoleNotFoundError(f"ロールが見つかりません: {name}")
        return role

    def list_names(self) -> list[str]:
        return [name for name in self._storage.list(ROLE_PREFIX) if not name.endswith("/")]

    def save(self, role: SSHRole) -> SSHRole:
        self._storage.put(ROLE_PREFIX + role.name, encode_record(role.to_record()))
        return role

    def delete(self, name: str) -> None:
        self._storage.delete(ROLE_PREFIX + name)


__all__ = ["ROLE_PREFIX", "RoleStore"]
