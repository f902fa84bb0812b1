"""Flask-SQLAlchemyを利用したストレージ実装"""
from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from core.db import db
from features.sshca.domain.exceptions import SSHCAStorageError

from .models import StorageEntryEntity
from .storage import list_children

logger = logging.getLogger("sshca.storage")


class SQLAlchemyStorage:
    """``sshca_storage_entries`` テーブルをキーバリューストアとして扱う

    各操作はその場でコミットする。失敗時はロールバックして
    :class:`SSHCAStorageError` を送出する。
    """

    def get(self, key: str) -> str | None:
        try:
            entity = db.session.get(StorageEntryEntity, key)
        except SQLAlchemyError as exc:
            self._fail("get", key, exc)
        return entity.value if entity is not None else None

    def put(self, key: str, value: str) -> None:
        try:
            db.session.merge(StorageEntryEntity(key=key, value=value))
            db.session.commit()
        except SQLAlchemyError as exc:
            self._fail("put", key, exc)

    def delete(self, key: str) -> None:
        try:
            db.session.execute(delete(StorageEntryEntity).where(StorageEntryEntity.key == key))
            db.session.commit()
        except SQLAlchemyError as exc:
            self._fail("delete", key, exc)

    def list(self, prefix: str) -> list[str]:
        try:
            keys = db.session.scalars(
                select(StorageEntryEntity.key).where(
                    StorageEntryEntity.key.startswith(prefix, autoescape=True)
                )
            ).all()
        except SQLAlchemyError as exc:
            self._fail("list", prefix, exc)
        return list_children(keys, prefix)

    def _fail(self, operation: str, key: str, exc: SQLAlchemyError):
        db.session.rollback()
        logger.error(
            "storage operation failed",
            extra={"event": "sshca.storage.error", "operation": operation, "key": key},
            exc_info=exc,
        )
        raise SSHCAStorageError(f"ストレージ操作に失敗しました ({operation} {key}): {exc}") from exc


__all__ = ["SQLAlchemyStorage"]
