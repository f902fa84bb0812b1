"""SSH CA機能のSQLAlchemyモデル"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from core.db import db
from core.time import utc_now


class StorageEntryEntity(db.Model):
    """キーバリュー形式でSSH CAの状態を保持するテーブル"""

    __tablename__ = "sshca_storage_entries"

    key: Mapped[str] = mapped_column(db.String(512), primary_key=True)
    value: Mapped[str] = mapped_column(db.Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )


__all__ = ["StorageEntryEntity"]
