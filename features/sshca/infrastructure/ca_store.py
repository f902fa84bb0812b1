"""CA鍵ペアの保存と読み込み"""
from __future__ import annotations

from features.sshca.domain.exceptions import CANotConfiguredError

from .key_utils import SigningKey, load_signing_key
from .storage import StorageBackend

PUBLIC_KEY_KEY = "public_key"
PRIVATE_KEY_KEY = "config/ca_private_key"


class CAKeyStore:
    """CA鍵ペアを生テキストのまま保持する"""

    def __init__(self, storage: StorageBackend) -> None:
        self._storage = storage

    def save(self, public_key: str, private_key: str) -> None:
        self._storage.put(PRIVATE_KEY_KEY, private_key)
        self._storage.put(PUBLIC_KEY_KEY, public_key)

    def get_public_key(self) -> str:
        public_key = self._storage.get(PUBLIC_KEY_KEY)
        if not public_key:
            raise CANotConfiguredError("CA公開鍵が設定されていません")
        return public_key

    def load_signing_key(self) -> SigningKey:
        private_key = self._storage.get(PRIVATE_KEY_KEY)
        if not private_key:
            raise CANotConfiguredError("CA秘密鍵が設定されていません")
        return load_signing_key(private_key)


__all__ = ["CAKeyStore", "PRIVATE_KEY_KEY", "PUBLIC_KEY_KEY"]
