"""SSH CAが利用するキーバリューストレージの抽象とメモリ実装"""
from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import Protocol, runtime_checkable


@runtime_checkable
class StorageBackend(Protocol):
    """キー単位でread-your-writesを保証するキーバリューストレージ

    キー間のトランザクションは提供しない。
    """

    def get(self, key: str) -> str | None: ...

    def put(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def list(self, prefix: str) -> list[str]: ...


def list_children(keys: Iterable[str], prefix: str) -> list[str]:
    """``prefix`` 直下の要素名を返す。下位階層は ``name/`` として1件にまとめる"""

    children: set[str] = set()
    for key in keys:
        if not key.startswith(prefix):
            continue
        remainder = key[len(prefix) :]
        if not remainder:
            continue
        head, sep, _ = remainder.partition("/")
        children.add(head + sep)
    return sorted(children)


class InMemoryStorage:
    """プロセス内辞書によるストレージ実装"""

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._entries[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def list(self, prefix: str) -> list[str]:
        with self._lock:
            keys = list(self._entries)
        return list_children(keys, prefix)


__all__ = ["InMemoryStorage", "StorageBackend", "list_children"]
