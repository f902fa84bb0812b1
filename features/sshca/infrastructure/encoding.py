"""ストレージ保存用のJSONエンコード関連ユーティリティ"""
from __future__ import annotations

import json
from typing import Any

from features.sshca.domain.exceptions import RecordDecodeError


def encode_record(data: dict[str, Any]) -> str:
    """レコードをJSON文字列にする"""

    return json.dumps(data, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


def decode_record(key: str, raw: str) -> dict[str, Any]:
    """JSON文字列をレコード辞書に戻す"""

    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise RecordDecodeError(key, f"JSONとして解析できません: {exc}") from exc
    if not isinstance(data, dict):
        raise RecordDecodeError(key, "オブジェクト形式ではありません")
    return data
