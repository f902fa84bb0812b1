"""期限切れSSH証明書レコードを掃除するCeleryタスク"""
from __future__ import annotations

import logging
from typing import Any

from cli.src.celery.celery_app import celery
from features.sshca.application.dto import TidyInput
from features.sshca.application.services import resolve_services
from features.sshca.application.tidy import TidyCertificatesUseCase, TidyResult
from features.sshca.domain.durations import parse_duration

logger = logging.getLogger("celery.task.sshca")


def _result_to_dict(result: TidyResult) -> dict[str, Any]:
    payload = result.summary()
    payload["results"] = [
        {
            "key": item.namespace.value + item.serial_number,
            "status": item.status.value,
            **({"reason": item.reason} if item.reason else {}),
        }
        for item in result.entries
    ]
    return payload


def run_tidy(
    *,
    tidy_cert_store: bool = True,
    tidy_revocation_list: bool = True,
    safety_buffer: str | int | None = None,
) -> dict[str, Any]:
    """現在のアプリケーションコンテキストでtidyを実行し結果を辞書で返す"""

    services = resolve_services()
    if safety_buffer:
        buffer = parse_duration(safety_buffer)
    else:
        buffer = services.settings.tidy_safety_buffer
    result = TidyCertificatesUseCase(services).execute(
        TidyInput(
            tidy_cert_store=tidy_cert_store,
            tidy_revocation_list=tidy_revocation_list,
            safety_buffer=buffer,
        )
    )
    summary = _result_to_dict(result)

    logger.info(
        "ssh certificate tidy finished",
        extra={
            "event": "sshca.tidy.task",
            "deleted_certificates": summary["deleted_certificates"],
            "deleted_revoked": summary["deleted_revoked"],
            "corrupt": len(summary["corrupt"]),
        },
    )
    return summary


@celery.task(bind=True, name="sshca.tidy")
def tidy_certificates_task(
    self,
    tidy_cert_store: bool = True,
    tidy_revocation_list: bool = True,
    safety_buffer: str | int | None = None,
):
    """期限切れから ``safety_buffer`` を過ぎた証明書レコードを削除する"""

    return run_tidy(
        tidy_cert_store=tidy_cert_store,
        tidy_revocation_list=tidy_revocation_list,
        safety_buffer=safety_buffer,
    )


__all__ = ["run_tidy", "tidy_certificates_task"]
