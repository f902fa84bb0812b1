"""構造化ログ出力のテスト"""
import json
import logging

from core.logging_config import StructuredFormatter, configure_logging


def test_structured_formatter_includes_extra_fields():
    record = logging.LogRecord(
        name="sshca.revocation",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="certificate revoked",
        args=(),
        exc_info=None,
    )
    record.event = "sshca.revoke"
    record.serial_number = "0000000000000001"

    payload = json.loads(StructuredFormatter().format(record))

    assert payload["logger"] == "sshca.revocation"
    assert payload["message"] == "certificate revoked"
    assert payload["event"] == "sshca.revoke"
    assert payload["serial_number"] == "0000000000000001"


def test_configure_logging_is_idempotent():
    configure_logging()
    configure_logging()

    handlers = [
        handler
        for handler in logging.getLogger("sshca").handlers
        if isinstance(handler.formatter, StructuredFormatter)
    ]
    assert len(handlers) == 1


def test_revocation_emits_event(services, caplog):
    from features.sshca.application.use_cases import RevokeCertificateUseCase
    from features.sshca.domain.models import CertificateRecord
    from features.sshca.infrastructure.certificate_store import CertificateNamespace

    services.certificate_store.save(
        CertificateNamespace.ISSUED,
        CertificateRecord(
            serial_number="0000000000000001",
            certificate="cert",
            valid_before=services.clock(),
        ),
    )

    with caplog.at_level(logging.INFO, logger="sshca.revocation"):
        RevokeCertificateUseCase(services).execute("0000000000000001")

    events = [getattr(record, "event", None) for record in caplog.records]
    assert "sshca.revoke" in events
    assert "sshca.crl.rebuild" in events
