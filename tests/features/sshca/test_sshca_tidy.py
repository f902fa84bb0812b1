"""期限切れ証明書レコードのtidyテスト"""
from datetime import timedelta

import pytest

from features.sshca.application.dto import TidyInput
from features.sshca.application.tidy import TidyCertificatesUseCase, TidyStatus
from features.sshca.domain.exceptions import SSHCAValidationError
from features.sshca.domain.models import CertificateRecord
from features.sshca.infrastructure.certificate_store import CRL_KEY, CertificateNamespace


def _store(services, namespace, serial, valid_before, revoked=False):
    services.certificate_store.save(
        namespace,
        CertificateRecord(
            serial_number=serial,
            certificate=f"ssh-ed25519-cert-v01@openssh.com AAAA{serial}",
            valid_before=valid_before,
            revocation=services.clock() if revoked else None,
        ),
    )


@pytest.fixture
def populated(services, clock):
    now = clock()
    _store(services, CertificateNamespace.ISSUED, "valid", now + timedelta(minutes=30))
    _store(services, CertificateNamespace.ISSUED, "expired", now - timedelta(minutes=30))
    _store(services, CertificateNamespace.REVOKED, "valid", now + timedelta(minutes=30), revoked=True)
    _store(services, CertificateNamespace.REVOKED, "expired", now - timedelta(minutes=30), revoked=True)
    return services


def _serials(services, namespace):
    return services.certificate_store.list_serials(namespace)


def test_tidy_both_namespaces(populated):
    result = TidyCertificatesUseCase(populated).execute(
        TidyInput(
            tidy_cert_store=True,
            tidy_revocation_list=True,
            safety_buffer=timedelta(minutes=15),
        )
    )

    assert _serials(populated, CertificateNamespace.ISSUED) == ["valid"]
    assert _serials(populated, CertificateNamespace.REVOKED) == ["valid"]
    summary = result.summary()
    assert summary["deleted_certificates"] == 1
    assert summary["deleted_revoked"] == 1
    assert summary["corrupt"] == []


def test_tidy_only_selected_namespace(populated):
    TidyCertificatesUseCase(populated).execute(
        TidyInput(tidy_cert_store=True, safety_buffer=timedelta(minutes=15))
    )

    assert _serials(populated, CertificateNamespace.ISSUED) == ["valid"]
    assert _serials(populated, CertificateNamespace.REVOKED) == ["expired", "valid"]


def test_tidy_keeps_records_within_safety_buffer(populated):
    result = TidyCertificatesUseCase(populated).execute(
        TidyInput(tidy_cert_store=True, tidy_revocation_list=True, safety_buffer=timedelta(hours=1))
    )

    assert _serials(populated, CertificateNamespace.ISSUED) == ["expired", "valid"]
    assert result.count(CertificateNamespace.ISSUED, TidyStatus.KEPT) == 2


def test_tidy_keeps_record_expiring_exactly_at_cutoff(services, clock):
    _store(services, CertificateNamespace.ISSUED, "boundary", clock() - timedelta(minutes=15))

    TidyCertificatesUseCase(services).execute(
        TidyInput(tidy_cert_store=True, safety_buffer=timedelta(minutes=15))
    )

    assert _serials(services, CertificateNamespace.ISSUED) == ["boundary"]


def test_tidy_reports_corrupt_records_without_deleting(populated, storage):
    storage.put(CertificateNamespace.ISSUED.value + "broken", "[]")

    result = TidyCertificatesUseCase(populated).execute(
        TidyInput(tidy_cert_store=True, safety_buffer=timedelta(minutes=15))
    )

    assert result.corrupt_keys == ["certs/broken"]
    assert storage.get("certs/broken") == "[]"
    assert _serials(populated, CertificateNamespace.ISSUED) == ["broken", "valid"]


def test_tidy_does_not_touch_crl(populated, storage):
    storage.put(CRL_KEY, "existing-crl")

    TidyCertificatesUseCase(populated).execute(
        TidyInput(tidy_revocation_list=True, safety_buffer=timedelta(minutes=15))
    )

    assert storage.get(CRL_KEY) == "existing-crl"


def test_tidy_uses_explicit_now(populated, clock):
    result = TidyCertificatesUseCase(populated).execute(
        TidyInput(tidy_cert_store=True, safety_buffer=timedelta(minutes=15)),
        now=clock() + timedelta(hours=1),
    )

    assert result.cutoff == clock() + timedelta(minutes=45)
    assert _serials(populated, CertificateNamespace.ISSUED) == []


@pytest.mark.parametrize("buffer", [None, timedelta(0), timedelta(seconds=-1)])
def test_tidy_requires_positive_safety_buffer(services, buffer):
    with pytest.raises(SSHCAValidationError):
        TidyCertificatesUseCase(services).execute(
            TidyInput(tidy_cert_store=True, safety_buffer=buffer)
        )
