"""プリンシパル許可ルールのテスト"""
import pytest

from features.sshca.domain.cert_type import CertificateType
from features.sshca.domain.exceptions import SSHCAValidationError
from features.sshca.domain.models import SSHRole
from features.sshca.domain.principals import principal_allowed, validate_principals


def _role(**kwargs):
    return SSHRole(name="test", **kwargs)


@pytest.mark.parametrize("cert_type", [CertificateType.USER, CertificateType.HOST])
def test_empty_allow_list_accepts_anything(cert_type):
    role = _role()
    assert principal_allowed(role, "anything.example.com", cert_type)


def test_user_principal_requires_exact_match():
    role = _role(allowed_valid_principals=("dummy", "admin"), allow_subdomains=True)

    assert principal_allowed(role, "dummy", CertificateType.USER)
    assert not principal_allowed(role, "x.dummy", CertificateType.USER)
    assert not principal_allowed(role, "dumm", CertificateType.USER)


def test_host_bare_domain_requires_flag():
    without_flag = _role(allowed_valid_principals=("example.com",))
    with_flag = _role(allowed_valid_principals=("example.com",), allow_bare_domains=True)

    assert not principal_allowed(without_flag, "example.com", CertificateType.HOST)
    assert principal_allowed(with_flag, "example.com", CertificateType.HOST)


def test_host_subdomain_requires_flag_and_dot_boundary():
    role = _role(allowed_valid_principals=("example.com",), allow_subdomains=True)

    assert principal_allowed(role, "dummy.example.com", CertificateType.HOST)
    assert principal_allowed(role, "a.b.example.com", CertificateType.HOST)
    assert not principal_allowed(role, "badexample.com", CertificateType.HOST)
    # ベアドメインはallow_bare_domainsが必要
    assert not principal_allowed(role, "example.com", CertificateType.HOST)

    no_subdomains = _role(allowed_valid_principals=("example.com",))
    assert not principal_allowed(no_subdomains, "dummy.example.com", CertificateType.HOST)


def test_validate_principals_returns_requested_list():
    role = _role(allowed_valid_principals=("dummy",))
    assert validate_principals(role, ("dummy",), CertificateType.USER) == ["dummy"]


def test_validate_principals_names_rejected_principal():
    role = _role(allowed_valid_principals=("dummy",))

    with pytest.raises(SSHCAValidationError) as excinfo:
        validate_principals(role, ["dummy", "root"], CertificateType.USER)
    assert "root" in str(excinfo.value)


@pytest.mark.parametrize("cert_type", [CertificateType.USER, CertificateType.HOST])
def test_restricted_role_requires_principals(cert_type):
    role = _role(allowed_valid_principals=("dummy",), allow_bare_domains=True)

    with pytest.raises(SSHCAValidationError):
        validate_principals(role, [], cert_type)


def test_open_role_accepts_no_principals():
    assert validate_principals(_role(), [], CertificateType.USER) == []
