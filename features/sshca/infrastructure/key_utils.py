"""SSH鍵や証明書周りの共通関数"""
from __future__ import annotations

import base64
import binascii
import hashlib
import secrets
import struct
from collections.abc import Iterable, Mapping
from typing import Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from features.sshca.domain.cert_type import CertificateType
from features.sshca.domain.exceptions import CertificateSigningError, SSHCAValidationError

SigningKey = Union[rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey, ed25519.Ed25519PrivateKey]
SubjectKey = Union[rsa.RSAPublicKey, ec.EllipticCurvePublicKey, ed25519.Ed25519PublicKey]

_SUPPORTED_SIGNING_KEYS = (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey, ed25519.Ed25519PrivateKey)
_SUPPORTED_SUBJECT_KEYS = (rsa.RSAPublicKey, ec.EllipticCurvePublicKey, ed25519.Ed25519PublicKey)

_CERTIFICATE_TYPES = {
    CertificateType.USER: serialization.SSHCertificateType.USER,
    CertificateType.HOST: serialization.SSHCertificateType.HOST,
}


def load_public_key(text: str) -> SubjectKey:
    """authorized_keys形式、またはbase64のみの公開鍵を読み込む"""

    value = (text or "").strip()
    if not value:
        raise SSHCAValidationError("public_keyは必須です")

    parts = value.split()
    if len(parts) == 1:
        value = _authorized_key_from_blob(parts[0])

    try:
        public_key = serialization.load_ssh_public_key(value.encode("utf-8"))
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise SSHCAValidationError(f"公開鍵を解析できません: {exc}") from exc
    if not isinstance(public_key, _SUPPORTED_SUBJECT_KEYS):
        raise SSHCAValidationError("サポートされていない公開鍵種別です")
    return public_key


def _authorized_key_from_blob(encoded: str) -> str:
    try:
        blob = base64.b64decode(encoded.encode("ascii"), validate=True)
    except (binascii.Error, ValueError, UnicodeEncodeError) as exc:
        raise SSHCAValidationError("公開鍵のbase64が不正です") from exc
    if len(blob) < 4:
        raise SSHCAValidationError("公開鍵の形式が不正です")
    (length,) = struct.unpack(">I", blob[:4])
    key_type = blob[4 : 4 + length]
    if len(key_type) != length or not key_type:
        raise SSHCAValidationError("公開鍵の形式が不正です")
    return f"{key_type.decode('ascii', errors='replace')} {encoded}"


def load_signing_key(text: str) -> SigningKey:
    """PEMまたはOpenSSH形式のCA秘密鍵を読み込む"""

    data = (text or "").strip().encode("utf-8")
    if not data:
        raise SSHCAValidationError("private_keyは必須です")
    try:
        if b"BEGIN OPENSSH PRIVATE KEY" in data:
            private_key = serialization.load_ssh_private_key(data, password=None)
        else:
            private_key = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise SSHCAValidationError(f"秘密鍵を解析できません: {exc}") from exc
    if not isinstance(private_key, _SUPPORTED_SIGNING_KEYS):
        raise SSHCAValidationError("サポートされていない秘密鍵種別です")
    return private_key


def serialize_public_key(public_key: SubjectKey) -> str:
    """OpenSSH authorized_keys形式の公開鍵文字列"""

    return public_key.public_bytes(
        serialization.Encoding.OpenSSH,
        serialization.PublicFormat.OpenSSH,
    ).decode("ascii")


def public_key_blob(public_key: SubjectKey) -> bytes:
    return base64.b64decode(serialize_public_key(public_key).split()[1])


def compute_fingerprint(public_key: SubjectKey) -> str:
    """公開鍵ワイヤ形式のSHA-256指紋(16進)"""

    return hashlib.sha256(public_key_blob(public_key)).hexdigest()


def keys_match(private_key: SigningKey, public_key: SubjectKey) -> bool:
    return public_key_blob(private_key.public_key()) == public_key_blob(public_key)


def generate_serial() -> int:
    """符号なし64bitのランダムなシリアル"""

    return secrets.randbits(64)


def format_serial(serial: int) -> str:
    return f"{serial:016x}"


def sign_certificate(
    *,
    signing_key: SigningKey,
    public_key: SubjectKey,
    serial: int,
    cert_type: CertificateType,
    key_id: str,
    principals: Iterable[str],
    critical_options: Mapping[str, str],
    extensions: Mapping[str, str],
    valid_after: int,
    valid_before: int,
    allow_any_principal: bool = False,
) -> str:
    """SSH証明書を組み立ててCA鍵で署名し、authorized_keys形式で返す"""

    try:
        builder = (
            serialization.SSHCertificateBuilder()
            .public_key(public_key)
            .serial(serial)
            .type(_CERTIFICATE_TYPES[cert_type])
            .key_id(key_id.encode("utf-8"))
            .valid_after(valid_after)
            .valid_before(valid_before)
        )
        principal_bytes = [principal.encode("utf-8") for principal in principals]
        if principal_bytes:
            builder = builder.valid_principals(principal_bytes)
        elif allow_any_principal:
            builder = builder.valid_for_all_principals()
        else:
            raise CertificateSigningError("プリンシパルが指定されていません")
        for name, value in sorted(critical_options.items()):
            builder = builder.add_critical_option(name.encode("utf-8"), value.encode("utf-8"))
        for name, value in sorted(extensions.items()):
            builder = builder.add_extension(name.encode("utf-8"), value.encode("utf-8"))
        certificate = builder.sign(signing_key)
    except (ValueError, TypeError) as exc:
        raise CertificateSigningError(str(exc)) from exc

    return certificate.public_bytes().decode("ascii")


__all__ = [
    "SigningKey",
    "SubjectKey",
    "compute_fingerprint",
    "format_serial",
    "generate_serial",
    "keys_match",
    "load_public_key",
    "load_signing_key",
    "serialize_public_key",
    "sign_certificate",
]
