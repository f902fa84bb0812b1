"""SSH CA APIのルーティング"""
from __future__ import annotations

import logging
from datetime import timedelta
from http import HTTPStatus
from typing import Any

from flask import Response, jsonify, request
from flask_babel import gettext as _

from features.sshca.application.dto import (
    CAConfigInput,
    RoleInput,
    SignCertificateInput,
    TidyInput,
)
from features.sshca.application.tidy import TidyCertificatesUseCase
from features.sshca.application.use_cases import (
    ConfigureCAUseCase,
    DeleteRoleUseCase,
    GetCRLUseCase,
    GetPublicKeyUseCase,
    GetRoleUseCase,
    ListRolesUseCase,
    RebuildCRLUseCase,
    RevokeCertificateUseCase,
    RevokeLeaseUseCase,
    SignCertificateUseCase,
    WriteRoleUseCase,
)
from features.sshca.domain.cert_type import CertificateType
from features.sshca.domain.durations import parse_duration
from features.sshca.domain.exceptions import (
    SSHCAError,
    SSHCANotFoundError,
    SSHCAValidationError,
)
from features.sshca.domain.models import ROLE_NAME_PATTERN, split_csv

from . import sshca_api_bp

logger = logging.getLogger("sshca.api")


def _json_error(message: str, status: HTTPStatus):
    return jsonify({"error": message}), status


def _error_response(exc: SSHCAError):
    if isinstance(exc, SSHCAValidationError):
        return _json_error(str(exc), HTTPStatus.BAD_REQUEST)
    if isinstance(exc, SSHCANotFoundError):
        return _json_error(str(exc), HTTPStatus.NOT_FOUND)
    logger.error(
        "sshca request failed",
        extra={"event": "sshca.api.error", "path": request.path, "error_type": type(exc).__name__},
        exc_info=exc,
    )
    return _json_error(str(exc), HTTPStatus.INTERNAL_SERVER_ERROR)


def _normalize_role_name(value: str | None):
    name = (value or "").strip()
    if not name:
        return None, _json_error(_("Role name is required."), HTTPStatus.BAD_REQUEST)
    if not ROLE_NAME_PATTERN.fullmatch(name):
        return None, _json_error(
            _("Role name must contain only letters, numbers, underscore, hyphen, or dot."),
            HTTPStatus.BAD_REQUEST,
        )
    return name, None


def _json_payload() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise SSHCAValidationError(_("Request body must be a JSON object."))
    return payload


def _to_bool(value, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "on"}:
            return True
        if lowered in {"false", "0", "no", "off"}:
            return False
        raise SSHCAValidationError(_("Invalid boolean value: %(value)s", value=value))
    if isinstance(value, int):
        return bool(value)
    raise SSHCAValidationError(_("Invalid boolean value: %(value)s", value=value))


def _duration_text(value: Any, field_name: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        raise SSHCAValidationError(_("%(field)s must be a duration.", field=field_name))
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    raise SSHCAValidationError(_("%(field)s must be a duration.", field=field_name))


def _optional_duration(value: Any, field_name: str) -> timedelta | None:
    text = _duration_text(value, field_name)
    if not text:
        return None
    return parse_duration(text)


def _optional_map(value: Any, field_name: str) -> dict[str, Any] | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise SSHCAValidationError(_("%(field)s must be an object.", field=field_name))
    return value


def _string_map(value: Any, field_name: str) -> dict[str, str] | None:
    mapping = _optional_map(value, field_name)
    if mapping is None:
        return None
    return {str(key): "" if item is None else str(item) for key, item in mapping.items()}


def _optional_string(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise SSHCAValidationError(_("%(field)s must be a string.", field=field_name))
    return value.strip() or None


def _parse_role_payload(name: str, payload: dict[str, Any]) -> RoleInput:
    return RoleInput(
        name=name,
        ttl=_duration_text(payload.get("ttl"), "ttl"),
        max_ttl=_duration_text(payload.get("max_ttl"), "max_ttl"),
        allowed_critical_options=split_csv(payload.get("allowed_critical_options")),
        allowed_extensions=split_csv(payload.get("allowed_extensions")),
        default_critical_options=_optional_map(
            payload.get("default_critical_options"), "default_critical_options"
        )
        or {},
        default_extensions=_optional_map(payload.get("default_extensions"), "default_extensions") or {},
        allow_user_certificates=_to_bool(payload.get("allow_user_certificates"), default=True),
        allow_host_certificates=_to_bool(payload.get("allow_host_certificates"), default=True),
        allowed_valid_principals=split_csv(payload.get("allowed_valid_principals")),
        allow_bare_domains=_to_bool(payload.get("allow_bare_domains"), default=False),
        allow_subdomains=_to_bool(payload.get("allow_subdomains"), default=False),
    )


def _parse_sign_payload(role_name: str, payload: dict[str, Any]) -> SignCertificateInput:
    public_key = payload.get("public_key")
    if not isinstance(public_key, str) or not public_key.strip():
        raise SSHCAValidationError(_("public_key is required."))
    return SignCertificateInput(
        role_name=role_name,
        public_key=public_key,
        key_id=_optional_string(payload.get("key_id"), "key_id"),
        cert_type=CertificateType.from_str(payload.get("cert_type")),
        valid_principals=split_csv(payload.get("valid_principals")),
        critical_options=_string_map(payload.get("critical_options"), "critical_options"),
        extensions=_string_map(payload.get("extensions"), "extensions"),
        ttl=_optional_duration(payload.get("ttl"), "ttl"),
    )


def _serial_from_payload(payload: dict[str, Any]) -> str:
    serial = payload.get("serial_number")
    if not isinstance(serial, str) or not serial.strip():
        raise SSHCAValidationError(_("The serial number must be provided."))
    return serial.strip()


def _text_response(body: str) -> Response:
    return Response(body, status=HTTPStatus.OK, mimetype="text/plain")


@sshca_api_bp.route("/roles", methods=["GET"])
def list_roles():
    try:
        names = ListRolesUseCase().execute()
    except SSHCAError as exc:
        return _error_response(exc)
    return jsonify({"roles": names})


@sshca_api_bp.route("/roles/<string:name>", methods=["GET"])
def get_role(name: str):
    name, error = _normalize_role_name(name)
    if error:
        return error

    try:
        role = GetRoleUseCase().execute(name)
    except SSHCAError as exc:
        return _error_response(exc)
    return jsonify({"role": role})


@sshca_api_bp.route("/roles/<string:name>", methods=["POST", "PUT"])
def write_role(name: str):
    name, error = _normalize_role_name(name)
    if error:
        return error

    try:
        dto = _parse_role_payload(name, _json_payload())
        WriteRoleUseCase().execute(dto)
        role = GetRoleUseCase().execute(name)
    except SSHCAError as exc:
        return _error_response(exc)
    return jsonify({"role": role})


@sshca_api_bp.route("/roles/<string:name>", methods=["DELETE"])
def delete_role(name: str):
    name, error = _normalize_role_name(name)
    if error:
        return error

    try:
        DeleteRoleUseCase().execute(name)
    except SSHCAError as exc:
        return _error_response(exc)
    return jsonify({"status": "deleted", "role": name})


@sshca_api_bp.route("/sign/<string:role_name>", methods=["POST"])
def sign(role_name: str):
    role_name, error = _normalize_role_name(role_name)
    if error:
        return error

    try:
        dto = _parse_sign_payload(role_name, _json_payload())
        result = SignCertificateUseCase().execute(dto)
    except SSHCAError as exc:
        return _error_response(exc)

    return jsonify(
        {
            "serial_number": result.serial_number,
            "signed_key": result.signed_key,
            "lease": result.lease,
        }
    )


@sshca_api_bp.route("/revoke", methods=["POST"])
def revoke():
    try:
        serial = _serial_from_payload(_json_payload())
        info = RevokeCertificateUseCase().execute(serial)
    except SSHCAError as exc:
        return _error_response(exc)
    return jsonify(info.to_dict())


@sshca_api_bp.route("/leases/revoke", methods=["POST"])
def revoke_lease():
    try:
        payload = _json_payload()
        secret_type = _optional_string(payload.get("secret_type"), "secret_type")
        if not secret_type:
            raise SSHCAValidationError(_("secret_type is required."))
        internal_data = _optional_map(payload.get("internal_data"), "internal_data") or {}
        info = RevokeLeaseUseCase().execute(secret_type, internal_data)
    except SSHCAError as exc:
        return _error_response(exc)
    return jsonify(info.to_dict())


@sshca_api_bp.route("/crl", methods=["GET"])
def get_crl():
    try:
        body = GetCRLUseCase().execute()
    except SSHCAError as exc:
        return _error_response(exc)
    return _text_response(body)


@sshca_api_bp.route("/crl/rebuild", methods=["POST"])
def rebuild_crl():
    try:
        entries = RebuildCRLUseCase().execute()
    except SSHCAError as exc:
        return _error_response(exc)
    return jsonify({"status": "rebuilt", "entries": entries})


@sshca_api_bp.route("/public_key", methods=["GET"])
def get_public_key():
    try:
        body = GetPublicKeyUseCase().execute()
    except SSHCAError as exc:
        return _error_response(exc)
    return _text_response(body)


@sshca_api_bp.route("/config/ca", methods=["POST"])
def configure_ca():
    try:
        payload = _json_payload()
        dto = CAConfigInput(
            public_key=payload.get("public_key") or "",
            private_key=payload.get("private_key") or "",
        )
        if not isinstance(dto.public_key, str) or not isinstance(dto.private_key, str):
            raise SSHCAValidationError(_("Keys must be provided as strings."))
        ConfigureCAUseCase().execute(dto)
    except SSHCAError as exc:
        return _error_response(exc)
    return "", HTTPStatus.NO_CONTENT


@sshca_api_bp.route("/tidy", methods=["POST"])
def tidy():
    try:
        payload = _json_payload()
        safety_buffer = _optional_duration(payload.get("safety_buffer"), "safety_buffer")
        if safety_buffer is None:
            raise SSHCAValidationError(_("safety_buffer is required."))
        dto = TidyInput(
            tidy_cert_store=_to_bool(payload.get("tidy_cert_store"), default=False),
            tidy_revocation_list=_to_bool(payload.get("tidy_revocation_list"), default=False),
            safety_buffer=safety_buffer,
        )
        result = TidyCertificatesUseCase().execute(dto)
    except SSHCAError as exc:
        return _error_response(exc)
    return jsonify(result.summary())
