# webapp/__init__.py
import logging
from collections.abc import Mapping
from typing import Any, Optional

from flask import Flask, has_request_context, request
from flask_babel import gettext as _

from .extensions import db, migrate, babel
from core.logging_config import configure_logging
from core.settings import settings
from features.sshca.application.services import (
    EXTENSION_KEY,
    SSHCASettings,
    build_services,
)
from features.sshca.domain.exceptions import SSHCAConfigurationError
from features.sshca.infrastructure.storage import InMemoryStorage, StorageBackend

logger = logging.getLogger("sshca.api")


def create_app(config_object: Optional[type] = None, overrides: Optional[Mapping[str, Any]] = None):
    """アプリケーションファクトリ"""
    from dotenv import load_dotenv
    from .config import Config

    # .env を読み込む（環境変数が未設定の場合のみ）
    load_dotenv()

    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    if overrides:
        app.config.update(overrides)

    configure_logging()

    # 拡張初期化
    db.init_app(app)
    migrate.init_app(app, db)
    babel.init_app(app, locale_selector=_select_locale)

    with app.app_context():
        app.extensions[EXTENSION_KEY] = build_services(
            _build_storage(),
            SSHCASettings.from_mapping(app.config),
        )

    from features.sshca.presentation.api import sshca_api_bp

    app.register_blueprint(sshca_api_bp, url_prefix="/api/sshca")

    register_cli_commands(app)

    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if db_uri.startswith("sqlite://"):
        with app.app_context():
            db.create_all()

    logger.info(
        "application created",
        extra={"event": "app.create", "storage_backend": app.config.get("SSHCA_STORAGE_BACKEND")},
    )
    return app


def _build_storage() -> StorageBackend:
    try:
        backend = settings.sshca_storage_backend
    except ValueError as exc:
        raise SSHCAConfigurationError(str(exc)) from exc

    if backend == "memory":
        return InMemoryStorage()

    # テーブル定義をメタデータに登録する
    from features.sshca.infrastructure.sqlalchemy_storage import SQLAlchemyStorage

    return SQLAlchemyStorage()


def _select_locale():
    """1) cookie lang 2) Accept-Language 3) default"""
    from flask import current_app

    if not has_request_context():
        return current_app.config.get("BABEL_DEFAULT_LOCALE", "en")

    cookie_lang = request.cookies.get("lang")
    if cookie_lang in current_app.config["LANGUAGES"]:
        return cookie_lang
    return request.accept_languages.best_match(current_app.config["LANGUAGES"])


def register_cli_commands(app):
    """CLI コマンドを登録"""
    import click

    from features.sshca.application.dto import TidyInput
    from features.sshca.application.tidy import TidyCertificatesUseCase
    from features.sshca.domain.durations import parse_duration
    from features.sshca.domain.exceptions import SSHCAError

    @app.cli.group("sshca")
    def sshca_group():
        """SSH CA の管理コマンド"""

    @sshca_group.command("tidy")
    @click.option("--safety-buffer", default=None, help="削除対象とする期限切れからの猶予期間 (例: 72h)")
    @click.option("--cert-store/--no-cert-store", default=True, help="発行済み証明書を掃除する")
    @click.option("--revocation-list/--no-revocation-list", default=True, help="失効済み証明書を掃除する")
    def tidy_command(safety_buffer, cert_store, revocation_list):
        """期限切れの証明書レコードを削除する"""
        try:
            buffer = (
                parse_duration(safety_buffer)
                if safety_buffer
                else app.extensions[EXTENSION_KEY].settings.tidy_safety_buffer
            )
            result = TidyCertificatesUseCase().execute(
                TidyInput(
                    tidy_cert_store=cert_store,
                    tidy_revocation_list=revocation_list,
                    safety_buffer=buffer,
                )
            )
        except SSHCAError as exc:
            raise click.ClickException(str(exc)) from exc

        summary = result.summary()
        click.echo(_("Deleted certificates: %(count)s", count=summary["deleted_certificates"]))
        click.echo(_("Deleted revoked certificates: %(count)s", count=summary["deleted_revoked"]))
        for key in summary["corrupt"]:
            click.echo(_("Corrupt record: %(key)s", key=key), err=True)


__all__ = ["create_app"]
