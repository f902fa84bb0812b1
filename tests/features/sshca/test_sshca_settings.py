"""SSH CA設定の読み込みテスト"""
from datetime import timedelta

import pytest

from core.settings import ApplicationSettings
from features.sshca.application.services import SSHCASettings, resolve_services
from features.sshca.domain.exceptions import SSHCAConfigurationError


def test_settings_defaults():
    settings = SSHCASettings.from_mapping({})

    assert settings.default_lease_ttl == timedelta(hours=768)
    assert settings.max_lease_ttl == timedelta(hours=768)
    assert settings.clock_skew == timedelta(seconds=30)
    assert settings.serial_retry_limit == 5
    assert settings.tidy_safety_buffer == timedelta(hours=72)


def test_settings_read_flask_config_values():
    settings = SSHCASettings.from_mapping(
        {
            "SSHCA_DEFAULT_LEASE_TTL": "1h",
            "SSHCA_MAX_LEASE_TTL": "2h",
            "SSHCA_CLOCK_SKEW": "0",
            "SSHCA_SERIAL_RETRY_LIMIT": "2",
            "SSHCA_TIDY_SAFETY_BUFFER": "15m",
        }
    )

    assert settings.default_lease_ttl == timedelta(hours=1)
    assert settings.max_lease_ttl == timedelta(hours=2)
    assert settings.clock_skew == timedelta(0)
    assert settings.serial_retry_limit == 2
    assert settings.tidy_safety_buffer == timedelta(minutes=15)


@pytest.mark.parametrize(
    "config",
    [
        {"SSHCA_DEFAULT_LEASE_TTL": "soon"},
        {"SSHCA_DEFAULT_LEASE_TTL": "3h", "SSHCA_MAX_LEASE_TTL": "2h"},
        {"SSHCA_MAX_LEASE_TTL": "-1h"},
        {"SSHCA_CLOCK_SKEW": "-5s"},
        {"SSHCA_SERIAL_RETRY_LIMIT": "many"},
        {"SSHCA_SERIAL_RETRY_LIMIT": "-1"},
        {"SSHCA_TIDY_SAFETY_BUFFER": "0"},
    ],
)
def test_invalid_settings_raise_configuration_error(config):
    with pytest.raises(SSHCAConfigurationError):
        SSHCASettings.from_mapping(config)


def test_storage_backend_validation():
    assert ApplicationSettings({}).sshca_storage_backend == "sqlalchemy"
    assert ApplicationSettings({"SSHCA_STORAGE_BACKEND": " Memory "}).sshca_storage_backend == "memory"

    with pytest.raises(ValueError):
        ApplicationSettings({"SSHCA_STORAGE_BACKEND": "vault"}).sshca_storage_backend


def test_tidy_schedule_settings():
    settings = ApplicationSettings(
        {"SSHCA_TIDY_INTERVAL_SECONDS": "600", "SSHCA_TIDY_SAFETY_BUFFER": "1h"}
    )

    assert settings.sshca_tidy_interval_seconds == 600
    assert settings.sshca_tidy_safety_buffer == "1h"
    assert ApplicationSettings({}).sshca_tidy_interval_seconds == 3600


def test_create_app_rejects_unknown_storage_backend():
    from webapp import create_app
    from webapp.config import TestConfig

    with pytest.raises(SSHCAConfigurationError):
        create_app(TestConfig, overrides={"SSHCA_STORAGE_BACKEND": "vault"})


def test_create_app_with_memory_storage():
    from webapp import create_app
    from webapp.config import TestConfig
    from features.sshca.infrastructure.storage import InMemoryStorage

    app = create_app(
        TestConfig,
        overrides={"SSHCA_STORAGE_BACKEND": "memory", "SSHCA_DEFAULT_LEASE_TTL": "1h"},
    )

    with app.app_context():
        services = resolve_services()
        assert isinstance(services.storage, InMemoryStorage)
        assert services.settings.default_lease_ttl == timedelta(hours=1)


def test_resolve_services_requires_initialized_app():
    from flask import Flask

    with Flask(__name__).app_context():
        with pytest.raises(SSHCAConfigurationError):
            resolve_services()


def test_flask_config_takes_precedence_over_environment():
    from flask import Flask

    settings = ApplicationSettings(
        {"SSHCA_TIDY_INTERVAL_SECONDS": "600", "SSHCA_TIDY_SAFETY_BUFFER": "1h"}
    )
    app = Flask(__name__)
    app.config["SSHCA_TIDY_INTERVAL_SECONDS"] = 120

    with app.app_context():
        assert settings.sshca_tidy_interval_seconds == 120
        assert settings.sshca_tidy_safety_buffer == "1h"


def test_invalid_interval_falls_back_to_default():
    settings = ApplicationSettings({"SSHCA_TIDY_INTERVAL_SECONDS": "often"})

    assert settings.sshca_tidy_interval_seconds == 3600


def test_celery_urls_fall_back_to_redis_url():
    settings = ApplicationSettings({"REDIS_URL": "redis://cache:6379/1"})

    assert settings.celery_broker_url == "redis://cache:6379/1"
    assert settings.celery_result_backend == "redis://cache:6379/1"
    assert ApplicationSettings({}).celery_broker_url == "redis://localhost:6379/0"
