"""Centralised application settings abstraction.

This module exposes :class:`ApplicationSettings`, which consolidates the
configuration lookups of the service.  The process environment (or any mapping
provided) is the backing store; inside an application context the Flask
configuration takes precedence so tests can override values per app.

The global :data:`settings` instance should be used for production code, while
tests can instantiate their own :class:`ApplicationSettings` with a dedicated
mapping to validate behaviour in isolation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping, Optional, cast

from flask import current_app, has_app_context

if TYPE_CHECKING:  # pragma: no cover
    from flask import Flask

SSHCA_STORAGE_BACKENDS = ("sqlalchemy", "memory")


@dataclass(frozen=True)
class _EnvironmentFacade:
    """Thin wrapper that provides ``Mapping`` compatible access to env vars."""

    source: Mapping[str, str]

    @classmethod
    def from_environ(cls, env: Optional[Mapping[str, str]] = None) -> "_EnvironmentFacade":
        return cls(source=os.environ if env is None else env)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.source.get(key, default)


class ApplicationSettings:
    """Domain level representation of configuration values.

    Explicit properties are preferred over generic ``get`` access so the rest
    of the application operates on intent-revealing names and default values
    live in a single location.
    """

    def __init__(self, env: Optional[Mapping[str, str]] = None) -> None:
        self._env = _EnvironmentFacade.from_environ(env)

    # ------------------------------------------------------------------
    # Generic helpers
    # ------------------------------------------------------------------
    def _get(self, key: str, default: Optional[str] = None):
        if has_app_context():
            app = cast("Flask", current_app)
            if key in app.config:
                return app.config.get(key)

        value = self._env.get(key)
        if value is not None:
            return value
        return default

    def get(self, key: str, default=None):
        """Return the configured value for *key* or *default* if missing."""

        value = self._get(key)
        return default if value is None else value

    def get_int(self, key: str, default: int = 0) -> int:
        """Return an integer configuration value."""

        value = self._get(key)
        if value is None:
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    # ------------------------------------------------------------------
    # SSH CA configuration
    # ------------------------------------------------------------------
    @property
    def sshca_storage_backend(self) -> str:
        """Return the storage backend used for SSH CA records.

        ``sqlalchemy`` (the default) persists records in the application
        database; ``memory`` keeps them in the process only.
        """

        value = self.get("SSHCA_STORAGE_BACKEND", "sqlalchemy")
        normalised = str(value).strip().lower() or "sqlalchemy"
        if normalised not in SSHCA_STORAGE_BACKENDS:
            raise ValueError(
                f"Unsupported SSH CA storage backend '{value}'. "
                "Available values: " + ", ".join(SSHCA_STORAGE_BACKENDS)
            )
        return normalised

    @property
    def sshca_tidy_safety_buffer(self) -> str:
        return str(self.get("SSHCA_TIDY_SAFETY_BUFFER", "72h"))

    @property
    def sshca_tidy_interval_seconds(self) -> int:
        return self.get_int("SSHCA_TIDY_INTERVAL_SECONDS", 3600)

    # ------------------------------------------------------------------
    # Celery configuration
    # ------------------------------------------------------------------
    @property
    def celery_broker_url(self) -> str:
        return (
            self._get("CELERY_BROKER_URL")
            or self._get("REDIS_URL")
            or "redis://localhost:6379/0"
        )

    @property
    def celery_result_backend(self) -> str:
        return (
            self._get("CELERY_RESULT_BACKEND")
            or self._get("REDIS_URL")
            or "redis://localhost:6379/0"
        )


settings = ApplicationSettings()

__all__ = ["ApplicationSettings", "SSHCA_STORAGE_BACKENDS", "settings"]
