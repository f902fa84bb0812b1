"""Celery background tasks."""

from .celery_app import celery  # noqa: F401

import features.sshca.tasks.tidy_certificates  # noqa: E402,F401
