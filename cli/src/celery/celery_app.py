import logging
from datetime import datetime, timedelta, timezone

from celery import Celery
from dotenv import load_dotenv

from core.logging_config import log_task_error, log_task_info, setup_task_logging
from core.settings import settings
from webapp import create_app

# .envファイルを読み込み
load_dotenv()

# Create Celery instance
celery = Celery(
    'cli.src.celery.celery_app',
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

# Configure Celery
celery.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
)

# Create Flask app context for Celery tasks
flask_app = create_app()


def setup_celery_logging():
    """Setup structured console logging for Celery workers."""

    for name in ("celery.task", "celery.task.lifecycle", "celery.task.sshca"):
        setup_task_logging(name)


setup_celery_logging()


class ContextTask(celery.Task):
    """Make celery tasks work with Flask app context."""

    def __call__(self, *args, **kwargs):
        with flask_app.app_context():
            lifecycle_logger = logging.getLogger("celery.task.lifecycle")
            started_at = datetime.now(timezone.utc)
            request_id = getattr(getattr(self, "request", None), "id", None)

            log_task_info(
                lifecycle_logger,
                "Celery task started",
                event="celery.task.started",
                task_name=self.name,
                request_id=request_id,
            )
            try:
                result = self.run(*args, **kwargs)
            except Exception as exc:
                log_task_error(
                    lifecycle_logger,
                    "Celery task failed",
                    event="celery.task.failed",
                    task_name=self.name,
                    request_id=request_id,
                    error=str(exc),
                )
                raise

            log_task_info(
                lifecycle_logger,
                "Celery task finished",
                event="celery.task.succeeded",
                task_name=self.name,
                request_id=request_id,
                duration_seconds=(datetime.now(timezone.utc) - started_at).total_seconds(),
            )
            return result


celery.Task = ContextTask

# Import tasks to register them
from cli.src.celery import tasks  # noqa: E402,F401

# Beat schedule
celery.conf.beat_schedule = {
    "sshca-tidy": {
        "task": "sshca.tidy",
        "schedule": timedelta(seconds=settings.sshca_tidy_interval_seconds),
        "kwargs": {
            "tidy_cert_store": True,
            "tidy_revocation_list": True,
            "safety_buffer": settings.sshca_tidy_safety_buffer,
        },
    },
}
