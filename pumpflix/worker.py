"""Celery worker entry point."""

import sys

import structlog
from celery import Celery
from kombu import Queue
from rich.console import Console

from pumpflix.config import settings

logger = structlog.get_logger()
console = Console()

WORKER_QUEUES = ["exports", "audits", "notifications", "workflow-executions"]

# Create Celery app
celery_app = Celery(
    "pumpflix",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["pumpflix.jobs.tasks"],
)

# Configure Celery
celery_app.conf.update(
    task_serializer=settings.celery_task_serializer,
    accept_content=settings.celery_accept_content,
    result_serializer=settings.celery_result_serializer,
    timezone=settings.celery_timezone,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=settings.max_execution_time,
    task_soft_time_limit=settings.max_execution_time - 60,
    task_queues=[Queue(name) for name in WORKER_QUEUES],
    task_default_queue="workflow-executions",
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    worker_max_tasks_per_child=1000,
)


def main(concurrency: int = 4):
    """Main worker entry point."""
    from pumpflix.server import setup_logging

    setup_logging()
    console.print("Starting PumpFlix Celery worker...")

    try:
        celery_app.worker_main([
            "worker",
            "--loglevel=info",
            f"--concurrency={concurrency}",
            f"--queues={','.join(WORKER_QUEUES)}",
        ])
    except KeyboardInterrupt:
        logger.info("Worker stopped by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
