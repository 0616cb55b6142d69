"""Test the job queue and background job handlers."""

import json
from email.message import EmailMessage
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from kombu.exceptions import OperationalError

from pumpflix.audit.models import AuditLog
from pumpflix.db_types import utcnow
from pumpflix.exceptions import ConfigurationError, NotFoundError, ServiceUnavailableError
from pumpflix.executions.models import ExecutionLog, ExecutionStatus
from pumpflix.jobs import tasks
from pumpflix.jobs.processor import JobProcessor, send_email_alert, send_slack_alert
from pumpflix.jobs.queue import JOB_ROUTES, JobQueue, JobType
from pumpflix.metrics import metrics
from pumpflix.worker import WORKER_QUEUES, celery_app


@pytest.mark.unit
class TestJobQueue:
    """Routing jobs to Celery tasks."""

    def test_enqueue_routes_by_type(self):
        app = MagicMock()
        app.send_task.return_value.id = "task-123"

        job_id = JobQueue(app).enqueue(JobType.SCHEDULED_EXPORT, {"export_job_id": 5})

        assert job_id == "task-123"
        app.send_task.assert_called_once_with(
            "pumpflix.jobs.scheduled_export", kwargs={"export_job_id": 5}, queue="exports"
        )

    def test_enqueue_accepts_type_value(self):
        app = MagicMock()

        JobQueue(app).enqueue("slack-alert", {"message": "hi"})

        assert app.send_task.call_args.kwargs["queue"] == "notifications"

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            JobQueue(MagicMock()).enqueue("reindex", {})

    def test_broker_down(self):
        app = MagicMock()
        app.send_task.side_effect = OperationalError("connection refused")

        with pytest.raises(ServiceUnavailableError):
            JobQueue(app).enqueue(JobType.EXECUTION_AUDIT, {"execution_id": 1})

    def test_every_route_has_a_task_and_queue(self):
        assert tasks.scheduled_export.name == "pumpflix.jobs.scheduled_export"
        for task_name, queue in JOB_ROUTES.values():
            assert task_name in celery_app.tasks
            assert queue.value in WORKER_QUEUES


async def _running_execution(session, user, workflow_id):
    execution = ExecutionLog(
        workflow_id=workflow_id,
        user_id=user["user"]["id"],
        org_id=user["user"]["org_id"],
        status=ExecutionStatus.RUNNING,
        input={"row": 1},
        meta={},
        started_at=utcnow(),
    )
    session.add(execution)
    await session.commit()
    return execution


@pytest.mark.integration
class TestJobProcessor:
    """Database-backed job handlers."""

    async def test_workflow_execution_completes(
        self, async_client, test_session, helpers, owner, job_queue
    ):
        workflow = await helpers.create_workflow(async_client, owner["headers"])
        execution = await _running_execution(test_session, owner, workflow["id"])

        result = await JobProcessor(test_session, job_queue).workflow_execution(execution.id)

        assert result == {"execution_id": execution.id, "status": "success", "skipped": False}
        await test_session.refresh(execution)
        assert execution.finished_at is not None
        assert execution.duration_ms >= 0
        job_queue.enqueue.assert_called_once_with(
            JobType.EXECUTION_AUDIT, {"execution_id": execution.id}
        )

    async def test_finished_execution_is_skipped(
        self, async_client, test_session, helpers, owner, job_queue
    ):
        workflow = await helpers.create_workflow(async_client, owner["headers"])
        execution = await _running_execution(test_session, owner, workflow["id"])
        execution.status = ExecutionStatus.CANCELLED
        await test_session.commit()

        result = await JobProcessor(test_session, job_queue).workflow_execution(execution.id)

        assert result["skipped"] is True
        assert result["status"] == "cancelled"
        job_queue.enqueue.assert_not_called()

    async def test_execution_audit(self, async_client, test_session, helpers, owner):
        workflow = await helpers.create_workflow(async_client, owner["headers"])
        execution = await _running_execution(test_session, owner, workflow["id"])

        result = await JobProcessor(test_session).execution_audit(execution.id)

        entry = await test_session.get(AuditLog, result["audit_log_id"])
        assert entry.action == "workflow.execution"
        assert entry.resource == "execution"
        assert entry.resource_id == str(execution.id)
        assert entry.meta["workflow_id"] == workflow["id"]
        assert entry.meta["status"] == "running"

    async def test_missing_execution(self, test_session):
        with pytest.raises(NotFoundError):
            await JobProcessor(test_session).execution_audit(999)


@pytest.mark.unit
class TestAlerts:
    """Email and Slack alert delivery."""

    async def test_email_requires_smtp(self, monkeypatch):
        monkeypatch.setattr("pumpflix.jobs.processor.settings.smtp_host", None)

        with pytest.raises(ConfigurationError):
            await send_email_alert("ops@example.com", "Export failed", "See logs")

    async def test_email(self, monkeypatch):
        monkeypatch.setattr("pumpflix.jobs.processor.settings.smtp_host", "smtp.example.com")
        send = AsyncMock()
        monkeypatch.setattr("pumpflix.jobs.processor.aiosmtplib.send", send)

        result = await send_email_alert(
            ["ops@example.com", "cto@example.com"], "Export failed", "See logs"
        )

        assert result == {"recipients": ["ops@example.com", "cto@example.com"]}
        message = send.await_args.args[0]
        assert isinstance(message, EmailMessage)
        assert message["To"] == "ops@example.com, cto@example.com"
        assert message["Subject"] == "Export failed"
        assert send.await_args.kwargs["hostname"] == "smtp.example.com"

    async def test_slack(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, text="ok")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await send_slack_alert(
                "Workflow failed",
                channel="#alerts",
                webhook_url="https://hooks.slack.test/T000",
                client=client,
            )

        assert result == {"channel": "#alerts", "status_code": 200}
        assert str(requests[0].url) == "https://hooks.slack.test/T000"
        assert json.loads(requests[0].content) == {"text": "Workflow failed", "channel": "#alerts"}

    async def test_slack_error_status(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500))

        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await send_slack_alert(
                    "Workflow failed", webhook_url="https://hooks.slack.test/T000", client=client
                )

    async def test_slack_requires_webhook(self, monkeypatch):
        monkeypatch.setattr("pumpflix.jobs.processor.settings.slack_webhook_url", None)

        with pytest.raises(ConfigurationError):
            await send_slack_alert("Workflow failed")


@pytest.mark.unit
class TestTaskHooks:
    """Lifecycle hooks shared by every task."""

    def test_hooks_count_events(self):
        task = tasks.slack_alert
        tags = {"task": task.name}
        before = {
            event: metrics.get_counter(f"jobs_{event}", tags)
            for event in ("started", "completed", "failed")
        }

        task.before_start("task-1", (), {})
        task.on_success({"status_code": 200}, "task-1", (), {})
        task.on_failure(RuntimeError("boom"), "task-2", (), {}, None)

        for event in ("started", "completed", "failed"):
            assert metrics.get_counter(f"jobs_{event}", tags) == before[event] + 1

    def test_retry_policy(self):
        assert tasks.PumpFlixTask.retry_backoff is True
        assert httpx.HTTPError in tasks.RETRYABLE_ERRORS
        assert tasks.PumpFlixTask.max_retries == 3
