from datetime import timedelta

import pytest

from servicehub.domain.forms.service import FormSubmissionService
from servicehub.events import Events
from servicehub.models import Alert, AlertStatus, AlertType, FormSubmission, FormSubmissionStatus
from servicehub.queue import JobType, QueueName
from servicehub.shared.time import utcnow


@pytest.fixture
def pending_submission(automation, book, run_due, fetch):
    async def _create():
        booking = await book(hours_ahead=72)
        await run_due()
        [submission] = fetch(FormSubmission, booking_id=booking.id)
        return submission

    return _create


@pytest.mark.asyncio
async def test_overdue_check_is_exactly_once(automation, workspace, backend, pending_submission, fetch):
    submission = await pending_submission()
    overdue_events = []
    automation.bus.on(Events.FORM_OVERDUE, overdue_events.append)
    [check] = backend.find(JobType.CHECK_FORM_OVERDUE, form_submission_id=submission.id)

    # Two deliveries of the same job
    first = await automation.queue.dispatch(QueueName.AUTOMATION, check.job_type, check.data, {"job_id": check.job_id})
    second = await automation.queue.dispatch(QueueName.AUTOMATION, check.job_type, check.data, {"job_id": check.job_id})
    await automation.bus.drain()

    assert first == {"overdue": True}
    assert second == {"overdue": False}
    assert len(overdue_events) == 1
    [stored] = fetch(FormSubmission, id=submission.id)
    assert stored.status == FormSubmissionStatus.OVERDUE.value
    alerts = fetch(Alert, type=AlertType.FORM_OVERDUE.value, subject_id=submission.id)
    assert len(alerts) == 1
    assert alerts[0].message == 'Form "Home Access Checklist" is overdue for Ada Lovelace'


@pytest.mark.asyncio
async def test_form_follow_ups_run_in_order(automation, backend, email_provider, pending_submission, run_due, fetch):
    submission = await pending_submission()

    await run_due(until=utcnow() + timedelta(hours=49))

    reminders = [m for m in email_provider.to("ada@example.com") if m["subject"] == "Form Reminder"]
    # The first reminder while pending, the second when the form turns overdue
    assert len(reminders) == 2
    assert all(submission.id in m["content"] for m in reminders)
    [stored] = fetch(FormSubmission, id=submission.id)
    assert stored.status == FormSubmissionStatus.OVERDUE.value
    assert backend.find(form_submission_id=submission.id) == []


@pytest.mark.asyncio
async def test_overdue_check_after_completion_is_a_no_op(automation, db, workspace, backend, pending_submission, fetch):
    submission = await pending_submission()
    [check] = backend.find(JobType.CHECK_FORM_OVERDUE, form_submission_id=submission.id)
    # Picked up by a worker before the completion could cancel it
    backend.jobs.pop(check.job_id)

    FormSubmissionService(db, automation).complete_submission(workspace.id, submission.id)
    result = await automation.queue.dispatch(QueueName.AUTOMATION, check.job_type, check.data)
    await automation.bus.drain()

    assert result == {"overdue": False}
    assert fetch(FormSubmission, id=submission.id)[0].status == FormSubmissionStatus.COMPLETED.value
    assert fetch(Alert, type=AlertType.FORM_OVERDUE.value) == []


@pytest.mark.asyncio
async def test_completing_a_form_cancels_follow_ups(automation, db, workspace, backend, pending_submission):
    submission = await pending_submission()
    assert len(backend.find(form_submission_id=submission.id)) == 2

    completed = FormSubmissionService(db, automation).complete_submission(workspace.id, submission.id)
    await automation.bus.drain()

    assert completed.status == FormSubmissionStatus.COMPLETED.value
    assert completed.completed_at is not None
    assert backend.find(form_submission_id=submission.id) == []


@pytest.mark.asyncio
async def test_completing_an_overdue_form_resolves_its_alert(automation, db, workspace, pending_submission, run_due, fetch):
    submission = await pending_submission()
    await run_due(until=utcnow() + timedelta(hours=49))
    completions = []
    automation.bus.on(Events.FORM_COMPLETED, completions.append)

    service = FormSubmissionService(db, automation)
    db.expire_all()
    service.complete_submission(workspace.id, submission.id)
    service.complete_submission(workspace.id, submission.id)
    await automation.bus.drain()

    assert len(completions) == 1
    [alert] = fetch(Alert, type=AlertType.FORM_OVERDUE.value, subject_id=submission.id)
    assert alert.status == AlertStatus.RESOLVED.value
    assert alert.resolved_at is not None
