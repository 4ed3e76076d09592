from datetime import timedelta

import pytest

from servicehub.domain.bookings.schemas import BookingUpdate
from servicehub.domain.bookings.service import BookingService
from servicehub.domain.inbox.repository import ConversationRepository
from servicehub.events import Events
from servicehub.models import Booking, BookingStatus, Channel, FormSubmission, FormSubmissionStatus, MessageSender
from servicehub.queue import JobType, QueueName
from servicehub.shared.time import utcnow


def subjects(provider, recipient):
    return [m["subject"] for m in provider.to(recipient)]


@pytest.mark.asyncio
async def test_new_booking_confirms_schedules_reminder_and_creates_forms(
    automation, book, backend, email_provider, run_due, fetch
):
    pending = []
    automation.bus.on(Events.FORM_PENDING, pending.append)

    booking = await book(hours_ahead=48)
    await automation.bus.drain()

    # Confirmation goes out right away, without waiting on the queue
    assert subjects(email_provider, "ada@example.com") == ["Welcome!", "Booking Confirmed"]

    [reminder] = backend.find(JobType.SEND_BOOKING_REMINDER, booking_id=booking.id)
    assert timedelta(hours=23, minutes=59) < reminder.eligible_at - utcnow() <= timedelta(hours=24)
    assert len(backend.find(JobType.SEND_BOOKING_CONFIRMATION, booking_id=booking.id)) == 1
    assert len(backend.find(JobType.CREATE_FORM_SUBMISSION, booking_id=booking.id)) == 1

    assert await run_due() == 2

    # The queued confirmation is deduplicated against the one already sent
    assert subjects(email_provider, "ada@example.com").count("Booking Confirmed") == 1

    [submission] = fetch(FormSubmission, booking_id=booking.id)
    assert submission.status == FormSubmissionStatus.PENDING.value
    assert [p["form_submission_id"] for p in pending] == [submission.id]
    assert len(backend.find(JobType.SEND_FORM_REMINDER, form_submission_id=submission.id)) == 1
    assert len(backend.find(JobType.CHECK_FORM_OVERDUE, form_submission_id=submission.id)) == 1


@pytest.mark.asyncio
async def test_booking_succeeds_while_broker_is_down(automation, book, backend, email_provider, fetch):
    backend.available = False

    booking = await book(hours_ahead=48)
    await automation.bus.drain()

    assert [b.id for b in fetch(Booking)] == [booking.id]
    assert backend.jobs == {}
    assert "Booking Confirmed" in subjects(email_provider, "ada@example.com")


@pytest.mark.asyncio
async def test_booking_inside_reminder_window_gets_no_reminder(automation, book, backend):
    booking = await book(hours_ahead=3)
    await automation.bus.drain()

    assert backend.find(JobType.SEND_BOOKING_REMINDER, booking_id=booking.id) == []
    assert len(backend.find(JobType.CREATE_FORM_SUBMISSION, booking_id=booking.id)) == 1


@pytest.mark.asyncio
async def test_reminder_job_sends_the_reminder(automation, book, backend, email_provider, run_due):
    booking = await book(hours_ahead=48)

    await run_due(until=utcnow() + timedelta(hours=25))

    assert subjects(email_provider, "ada@example.com").count("Booking Reminder") == 1
    assert backend.find(JobType.SEND_BOOKING_REMINDER, booking_id=booking.id) == []


@pytest.mark.asyncio
async def test_rescheduling_moves_the_reminder(automation, db, workspace, book, backend):
    booking = await book(hours_ahead=48)
    await automation.bus.drain()

    new_time = utcnow() + timedelta(hours=96)
    await BookingService(db, automation).update_booking(workspace.id, booking.id, BookingUpdate(scheduledAt=new_time))
    await automation.bus.drain()

    [reminder] = backend.find(JobType.SEND_BOOKING_REMINDER, booking_id=booking.id)
    assert timedelta(hours=71, minutes=59) < reminder.eligible_at - utcnow() <= timedelta(hours=72)


@pytest.mark.asyncio
async def test_rescheduling_after_the_reminder_ran_queues_a_new_one(
    automation, db, workspace, book, backend, email_provider, run_due
):
    booking = await book(hours_ahead=48)
    await run_due(until=utcnow() + timedelta(hours=25))
    assert subjects(email_provider, "ada@example.com").count("Booking Reminder") == 1

    new_time = utcnow() + timedelta(days=7)
    await BookingService(db, automation).update_booking(workspace.id, booking.id, BookingUpdate(scheduledAt=new_time))
    await automation.bus.drain()

    [reminder] = backend.find(JobType.SEND_BOOKING_REMINDER, booking_id=booking.id)
    assert timedelta(days=5, hours=23, minutes=59) < reminder.eligible_at - utcnow() <= timedelta(days=6)


@pytest.mark.asyncio
async def test_cancelling_a_booking_cancels_its_scheduled_jobs(automation, db, workspace, book, backend, run_due):
    booking = await book(hours_ahead=48)
    await run_due()
    assert len(backend.find(booking_id=booking.id)) == 3  # booking reminder, form reminder, overdue check

    updated = []
    automation.bus.on(Events.BOOKING_UPDATED, updated.append)
    await BookingService(db, automation).update_booking(
        workspace.id, booking.id, BookingUpdate(status="cancelled")
    )
    await automation.bus.drain()

    assert backend.find(booking_id=booking.id) == []
    assert updated[0]["changes"] == {"status": BookingStatus.CANCELLED.value}


@pytest.mark.asyncio
async def test_deleting_a_booking_cancels_its_scheduled_jobs(automation, db, workspace, book, backend, fetch):
    booking = await book(hours_ahead=48)
    await automation.bus.drain()

    BookingService(db, automation).delete_booking(workspace.id, booking.id)
    await automation.bus.drain()

    assert backend.find(JobType.SEND_BOOKING_REMINDER) == []
    assert fetch(Booking) == []


@pytest.mark.asyncio
async def test_reminder_for_cancelled_booking_is_skipped(automation, db, workspace, book, email_provider):
    booking = await book(hours_ahead=48)
    await automation.bus.drain()
    booking.status = BookingStatus.CANCELLED.value
    db.commit()

    result = await automation.queue.dispatch(
        QueueName.AUTOMATION, JobType.SEND_BOOKING_REMINDER.value, {"workspace_id": workspace.id, "booking_id": booking.id}
    )

    assert result == {"sent": 0, "failed": 0}
    assert "Booking Reminder" not in subjects(email_provider, "ada@example.com")


@pytest.mark.asyncio
@pytest.mark.parametrize("skip_after_staff_reply, expected", [(False, 1), (True, 0)])
async def test_reminder_after_staff_reply_follows_setting(
    automation, db, workspace, conversation, book, email_provider, skip_after_staff_reply, expected
):
    automation.handlers.settings.reminder_skip_after_staff_reply = skip_after_staff_reply
    booking = await book(hours_ahead=48)
    await automation.bus.drain()
    # Recorded directly, as if the reminder was already running when staff replied
    ConversationRepository.create_message(db, conversation, Channel.EMAIL.value, MessageSender.STAFF.value, "On it!")

    await automation.queue.dispatch(
        QueueName.AUTOMATION, JobType.SEND_BOOKING_REMINDER.value, {"workspace_id": workspace.id, "booking_id": booking.id}
    )

    assert subjects(email_provider, "ada@example.com").count("Booking Reminder") == expected


@pytest.mark.asyncio
async def test_form_creation_runs_once_per_booking(automation, workspace, book, backend, run_due, fetch):
    booking = await book(hours_ahead=48)
    data = {"workspace_id": workspace.id, "booking_id": booking.id}

    duplicate = await automation.scheduler.schedule_form_submission_creation(data)
    assert duplicate.duplicate is True
    await run_due()

    # A redelivered job finds the submission and creates nothing
    again = await automation.queue.dispatch(QueueName.AUTOMATION, JobType.CREATE_FORM_SUBMISSION.value, data)

    assert again == {"created": 0}
    assert len(fetch(FormSubmission, booking_id=booking.id)) == 1
