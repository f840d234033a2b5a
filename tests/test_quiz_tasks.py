from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from celery.exceptions import Retry

from core.exceptions import NotificationError
from models.quiz import QuizSubmission
from repositories.quiz import mark_notified_sync
from tasks import quiz_tasks
from tasks.quiz_tasks import NotificationDispatcher, deliver_quiz_notification, send_quiz_notification


@pytest.fixture
def submission_id(seeded):
    with seeded() as db:
        submission = QuizSubmission(
            first_name="Jamie",
            email="jamie@example.com",
            smile_type="cosmetic",
            smile_type_name="Glow-Up Seeker",
            recommendations=[
                {"key": "veneers", "score": 4},
                {"key": "fullMakeover", "score": 3},
                {"key": "whitening", "score": 3},
            ],
            completed_at=datetime.now(timezone.utc),
        )
        db.add(submission)
        db.commit()
        return submission.id


def email_service(side_effect=None):
    service = MagicMock()
    service.send_quiz_notification = AsyncMock(return_value={"id": "msg"}, side_effect=side_effect)
    return service


def is_notified(session_factory, submission_id):
    with session_factory() as db:
        return db.get(QuizSubmission, submission_id).notification_sent


def test_deliver_sends_and_marks_notified(seeded, submission_id):
    service = email_service()
    assert deliver_quiz_notification(submission_id, session_factory=seeded, email_service=service) is True

    service.send_quiz_notification.assert_awaited_once()
    sent_submission, names = service.send_quiz_notification.await_args.args
    assert sent_submission.id == submission_id
    # uncataloged keys have no display name
    assert names == ["Porcelain Veneers", "Professional Teeth Whitening"]
    assert is_notified(seeded, submission_id) is True


def test_deliver_skips_already_notified(seeded, submission_id):
    deliver_quiz_notification(submission_id, session_factory=seeded, email_service=email_service())

    service = email_service()
    assert deliver_quiz_notification(submission_id, session_factory=seeded, email_service=service) is False
    service.send_quiz_notification.assert_not_awaited()


def test_deliver_unknown_submission(seeded):
    service = email_service()
    assert deliver_quiz_notification(424242, session_factory=seeded, email_service=service) is False
    service.send_quiz_notification.assert_not_awaited()


def test_failed_send_leaves_submission_unnotified(seeded, submission_id):
    service = email_service(side_effect=NotificationError("mailgun down"))
    with pytest.raises(NotificationError):
        deliver_quiz_notification(submission_id, session_factory=seeded, email_service=service)
    assert is_notified(seeded, submission_id) is False


def test_task_retries_retryable_failures(monkeypatch):
    error = NotificationError("mailgun down", retryable=True)
    monkeypatch.setattr(quiz_tasks, "deliver_quiz_notification", MagicMock(side_effect=error))
    retry = MagicMock(return_value=Retry())
    monkeypatch.setattr(send_quiz_notification, "retry", retry)

    with pytest.raises(Retry):
        send_quiz_notification(11)

    retry.assert_called_once_with(exc=error, countdown=5)


def test_task_gives_up_on_permanent_failures(monkeypatch):
    error = NotificationError("no key", reason="not_configured", retryable=False)
    monkeypatch.setattr(quiz_tasks, "deliver_quiz_notification", MagicMock(side_effect=error))
    retry = MagicMock()
    monkeypatch.setattr(send_quiz_notification, "retry", retry)

    assert send_quiz_notification(11) is False
    retry.assert_not_called()


def test_task_returns_delivery_result(monkeypatch):
    deliver = MagicMock(return_value=True)
    monkeypatch.setattr(quiz_tasks, "deliver_quiz_notification", deliver)
    assert send_quiz_notification(12) is True
    deliver.assert_called_once_with(12)


def test_dispatcher_queues_task():
    app = MagicMock()
    assert NotificationDispatcher(app).dispatch(5) is True
    app.send_task.assert_called_once_with("send_quiz_notification", args=[5])


def test_dispatcher_swallows_broker_errors():
    app = MagicMock()
    app.send_task.side_effect = ConnectionError("redis unreachable")
    assert NotificationDispatcher(app).dispatch(5) is False


def test_mark_notified_sync(seeded, submission_id):
    with seeded() as db:
        assert mark_notified_sync(db, submission_id) is True
        assert mark_notified_sync(db, 424242) is False
    assert is_notified(seeded, submission_id) is True
