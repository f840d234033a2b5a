from core.database import SessionLocal
from celery_app import celery_app
from core.config import settings
from core.exceptions import NotificationError
from models.quiz import DentalProcedure, QuizSubmission
from repositories.quiz import mark_notified_sync
from services.email_service import EmailService
from sqlalchemy import select
import logging
import asyncio

logger = logging.getLogger(__name__)

SEND_QUIZ_NOTIFICATION = "send_quiz_notification"


class NotificationDispatcher:
    """Hands a recorded submission to the worker queue. Never raises."""

    def __init__(self, app=celery_app):
        self.app = app

    def dispatch(self, submission_id: int) -> bool:
        try:
            self.app.send_task(SEND_QUIZ_NOTIFICATION, args=[submission_id])
            logger.info(f"Queued quiz notification for submission {submission_id}")
            return True
        except Exception as e:
            logger.error(f"Failed to queue quiz notification for submission {submission_id}: {e}")
            return False


def _recommendation_names(db, submission: QuizSubmission):
    keys = [r.get("key") for r in (submission.recommendations or [])]
    if not keys:
        return []
    names = dict(db.execute(select(DentalProcedure.key, DentalProcedure.name).where(DentalProcedure.key.in_(keys))).all())
    return [names[key] for key in keys if key in names][:settings.QUIZ_MAX_RECOMMENDATIONS]


def deliver_quiz_notification(submission_id: int, session_factory=SessionLocal, email_service=None) -> bool:
    """
    Send the lead email for one submission and flag it as notified.

    Returns False when the submission is missing or was already notified.
    NotificationError propagates so the caller can decide on a retry.
    """
    email_service = email_service or EmailService(settings)
    with session_factory() as db:
        submission = db.get(QuizSubmission, submission_id)
        if submission is None:
            logger.warning(f"Quiz submission {submission_id} not found, skipping notification")
            return False
        if submission.notification_sent:
            logger.info(f"Quiz submission {submission_id} already notified")
            return False

        recommendations = _recommendation_names(db, submission)
        asyncio.run(email_service.send_quiz_notification(submission, recommendations))

        mark_notified_sync(db, submission_id)
        logger.info(f"Quiz notification delivered for submission {submission_id}")
        return True


@celery_app.task(name=SEND_QUIZ_NOTIFICATION, bind=True, max_retries=3, default_retry_delay=5)
def send_quiz_notification(self, submission_id: int):
    try:
        return deliver_quiz_notification(submission_id)
    except NotificationError as e:
        if e.retryable and self.request.retries < self.max_retries:
            countdown = self.default_retry_delay * (2 ** self.request.retries)
            logger.warning(f"Quiz notification for submission {submission_id} failed ({e.reason}), retrying in {countdown}s")
            raise self.retry(exc=e, countdown=countdown)
        logger.error(f"Quiz notification for submission {submission_id} not sent: {e.reason} - {e}")
        return False
