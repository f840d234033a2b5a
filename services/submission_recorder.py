"""
Durable record of completed quizzes.
"""

from datetime import datetime, timezone
from typing import Mapping, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import EmptySubmissionError, PersistenceError
from core.logging import get_logger
from repositories.quiz import QuizSubmissionRepository
from schemas.quiz import Attribution, Classification, QuizAnswerIn, Recommendation, RespondentInfo
from services.quiz_engine import selected_option_ids

logger = get_logger(__name__)


class SubmissionRecorder:
    """Writes a submission together with its answers, all or nothing."""

    def __init__(self, db_session: AsyncSession):
        self.repository = QuizSubmissionRepository(db_session)

    async def record(
        self,
        respondent: RespondentInfo,
        answers: Sequence[QuizAnswerIn],
        ranked: Sequence[Recommendation],
        classification: Classification,
        attribution: Attribution,
        option_lookup: Mapping[int, Mapping[str, int]],
    ) -> int:
        if not answers:
            raise EmptySubmissionError("A quiz submission needs at least one answered question")

        submission_data = {
            **respondent.model_dump(),
            "smile_type": classification.smile_type,
            "smile_type_name": classification.smile_type_name,
            "recommendations": [recommendation.model_dump() for recommendation in ranked],
            "ip_address": attribution.ip_address,
            "user_agent": attribution.user_agent,
            "completed_at": datetime.now(timezone.utc),
            "notification_sent": False,
        }

        answer_rows = []
        for answer in answers:
            option_ids = selected_option_ids(answer)
            answer_rows.append({
                "question_id": answer.question_id,
                "selected_options": option_ids,
                "option_points": {
                    str(option_id): dict(option_lookup[option_id])
                    for option_id in option_ids
                    if option_id in option_lookup
                },
            })

        try:
            submission_id = await self.repository.create_with_answers(submission_data, answer_rows)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to record quiz submission: {str(e)}") from e

        logger.info(
            "Quiz submission recorded",
            submission_id=submission_id,
            answers=len(answer_rows),
            smile_type=classification.smile_type,
        )
        return submission_id

    async def mark_notified(self, submission_id: int) -> bool:
        """
        Flag the submission once its lead notification went out.

        Async entry point; the Celery worker runs the same update through
        repositories.quiz.mark_notified_sync on its sync session.
        """
        updated = await self.repository.mark_notified(submission_id)
        if not updated:
            logger.warning("mark_notified on unknown submission", submission_id=submission_id)
        return updated
