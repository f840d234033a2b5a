"""
Quiz Repositories

Data access for the procedure catalog, the question bank and quiz submissions.
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session, selectinload

from models.quiz import DentalProcedure, QuizQuestion, QuizOption, QuizSubmission, QuizAnswer
from repositories.base import BaseRepository
from schemas.quiz import (
    ProcedureCreate,
    ProcedureUpdate,
    QuizQuestionCreate,
    QuizQuestionUpdate,
    QuizQuestionRead,
    QuizOptionCreate,
    QuizOptionUpdate,
    QuizOptionRead,
    QuizSubmissionRead,
    QuizSubmissionDetail,
    QuizAnswerRead,
)

logger = logging.getLogger(__name__)


class ProcedureRepository(BaseRepository[DentalProcedure, ProcedureCreate, ProcedureUpdate]):
    """Procedure catalog. Catalog order is (sort_order, id)."""

    def __init__(self, db_session: AsyncSession):
        super().__init__(DentalProcedure, db_session)

    async def list_procedures(self, active_only: bool = True) -> List[DentalProcedure]:
        query = select(DentalProcedure).order_by(DentalProcedure.sort_order, DentalProcedure.id)
        if active_only:
            query = query.where(DentalProcedure.is_active.is_(True))
        result = await self.db.execute(query)
        return list(result.scalars().all())


class QuizQuestionRepository:
    """Question bank: questions and the options they own."""

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def _load_question(self, question_id: int) -> Optional[QuizQuestion]:
        query = (
            select(QuizQuestion)
            .where(QuizQuestion.id == question_id)
            .options(selectinload(QuizQuestion.options))
            .execution_options(populate_existing=True)
        )
        result = await self.db_session.execute(query)
        return result.scalar_one_or_none()

    async def list_questions(self, active_only: bool = True) -> List[QuizQuestionRead]:
        try:
            query = (
                select(QuizQuestion)
                .options(selectinload(QuizQuestion.options))
                .order_by(QuizQuestion.sort_order, QuizQuestion.id)
                .execution_options(populate_existing=True)
            )
            if active_only:
                query = query.where(QuizQuestion.is_active.is_(True))
            result = await self.db_session.execute(query)
            return [QuizQuestionRead.model_validate(q) for q in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.exception(f"Database error listing quiz questions: {str(e)}")
            raise

    async def create_question(self, question_data: QuizQuestionCreate) -> QuizQuestionRead:
        try:
            new_question = QuizQuestion(**question_data.model_dump(exclude={"options"}))
            new_question.options = [QuizOption(**option.model_dump()) for option in question_data.options]
            self.db_session.add(new_question)
            await self.db_session.commit()
            return QuizQuestionRead.model_validate(await self._load_question(new_question.id))
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error in create_question: {str(e)}")
            raise

    async def update_question(self, question_id: int, question_data: QuizQuestionUpdate) -> Optional[QuizQuestionRead]:
        try:
            question = await self.db_session.get(QuizQuestion, question_id)
            if not question:
                return None
            for field, value in question_data.model_dump(exclude_unset=True).items():
                setattr(question, field, value)
            await self.db_session.commit()
            return QuizQuestionRead.model_validate(await self._load_question(question_id))
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error in update_question: {str(e)}")
            raise

    async def delete_question(self, question_id: int) -> Optional[str]:
        """
        Delete a question with its options.

        A question that recorded submissions have answered is deactivated
        instead, so their answers and points snapshots survive.
        Returns "deleted", "deactivated", or None if there is no such question.
        """
        try:
            question = await self._load_question(question_id)
            if not question:
                return None
            answered = await self.db_session.scalar(
                select(func.count()).select_from(QuizAnswer).where(QuizAnswer.question_id == question_id)
            )
            if answered:
                question.is_active = False
                await self.db_session.commit()
                return "deactivated"
            await self.db_session.delete(question)
            await self.db_session.commit()
            return "deleted"
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error in delete_question: {str(e)}")
            raise

    async def add_option(self, question_id: int, option_data: QuizOptionCreate) -> Optional[QuizOptionRead]:
        try:
            question = await self.db_session.get(QuizQuestion, question_id)
            if not question:
                return None
            option = QuizOption(question_id=question_id, **option_data.model_dump())
            self.db_session.add(option)
            await self.db_session.commit()
            await self.db_session.refresh(option)
            return QuizOptionRead.model_validate(option)
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error in add_option: {str(e)}")
            raise

    async def update_option(self, option_id: int, option_data: QuizOptionUpdate) -> Optional[QuizOptionRead]:
        try:
            option = await self.db_session.get(QuizOption, option_id)
            if not option:
                return None
            for field, value in option_data.model_dump(exclude_unset=True).items():
                if field == "points" and value is None:
                    continue
                setattr(option, field, value)
            await self.db_session.commit()
            await self.db_session.refresh(option)
            return QuizOptionRead.model_validate(option)
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error in update_option: {str(e)}")
            raise

    async def delete_option(self, option_id: int) -> bool:
        try:
            option = await self.db_session.get(QuizOption, option_id)
            if not option:
                return False
            await self.db_session.delete(option)
            await self.db_session.commit()
            return True
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error in delete_option: {str(e)}")
            raise

    async def get_option_points(self, option_ids: Iterable[int]) -> Dict[int, Dict[str, int]]:
        """Point-weights for the given options; ids that no longer exist are simply absent."""
        option_ids = list(option_ids)
        if not option_ids:
            return {}
        result = await self.db_session.execute(
            select(QuizOption.id, QuizOption.points).where(QuizOption.id.in_(option_ids))
        )
        return {option_id: dict(points or {}) for option_id, points in result.all()}


class QuizSubmissionRepository:
    """Quiz submissions and their answers."""

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def _insert_submission(self, submission_data: dict) -> QuizSubmission:
        submission = QuizSubmission(**submission_data)
        self.db_session.add(submission)
        await self.db_session.flush()
        return submission

    async def _insert_answers(self, submission_id: int, answers: List[dict]) -> None:
        self.db_session.add_all([QuizAnswer(submission_id=submission_id, **answer) for answer in answers])
        await self.db_session.flush()

    async def create_with_answers(self, submission_data: dict, answers: List[dict]) -> int:
        """Insert a submission and its answers in one transaction; nothing is kept on failure."""
        try:
            submission = await self._insert_submission(submission_data)
            await self._insert_answers(submission.id, answers)
            await self.db_session.commit()
            return submission.id
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error recording quiz submission: {str(e)}")
            raise

    async def _load_submission(self, submission_id: int) -> Optional[QuizSubmission]:
        result = await self.db_session.execute(
            select(QuizSubmission)
            .where(QuizSubmission.id == submission_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_submission_detail(self, submission_id: int) -> Optional[QuizSubmissionDetail]:
        submission = await self._load_submission(submission_id)
        if not submission:
            return None

        result = await self.db_session.execute(
            select(QuizAnswer, QuizQuestion.question, QuizQuestion.category)
            .outerjoin(QuizQuestion, QuizAnswer.question_id == QuizQuestion.id)
            .where(QuizAnswer.submission_id == submission_id)
            .order_by(QuizAnswer.id)
        )
        answers = [
            QuizAnswerRead(
                id=answer.id,
                question_id=answer.question_id,
                selected_options=answer.selected_options or [],
                option_points=answer.option_points or {},
                question_text=question_text,
                question_category=question_category,
            )
            for answer, question_text, question_category in result.all()
        ]
        return QuizSubmissionDetail(
            **QuizSubmissionRead.model_validate(submission).model_dump(),
            answers=answers,
        )

    async def list_submissions(self, limit: int = 50, offset: int = 0) -> List[QuizSubmissionRead]:
        result = await self.db_session.execute(
            select(QuizSubmission)
            .order_by(QuizSubmission.completed_at.desc(), QuizSubmission.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return [QuizSubmissionRead.model_validate(s) for s in result.scalars().all()]

    async def count_submissions(self) -> int:
        result = await self.db_session.execute(select(func.count()).select_from(QuizSubmission))
        return result.scalar_one()

    async def list_for_stats(self) -> List[QuizSubmissionRead]:
        result = await self.db_session.execute(select(QuizSubmission).order_by(QuizSubmission.id))
        return [QuizSubmissionRead.model_validate(s) for s in result.scalars().all()]

    async def mark_notified(self, submission_id: int) -> bool:
        try:
            result = await self.db_session.execute(_mark_notified_statement(submission_id))
            await self.db_session.commit()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error in mark_notified: {str(e)}")
            raise


def _mark_notified_statement(submission_id: int):
    return update(QuizSubmission).where(QuizSubmission.id == submission_id).values(notification_sent=True)


def mark_notified_sync(db: Session, submission_id: int) -> bool:
    """Worker-side counterpart of QuizSubmissionRepository.mark_notified, for sync Celery sessions."""
    try:
        result = db.execute(_mark_notified_statement(submission_id))
        db.commit()
        return result.rowcount > 0
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Database error in mark_notified_sync: {str(e)}")
        raise
