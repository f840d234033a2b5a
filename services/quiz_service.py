"""
Smile assessment quiz service.

Runs one submission end to end: answer checks, scoring, ranking,
classification, the durable write and the notification handoff.
"""

from typing import Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from core.exceptions import EmptySubmissionError, InvalidAnswerError
from core.logging import get_logger
from models.quiz import DentalProcedure
from repositories.quiz import ProcedureRepository, QuizQuestionRepository, QuizSubmissionRepository
from schemas.quiz import (
    TAG_DELIMITER,
    Attribution,
    ProcedureRead,
    QuizAnswerIn,
    QuizQuestionRead,
    QuizStats,
    QuizSubmissionRequest,
    QuizSubmissionResult,
    Recommendation,
    RecommendedProcedure,
    RespondentInfo,
    SubmissionReplay,
)
from services.quiz_engine import (
    aggregate_submissions,
    classify,
    rank_scores,
    score_answers,
    selected_option_ids,
    snapshot_lookup,
)
from services.submission_recorder import SubmissionRecorder

logger = get_logger(__name__)

TIMELINE_CATEGORY = "timeline"
INTEREST_CATEGORY = "goals"


class QuizService:
    def __init__(self, db_session: AsyncSession, config: Settings, dispatcher=None,
                 recorder: Optional[SubmissionRecorder] = None):
        self.config = config
        self.dispatcher = dispatcher
        self.questions = QuizQuestionRepository(db_session)
        self.procedures = ProcedureRepository(db_session)
        self.submissions = QuizSubmissionRepository(db_session)
        self.recorder = recorder or SubmissionRecorder(db_session)

    async def get_quiz(self) -> List[QuizQuestionRead]:
        return await self.questions.list_questions(active_only=True)

    async def get_procedures(self) -> List[ProcedureRead]:
        return [ProcedureRead.model_validate(p) for p in await self.procedures.list_procedures()]

    def prepare_answers(
        self,
        answers: Sequence[QuizAnswerIn],
        questions_by_id: Dict[int, QuizQuestionRead],
    ) -> List[QuizAnswerIn]:
        """
        Normalize answers against the question bank.

        Answers to unknown or inactive questions, options that do not belong to
        the answered question, and repeated answers to one question are dropped.
        """
        prepared: List[QuizAnswerIn] = []
        answered = set()

        for answer in answers:
            question = questions_by_id.get(answer.question_id)
            if question is None:
                logger.warning("resolution_gap", kind="question", question_id=answer.question_id)
                continue
            if question.id in answered:
                logger.warning("Duplicate answer ignored", question_id=question.id)
                continue

            own_options = {option.id for option in question.options}
            option_ids = []
            for option_id in answer.option_ids:
                if option_id in own_options:
                    option_ids.append(option_id)
                else:
                    logger.warning("resolution_gap", kind="option", option_id=option_id, question_id=question.id)

            if not option_ids:
                continue
            if not question.is_multi_select and len(option_ids) > 1:
                raise InvalidAnswerError(f"Question {question.id} accepts a single option")

            answered.add(question.id)
            prepared.append(QuizAnswerIn(question_id=question.id, selected=option_ids))

        return prepared

    @staticmethod
    def derive_tag(answers: Sequence[QuizAnswerIn], questions_by_id: Dict[int, QuizQuestionRead],
                   category: str) -> Optional[str]:
        """Labels picked on the questions of one category, joined into a single tag."""
        labels = []
        for answer in answers:
            question = questions_by_id[answer.question_id]
            if question.category != category:
                continue
            by_id = {option.id: option.label for option in question.options}
            labels.extend(by_id[option_id] for option_id in answer.option_ids if option_id in by_id)
        return TAG_DELIMITER.join(labels) or None

    def present(self, ranked: Sequence[Recommendation], procedures: Sequence[DentalProcedure]) -> List[RecommendedProcedure]:
        catalog = {p.key: p for p in procedures}
        presented = []
        for recommendation in ranked:
            procedure = catalog.get(recommendation.key)
            if procedure is None:
                continue
            presented.append(RecommendedProcedure(
                key=recommendation.key,
                score=recommendation.score,
                name=procedure.name,
                description=procedure.description,
                timeframe=procedure.timeframe,
                icon=procedure.icon,
                color_gradient=procedure.color_gradient,
                category=procedure.category,
            ))
            if len(presented) >= self.config.QUIZ_MAX_RECOMMENDATIONS:
                break
        return presented

    async def submit(self, request: QuizSubmissionRequest, attribution: Attribution) -> QuizSubmissionResult:
        questions = await self.questions.list_questions(active_only=True)
        questions_by_id = {question.id: question for question in questions}

        answers = self.prepare_answers(request.answers, questions_by_id)
        if not answers:
            raise EmptySubmissionError("At least one quiz question must be answered")

        option_lookup = {option.id: option.points for question in questions for option in question.options}
        procedures = await self.procedures.list_procedures()
        catalog_order = [procedure.key for procedure in procedures]

        scores = score_answers(answers, option_lookup, catalog_keys=catalog_order)
        ranked = rank_scores(scores, catalog_order)
        classification = classify(ranked, {procedure.key: procedure.category for procedure in procedures})

        respondent = RespondentInfo(
            first_name=request.first_name,
            email=request.email,
            phone=request.phone,
            timeline=request.timeline or self.derive_tag(answers, questions_by_id, TIMELINE_CATEGORY),
            primary_interest=request.primary_interest or self.derive_tag(answers, questions_by_id, INTEREST_CATEGORY),
            source=request.source,
            utm_source=request.utm_source,
            utm_medium=request.utm_medium,
            utm_campaign=request.utm_campaign,
        )

        submission_id = await self.recorder.record(
            respondent, answers, ranked, classification, attribution, option_lookup
        )

        if self.dispatcher is not None:
            self.dispatcher.dispatch(submission_id)

        return QuizSubmissionResult(
            submission_id=submission_id,
            smile_type=classification.smile_type,
            smile_type_name=classification.smile_type_name,
            recommendations=self.present(ranked, procedures),
            scores={key: score for key, score in scores.items() if score > 0},
        )

    async def get_stats(self, top_n: Optional[int] = None) -> QuizStats:
        submissions = await self.submissions.list_for_stats()
        return aggregate_submissions(submissions, top_n=top_n or self.config.QUIZ_STATS_TOP_N)

    async def replay_submission(self, submission_id: int) -> Optional[SubmissionReplay]:
        """Re-score a stored submission from its point snapshot and from the current options."""
        detail = await self.submissions.get_submission_detail(submission_id)
        if detail is None:
            return None

        option_ids = [option_id for answer in detail.answers for option_id in selected_option_ids(answer)]
        current_lookup = await self.questions.get_option_points(option_ids)

        snapshot_scores = {k: v for k, v in score_answers(detail.answers, snapshot_lookup(detail.answers)).items() if v}
        current_scores = {k: v for k, v in score_answers(detail.answers, current_lookup).items() if v}

        return SubmissionReplay(
            submission_id=submission_id,
            recorded=detail.recommendations,
            snapshot_scores=snapshot_scores,
            current_scores=current_scores,
            diverged=snapshot_scores != current_scores,
        )
