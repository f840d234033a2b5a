from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import logging

from api.deps import get_db_session, get_quiz_service
from repositories.quiz import ProcedureRepository, QuizQuestionRepository, QuizSubmissionRepository
from schemas.quiz import (
    ProcedureCreate,
    ProcedureRead,
    ProcedureUpdate,
    QuizOptionCreate,
    QuizOptionRead,
    QuizOptionUpdate,
    QuizQuestionCreate,
    QuizQuestionRead,
    QuizQuestionUpdate,
    QuizStats,
    QuizSubmissionDetail,
    QuizSubmissionList,
    SubmissionReplay,
)
from schemas.responses import StandardErrorResponse, StandardSuccessResponse
from services.quiz_service import QuizService

logger = logging.getLogger(__name__)

router = APIRouter(responses={404: {"model": StandardErrorResponse}})


# Analytics and submissions

@router.get("/stats", response_model=QuizStats, summary="Quiz analytics")
async def get_stats(
    top_n: Optional[int] = Query(default=None, ge=1, le=50),
    service: QuizService = Depends(get_quiz_service),
):
    return await service.get_stats(top_n)


@router.get("/submissions", response_model=QuizSubmissionList, summary="List quiz submissions")
async def list_submissions(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db_session),
):
    """
    Submissions newest first.
    """
    repo = QuizSubmissionRepository(db)
    items = await repo.list_submissions(limit=limit, offset=offset)
    total = await repo.count_submissions()
    return QuizSubmissionList(items=items, total=total, limit=limit, offset=offset)


@router.get("/submissions/{submission_id}", response_model=QuizSubmissionDetail, summary="Get a quiz submission")
async def get_submission(submission_id: int, db: AsyncSession = Depends(get_db_session)):
    submission = await QuizSubmissionRepository(db).get_submission_detail(submission_id)
    if not submission:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")
    return submission


@router.get(
    "/submissions/{submission_id}/replay",
    response_model=SubmissionReplay,
    summary="Re-score a submission against its snapshot and the current options"
)
async def replay_submission(submission_id: int, service: QuizService = Depends(get_quiz_service)):
    replay = await service.replay_submission(submission_id)
    if not replay:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")
    return replay


# Questions and options

@router.get("/questions", response_model=List[QuizQuestionRead], summary="List all quiz questions")
async def list_questions(db: AsyncSession = Depends(get_db_session)):
    return await QuizQuestionRepository(db).list_questions(active_only=False)


@router.post(
    "/questions",
    response_model=QuizQuestionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a quiz question with its options"
)
async def create_question(question: QuizQuestionCreate, db: AsyncSession = Depends(get_db_session)):
    created = await QuizQuestionRepository(db).create_question(question)
    logger.info(f"Created quiz question {created.id} with {len(created.options)} options")
    return created


@router.put("/questions/{question_id}", response_model=QuizQuestionRead, summary="Update a quiz question")
async def update_question(
    question_id: int,
    question: QuizQuestionUpdate,
    db: AsyncSession = Depends(get_db_session),
):
    updated = await QuizQuestionRepository(db).update_question(question_id, question)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")
    return updated


@router.delete("/questions/{question_id}", response_model=StandardSuccessResponse, summary="Delete a quiz question and its options")
async def delete_question(question_id: int, db: AsyncSession = Depends(get_db_session)):
    outcome = await QuizQuestionRepository(db).delete_question(question_id)
    if outcome is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")
    logger.info(f"Quiz question {question_id} {outcome}")
    if outcome == "deactivated":
        return StandardSuccessResponse(
            message="Question has recorded answers and was deactivated instead",
            data={"question_id": question_id, "is_active": False},
        )
    return StandardSuccessResponse(message="Question deleted")


@router.post(
    "/questions/{question_id}/options",
    response_model=QuizOptionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add an option to a question"
)
async def add_option(question_id: int, option: QuizOptionCreate, db: AsyncSession = Depends(get_db_session)):
    created = await QuizQuestionRepository(db).add_option(question_id, option)
    if not created:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")
    return created


@router.put("/options/{option_id}", response_model=QuizOptionRead, summary="Update a quiz option")
async def update_option(option_id: int, option: QuizOptionUpdate, db: AsyncSession = Depends(get_db_session)):
    updated = await QuizQuestionRepository(db).update_option(option_id, option)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Option not found")
    return updated


@router.delete("/options/{option_id}", response_model=StandardSuccessResponse, summary="Delete a quiz option")
async def delete_option(option_id: int, db: AsyncSession = Depends(get_db_session)):
    if not await QuizQuestionRepository(db).delete_option(option_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Option not found")
    return StandardSuccessResponse(message="Option deleted")


# Procedure catalog

@router.get("/procedures", response_model=List[ProcedureRead], summary="List all procedures")
async def list_procedures(db: AsyncSession = Depends(get_db_session)):
    return await ProcedureRepository(db).list_procedures(active_only=False)


@router.post(
    "/procedures",
    response_model=ProcedureRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a procedure"
)
async def create_procedure(procedure: ProcedureCreate, db: AsyncSession = Depends(get_db_session)):
    try:
        return await ProcedureRepository(db).create(procedure)
    except IntegrityError:
        await db.rollback()
        logger.warning(f"Procedure key {procedure.key} already exists")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Procedure '{procedure.key}' already exists"
        )


@router.put("/procedures/{procedure_id}", response_model=ProcedureRead, summary="Update a procedure")
async def update_procedure(
    procedure_id: int,
    procedure: ProcedureUpdate,
    db: AsyncSession = Depends(get_db_session),
):
    repo = ProcedureRepository(db)
    existing = await repo.get(procedure_id)
    if not existing:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Procedure not found")
    return await repo.update(existing, procedure)
