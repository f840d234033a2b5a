from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
import logging
import time

from api.deps import get_attribution, get_quiz_service
from core.exceptions import PersistenceError, QuizError
from schemas.responses import StandardErrorResponse
from schemas.quiz import (
    Attribution,
    ProcedureRead,
    QuizQuestionRead,
    QuizSubmissionRequest,
    QuizSubmissionResult,
)
from services.quiz_service import QuizService

logger = logging.getLogger(__name__)

router = APIRouter(responses={400: {"model": StandardErrorResponse}, 500: {"model": StandardErrorResponse}})


@router.get(
    "/questions",
    response_model=List[QuizQuestionRead],
    summary="Get the active quiz questions"
)
async def get_questions(service: QuizService = Depends(get_quiz_service)):
    """
    Active questions in display order, each with its options.
    """
    return await service.get_quiz()


@router.get(
    "/procedures",
    response_model=List[ProcedureRead],
    summary="Get the procedure catalog"
)
async def get_procedures(service: QuizService = Depends(get_quiz_service)):
    return await service.get_procedures()


@router.post(
    "/submit",
    response_model=QuizSubmissionResult,
    status_code=status.HTTP_201_CREATED,
    summary="Submit quiz answers"
)
async def submit_quiz(
    request: QuizSubmissionRequest,
    attribution: Attribution = Depends(get_attribution),
    service: QuizService = Depends(get_quiz_service),
):
    """
    Score the answers, record the submission and return the smile type
    with the recommended procedures.
    """
    start_time = time.time()
    request_id = f"quiz_submit_{int(start_time * 1000)}"

    logger.info(f"Request {request_id}: Quiz submission with {len(request.answers)} answers")

    try:
        result = await service.submit(request, attribution)

        duration = time.time() - start_time
        logger.info(
            f"Request {request_id}: Recorded submission {result.submission_id} "
            f"({result.smile_type}) in {duration:.2f}s"
        )
        return result

    except PersistenceError as e:
        logger.error(f"Request {request_id}: Failed to record quiz submission: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record quiz submission"
        )
    except (QuizError, ValueError) as e:
        logger.warning(f"Request {request_id}: Invalid quiz submission: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
