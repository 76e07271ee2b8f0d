# quizapp/routers/quiz.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
from sqlalchemy.orm import Session

from quizapp.core.config import settings
from quizapp.core.database import get_db
from quizapp.core.decorator import APIException
from quizapp.core.dependencies import get_current_user, get_optional_user
from quizapp.core.limiter import limiter
from quizapp.models.user import User
from quizapp.schemas.quiz import (
    AttemptResultOut,
    CompletionRequest,
    CompletionResponse,
    QuizOut,
    QuizType,
)
from quizapp.services.quiz import QuizService
from quizapp.services.quiz_completion import (
    QuizCompletionService,
    format_validation_errors,
    raise_for_details,
    validate_answer_shapes,
)
from quizapp.utils.submission import find_missing_fields, validate_quiz_submission

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/quizzes",
    tags=["Quizzes"],
    responses={404: {"description": "Not found"}},
)


@router.post("/common/{slug}/complete", response_model=CompletionResponse)
@limiter.limit(settings.quiz_submit_rate_limit)
async def complete_quiz(
    slug: str,
    request: Request,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    """
    Complete a quiz attempt.
    Checks run in order: caller identity, required fields, answer shapes,
    quiz existence. Only then is the attempt written, in one transaction.
    """
    if user is None:
        raise APIException("User not authenticated", 401)

    try:
        payload = await request.json()
    except ValueError:
        payload = None

    missing = find_missing_fields(payload)
    if missing:
        raise APIException(f"Missing required fields: {', '.join(missing)}", 400)

    if not validate_quiz_submission(payload):
        raise APIException("Invalid quiz submission: score and totalTime must be finite numbers", 400)

    try:
        quiz_type = QuizType(payload["type"])
    except ValueError:
        raise APIException(f"Invalid quiz type: {payload['type']}", 400)

    answers, details = validate_answer_shapes(quiz_type, payload["answers"])
    raise_for_details("Invalid answer format", details)

    try:
        completion = CompletionRequest.model_validate(payload)
    except ValidationError as e:
        raise APIException("Invalid quiz submission", 400, format_validation_errors(e))

    service = QuizCompletionService(db)
    quiz = await run_in_threadpool(service.get_quiz, completion.quiz_id)
    if not quiz:
        logger.info(f"Completion for unknown quiz {completion.quiz_id!r} (slug={slug})")
        raise APIException("Quiz not found", 404)

    raise_for_details(
        "Answers reference unknown questions",
        service.check_question_membership(quiz, answers),
    )

    return await run_in_threadpool(
        service.complete_quiz, user, quiz, completion, answers, slug
    )


@router.get("/{quiz_type}/{slug}", response_model=QuizOut)
def get_quiz(
    quiz_type: QuizType,
    slug: str,
    db: Session = Depends(get_db),
):
    """
    Get a quiz and its questions.
    """
    service = QuizService(db)
    return service.get_quiz(quiz_type, slug)


@router.get("/{quiz_type}/{slug}/results", response_model=AttemptResultOut)
def get_quiz_results(
    quiz_type: QuizType,
    slug: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Get the current user's saved attempt for a quiz.
    """
    service = QuizService(db)
    return service.get_attempt_result(current_user, quiz_type, slug)
