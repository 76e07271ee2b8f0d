import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import NoResultFound
from sqlalchemy.orm import Session, selectinload

from quizapp.core.decorator import APIException, db_exception
from quizapp.models.user import User
from quizapp.models.user_quiz import UserQuiz
from quizapp.models.user_quiz_attempt import UserQuizAttempt
from quizapp.models.user_quiz_attempt_question import UserQuizAttemptQuestion
from quizapp.schemas.quiz import (
    ANSWER_MODELS,
    SERVER_GRADED_TYPES,
    CompletionRequest,
    CompletionResponse,
    QuizType,
    SubmittedAnswer,
)
from quizapp.utils.scoring import count_correct, judge_answer
from quizapp.utils.submission import normalize_answer_value

logger = logging.getLogger(__name__)

# Dialects with INSERT .. ON CONFLICT DO UPDATE
UPSERT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def format_validation_errors(exc: ValidationError) -> List[str]:
    return [
        f"{'.'.join(str(part) for part in error['loc']) or 'answer'}: {error['msg']}"
        for error in exc.errors()
    ]


def validate_answer_shapes(
    quiz_type: QuizType, answers: List[Any]
) -> Tuple[List[SubmittedAnswer], List[Dict[str, Any]]]:
    """Parse every answer with the model for ``quiz_type``.

    Returns the parsed answers and one detail entry per offending answer.
    """
    model = ANSWER_MODELS[quiz_type]
    parsed = []
    details = []
    for index, raw in enumerate(answers):
        if not isinstance(raw, dict):
            details.append(
                {"index": index, "questionId": None, "errors": ["answer must be an object"]}
            )
            continue
        try:
            parsed.append(model.model_validate(raw))
        except ValidationError as e:
            details.append(
                {
                    "index": index,
                    "questionId": raw.get("questionId"),
                    "errors": format_validation_errors(e),
                }
            )
    return parsed, details


def parse_quiz_id(raw: Any) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


class QuizCompletionService:
    def __init__(self, db: Session):
        self.db = db

    def get_quiz(self, quiz_id: Any) -> Optional[UserQuiz]:
        """Load the authoritative quiz, with its questions, by numeric id"""
        numeric_id = parse_quiz_id(quiz_id)
        if numeric_id is None:
            return None
        return (
            self.db.query(UserQuiz)
            .options(selectinload(UserQuiz.questions))
            .filter(UserQuiz.id == numeric_id)
            .first()
        )

    @staticmethod
    def check_question_membership(
        quiz: UserQuiz, answers: List[SubmittedAnswer]
    ) -> List[Dict[str, Any]]:
        known = {question.id for question in quiz.questions}
        return [
            {
                "index": index,
                "questionId": answer.question_id,
                "errors": [f"question {answer.question_id} does not belong to this quiz"],
            }
            for index, answer in enumerate(answers)
            if answer.question_id not in known
        ]

    @db_exception
    def complete_quiz(
        self,
        user: User,
        quiz: UserQuiz,
        request: CompletionRequest,
        answers: List[SubmittedAnswer],
        slug: str,
    ) -> CompletionResponse:
        """
        Persist a scored attempt and its aggregates in one transaction.
        Re-submitting overwrites the user's attempt for this quiz.
        """
        now = datetime.now(timezone.utc)
        quiz_type = QuizType(quiz.quiz_type)
        questions = {question.id: question for question in quiz.questions}

        # Later answers for the same question replace earlier ones
        latest: Dict[int, SubmittedAnswer] = {}
        for answer in answers:
            latest[answer.question_id] = answer

        graded = []
        for question_id, answer in latest.items():
            is_correct = judge_answer(
                quiz_type,
                answer.answer,
                questions[question_id].answer,
                answer.is_correct,
            )
            graded.append((answer, is_correct))

        correct_answers = count_correct(is_correct for _, is_correct in graded)
        total_questions = len(questions) or request.total_questions or len(latest)

        if quiz_type in SERVER_GRADED_TYPES:
            score = float(correct_answers)
        else:
            score = float(request.score)

        if total_questions:
            accuracy = round(min(100.0, max(0.0, 100.0 * score / total_questions)), 2)
        else:
            accuracy = 0.0
        time_spent = int(round(request.total_time))

        attempt = self._upsert_attempt(user.id, quiz.id, score, time_spent, accuracy)
        self._upsert_attempt_questions(attempt, graded)
        best_score = self._update_quiz_aggregate(quiz, score, now)
        self._update_user_totals(user.id, time_spent)

        self.db.commit()
        self.db.refresh(attempt)

        logger.info(
            f"Quiz {quiz.id} completed by user {user.id}: "
            f"{correct_answers}/{total_questions} correct, score={score}"
        )

        return CompletionResponse(
            attempt_id=attempt.id,
            quiz_id=quiz.id,
            slug=slug,
            type=quiz_type,
            score=score,
            total_questions=total_questions,
            correct_answers=correct_answers,
            accuracy=accuracy,
            total_time=time_spent,
            best_score=best_score,
            completed_at=now,
        )

    def _upsert_attempt(
        self, user_id: int, quiz_id: int, score: float, time_spent: int, accuracy: float
    ) -> UserQuizAttempt:
        """
        Insert or overwrite the (user, quiz) attempt in one statement, so two
        first submissions racing each other end as last write wins.
        """
        dialect = self.db.get_bind().dialect.name
        if dialect not in UPSERT_INSERTS:
            raise APIException(f"Attempt upsert is not supported on {dialect}", 500)

        values = {"score": score, "time_spent": time_spent, "accuracy": accuracy}
        statement = UPSERT_INSERTS[dialect](UserQuizAttempt).values(
            user_id=user_id, user_quiz_id=quiz_id, **values
        )
        statement = statement.on_conflict_do_update(
            index_elements=["user_id", "user_quiz_id"],
            set_={**values, "updated_at": func.now()},
        )
        self.db.execute(statement)

        # Lock the row for the rest of the transaction and load it into the session
        return (
            self.db.query(UserQuizAttempt)
            .filter(
                UserQuizAttempt.user_id == user_id,
                UserQuizAttempt.user_quiz_id == quiz_id,
            )
            .populate_existing()
            .with_for_update()
            .one()
        )

    def _upsert_attempt_questions(self, attempt: UserQuizAttempt, graded) -> None:
        existing = {
            row.question_id: row
            for row in self.db.query(UserQuizAttemptQuestion)
            .filter(UserQuizAttemptQuestion.attempt_id == attempt.id)
            .all()
        }

        for answer, is_correct in graded:
            values = {
                "user_answer": normalize_answer_value(answer.answer),
                "is_correct": is_correct,
                "time_spent": int(round(answer.time_spent)),
            }
            row = existing.pop(answer.question_id, None)
            if row:
                for key, value in values.items():
                    setattr(row, key, value)
            else:
                self.db.add(
                    UserQuizAttemptQuestion(
                        attempt_id=attempt.id, question_id=answer.question_id, **values
                    )
                )

        # Rows left over belong to the superseded attempt
        for stale in existing.values():
            self.db.delete(stale)

        self.db.flush()

    def _update_quiz_aggregate(self, quiz: UserQuiz, score: float, now: datetime) -> float:
        if quiz.best_score is None:
            quiz.best_score = score
        else:
            quiz.best_score = max(float(quiz.best_score), score)
        quiz.last_attempted = now
        quiz.time_ended = now
        self.db.flush()
        return float(quiz.best_score)

    def _update_user_totals(self, user_id: int, time_spent: int) -> None:
        updated = (
            self.db.query(User)
            .filter(User.id == user_id)
            .update(
                {
                    User.total_quizzes_attempted: User.total_quizzes_attempted + 1,
                    User.total_time_spent: User.total_time_spent + time_spent,
                },
                synchronize_session=False,
            )
        )
        if not updated:
            raise NoResultFound(f"User {user_id} not found")


def raise_for_details(message: str, details: List[Dict[str, Any]]) -> None:
    if details:
        raise APIException(message, 400, details)
