from sqlalchemy.orm import Session, selectinload

from quizapp.core.decorator import APIException
from quizapp.models.user import User
from quizapp.models.user_quiz import UserQuiz
from quizapp.models.user_quiz_attempt import UserQuizAttempt
from quizapp.schemas.quiz import AttemptQuestionOut, AttemptResultOut, QuizType


class QuizService:
    def __init__(self, db: Session):
        self.db = db

    def get_quiz(self, quiz_type: QuizType, slug: str) -> UserQuiz:
        """Get a quiz with its questions by type and slug"""
        quiz = (
            self.db.query(UserQuiz)
            .options(selectinload(UserQuiz.questions))
            .filter(UserQuiz.slug == slug, UserQuiz.quiz_type == quiz_type.value)
            .first()
        )

        if not quiz:
            raise APIException("Quiz not found", 404)

        return quiz

    def get_attempt_result(
        self, user: User, quiz_type: QuizType, slug: str
    ) -> AttemptResultOut:
        """Get the user's persisted attempt for a quiz"""
        quiz = self.get_quiz(quiz_type, slug)

        attempt = (
            self.db.query(UserQuizAttempt)
            .options(selectinload(UserQuizAttempt.attempt_questions))
            .filter(
                UserQuizAttempt.user_id == user.id,
                UserQuizAttempt.user_quiz_id == quiz.id,
            )
            .first()
        )

        if not attempt:
            raise APIException("No attempt found for this quiz", 404)

        return AttemptResultOut(
            attempt_id=attempt.id,
            quiz_id=quiz.id,
            slug=quiz.slug,
            type=quiz_type,
            score=float(attempt.score),
            accuracy=float(attempt.accuracy),
            time_spent=attempt.time_spent,
            best_score=float(quiz.best_score) if quiz.best_score is not None else None,
            last_attempted=quiz.last_attempted,
            questions=[
                AttemptQuestionOut.model_validate(row)
                for row in attempt.attempt_questions
            ],
        )
