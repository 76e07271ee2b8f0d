# quizapp/models/relations.py

from sqlalchemy.orm import relationship

from .user import User
from .user_quiz import UserQuiz
from .user_quiz_attempt import UserQuizAttempt
from .user_quiz_attempt_question import UserQuizAttemptQuestion
from .user_quiz_question import UserQuizQuestion


def setup_relationships():
    """
    Configure all SQLAlchemy relationships between models.
    """

    # Quiz to Questions (One-to-Many), ordered as authored
    UserQuiz.questions = relationship(
        "UserQuizQuestion",
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="UserQuizQuestion.id",
    )
    UserQuizQuestion.quiz = relationship("UserQuiz", back_populates="questions")

    # Quiz to Attempts (One-to-Many)
    UserQuiz.attempts = relationship(
        "UserQuizAttempt",
        back_populates="quiz",
        cascade="all, delete-orphan",
    )
    UserQuizAttempt.quiz = relationship("UserQuiz", back_populates="attempts")

    # User to Attempts (One-to-Many)
    User.quiz_attempts = relationship("UserQuizAttempt", back_populates="user")
    UserQuizAttempt.user = relationship("User", back_populates="quiz_attempts")

    # Attempt to per-question results (One-to-Many)
    UserQuizAttempt.attempt_questions = relationship(
        "UserQuizAttemptQuestion",
        back_populates="attempt",
        cascade="all, delete-orphan",
        order_by="UserQuizAttemptQuestion.question_id",
    )
    UserQuizAttemptQuestion.attempt = relationship(
        "UserQuizAttempt", back_populates="attempt_questions"
    )
