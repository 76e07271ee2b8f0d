# quizapp/models/user_quiz_attempt_question.py
from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text, UniqueConstraint

from quizapp.core.database import Base


class UserQuizAttemptQuestion(Base):
    __tablename__ = "user_quiz_attempt_questions"
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_attempt_question"),
    )

    id = Column(Integer, primary_key=True, index=True)

    attempt_id = Column(
        Integer, ForeignKey("user_quiz_attempts.id"), nullable=False, index=True
    )
    question_id = Column(
        Integer, ForeignKey("user_quiz_questions.id"), nullable=False, index=True
    )

    user_answer = Column(Text, nullable=False)  # wire value, JSON for structured answers
    is_correct = Column(Boolean, default=False, nullable=False)
    time_spent = Column(Integer, default=0, nullable=False)  # seconds

    def __repr__(self):
        return (
            f"<UserQuizAttemptQuestion(attempt_id={self.attempt_id}, "
            f"question_id={self.question_id}, is_correct={self.is_correct})>"
        )
