# quizapp/models/user_quiz_attempt.py
from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from quizapp.core.database import Base


class UserQuizAttempt(Base):
    __tablename__ = "user_quiz_attempts"
    # One attempt per user and quiz; a new completion overwrites it
    __table_args__ = (
        UniqueConstraint("user_id", "user_quiz_id", name="uq_attempt_user_quiz"),
    )

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    user_quiz_id = Column(
        Integer, ForeignKey("user_quizzes.id"), nullable=False, index=True
    )

    score = Column(Numeric(7, 2), nullable=False)
    time_spent = Column(Integer, nullable=False)  # seconds
    accuracy = Column(Numeric(5, 2), nullable=False)  # percent correct

    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self):
        return (
            f"<UserQuizAttempt(id={self.id}, user_id={self.user_id}, "
            f"quiz_id={self.user_quiz_id}, score={self.score})>"
        )
