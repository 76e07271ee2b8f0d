# quizapp/models/user_quiz.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from quizapp.core.database import Base


class UserQuiz(Base):
    __tablename__ = "user_quizzes"

    id = Column(Integer, primary_key=True, index=True)

    # Creator of the quiz
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    slug = Column(String(255), unique=True, nullable=False, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    quiz_type = Column(String(20), nullable=False)  # mcq, code, blanks, openended

    # Aggregates, maintained by quiz completion
    best_score = Column(Numeric(7, 2), nullable=True)
    last_attempted = Column(DateTime(timezone=True), nullable=True)
    time_started = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    time_ended = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self):
        return f"<UserQuiz(id={self.id}, slug='{self.slug}', type='{self.quiz_type}')>"
