# quizapp/models/user_quiz_question.py
from sqlalchemy import JSON, Column, ForeignKey, Integer, String, Text

from quizapp.core.database import Base


class UserQuizQuestion(Base):
    __tablename__ = "user_quiz_questions"

    id = Column(Integer, primary_key=True, index=True)
    user_quiz_id = Column(
        Integer, ForeignKey("user_quizzes.id"), nullable=False, index=True
    )

    question = Column(Text, nullable=False)
    # Correct option text for mcq, expected word for blanks, reference answer otherwise
    answer = Column(Text, nullable=True)
    options = Column(JSON, nullable=True)  # ["A", "B", ...] for mcq
    code_snippet = Column(Text, nullable=True)
    question_type = Column(String(20), nullable=False)

    def __repr__(self):
        return f"<UserQuizQuestion(id={self.id}, quiz_id={self.user_quiz_id})>"
