# quizapp/schemas/quiz.py
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class QuizType(str, Enum):
    MCQ = "mcq"
    CODE = "code"
    BLANKS = "blanks"
    OPENENDED = "openended"


# Correctness for these types is recomputed on the server from the stored answer.
# Code and open-ended answers are graded upstream and their isCorrect is trusted.
SERVER_GRADED_TYPES = frozenset({QuizType.MCQ, QuizType.BLANKS})


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        allow_inf_nan=False,
    )


# ==================== Submitted Answers ====================


class AnswerBase(CamelModel):
    """Fields every submitted answer carries, whatever the quiz type."""

    question_id: int
    is_correct: Optional[bool] = None
    time_spent: float = Field(..., ge=0, description="Seconds spent on the question")
    hints_used: Optional[int] = Field(None, ge=0)
    index: Optional[int] = None


class McqAnswer(AnswerBase):
    answer: Union[str, int] = Field(..., description="Selected option")


class CodeAnswer(AnswerBase):
    answer: str
    language: Optional[str] = None


class BlankAnswer(AnswerBase):
    answer: Union[str, Dict[str, Any]] = Field(
        ..., description="Filled word, or a blank-id to word mapping"
    )


class OpenEndedAnswer(AnswerBase):
    answer: str
    similarity: Optional[float] = Field(None, ge=0, le=1)


SubmittedAnswer = Union[McqAnswer, CodeAnswer, BlankAnswer, OpenEndedAnswer]

ANSWER_MODELS = {
    QuizType.MCQ: McqAnswer,
    QuizType.CODE: CodeAnswer,
    QuizType.BLANKS: BlankAnswer,
    QuizType.OPENENDED: OpenEndedAnswer,
}


# ==================== Completion ====================


class CompletionRequest(CamelModel):
    quiz_id: Union[int, str]
    type: QuizType
    answers: List[Dict[str, Any]] = Field(..., min_length=1)
    score: float
    total_time: float = Field(..., ge=0)
    total_questions: Optional[int] = Field(None, ge=0)
    correct_answers: Optional[int] = Field(None, ge=0)


class CompletionResponse(CamelModel):
    success: bool = True
    attempt_id: int
    quiz_id: int
    slug: str
    type: QuizType
    score: float
    total_questions: int
    correct_answers: int
    accuracy: float
    total_time: int
    best_score: float
    completed_at: datetime


# ==================== Quiz Read Models ====================


class QuestionOut(CamelModel):
    id: int
    question: str
    answer: Optional[str] = None
    options: Optional[List[str]] = None
    code_snippet: Optional[str] = None
    question_type: QuizType = Field(
        validation_alias=AliasChoices("type", "question_type", "questionType"),
        serialization_alias="type",
    )


class QuizOut(CamelModel):
    id: int
    slug: str
    title: str
    description: Optional[str] = None
    quiz_type: QuizType = Field(
        validation_alias=AliasChoices("type", "quiz_type", "quizType"),
        serialization_alias="type",
    )
    questions: List[QuestionOut] = []


class AttemptQuestionOut(CamelModel):
    question_id: int
    user_answer: str
    is_correct: bool
    time_spent: int


class AttemptResultOut(CamelModel):
    attempt_id: int
    quiz_id: int
    slug: str
    type: QuizType
    score: float
    accuracy: float
    time_spent: int
    best_score: Optional[float] = None
    last_attempted: Optional[datetime] = None
    questions: List[AttemptQuestionOut] = []
