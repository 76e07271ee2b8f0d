import uuid
from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from quizapp.schemas.quiz import QuestionOut
from quizapp.utils.scoring import ScoreSummary


def new_session_id() -> str:
    return uuid.uuid4().hex


class QuizStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    ERROR = "error"


@dataclass
class Answer:
    question_id: Any
    answer: Any
    is_correct: Optional[bool] = None
    time_spent: Optional[float] = None
    hints_used: Optional[int] = None
    index: Optional[int] = None

    @property
    def key(self) -> str:
        return str(self.question_id)

    def to_dict(self) -> dict:
        data = {"questionId": self.question_id, "answer": self.answer}
        optional = {
            "isCorrect": self.is_correct,
            "timeSpent": self.time_spent,
            "hintsUsed": self.hints_used,
            "index": self.index,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Answer":
        def pick(camel, snake):
            return data.get(camel, data.get(snake))

        return cls(
            question_id=pick("questionId", "question_id"),
            answer=data.get("answer"),
            is_correct=pick("isCorrect", "is_correct"),
            time_spent=pick("timeSpent", "time_spent"),
            hints_used=pick("hintsUsed", "hints_used"),
            index=data.get("index"),
        )


def answers_to_list(answers: Mapping[str, Answer]) -> List[dict]:
    return [answer.to_dict() for answer in answers.values()]


def answers_from_snapshot(raw: Any) -> Dict[str, Answer]:
    """Accept a stored answer list, or a question-id keyed mapping."""
    if isinstance(raw, Mapping):
        raw = list(raw.values())
    if not isinstance(raw, list):
        return {}
    answers = {}
    for item in raw:
        if isinstance(item, Mapping) and item.get("questionId", item.get("question_id")) is not None:
            answer = Answer.from_dict(item)
            answers[answer.key] = answer
    return answers


@dataclass
class AuthRedirectSnapshot:
    """Unauthenticated progress captured before a sign-in redirect."""

    slug: Optional[str]
    quiz_id: Any
    quiz_type: Optional[str]
    answers: Dict[str, Answer] = field(default_factory=dict)
    current_question_index: int = 0
    temp_results: Optional[ScoreSummary] = None


@dataclass
class QuizSession:
    quiz_id: Any = None
    quiz_type: Optional[str] = None
    slug: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    questions: List[QuestionOut] = field(default_factory=list)
    total_questions: int = 0
    current_question_index: int = 0
    answers: Dict[str, Answer] = field(default_factory=dict)
    status: QuizStatus = QuizStatus.IDLE
    error: Optional[str] = None
    results: Optional[ScoreSummary] = None
    completion: Optional[dict] = None
    session_id: str = field(default_factory=new_session_id)
    last_saved: Optional[float] = None
    auth_redirect_state: Optional[AuthRedirectSnapshot] = None

    def copy(self) -> "QuizSession":
        return deepcopy(self)
