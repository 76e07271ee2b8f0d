"""Local session for fill-in-blanks and open-ended quizzes.

Pure, synchronous operations over an ordered answer list. Scoring of these
answers happens upstream, so ``complete_quiz`` only records the outcome.
"""

import logging
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Union

from quizapp.client.state import Answer
from quizapp.schemas.quiz import QuestionOut, QuizOut

logger = logging.getLogger(__name__)


class TextQuizStatus(str, Enum):
    IDLE = "idle"
    SUCCEEDED = "succeeded"


@dataclass
class SavedQuizState:
    answers: List[Answer]
    current_question_index: int


@dataclass
class TextQuizState:
    quiz_id: Any = None
    slug: Optional[str] = None
    title: Optional[str] = None
    quiz_type: Optional[str] = None
    questions: List[QuestionOut] = field(default_factory=list)
    current_question_index: int = 0
    answers: List[Answer] = field(default_factory=list)
    status: TextQuizStatus = TextQuizStatus.IDLE
    is_completed: bool = False
    results: Optional[dict] = None
    saved_state: Optional[SavedQuizState] = None


class TextQuizSession:
    def __init__(self, state: Optional[TextQuizState] = None):
        self.state = state or TextQuizState()

    def initialize_quiz(self, quiz_data: Union[QuizOut, dict]) -> None:
        quiz = quiz_data if isinstance(quiz_data, QuizOut) else QuizOut.model_validate(quiz_data)
        self.state = TextQuizState(
            quiz_id=quiz.id,
            slug=quiz.slug,
            title=quiz.title,
            quiz_type=quiz.quiz_type.value,
            questions=list(quiz.questions),
        )

    def submit_answer_locally(self, answer: Answer) -> None:
        """Record an answer, replacing any earlier answer to the same question in place."""
        for position, existing in enumerate(self.state.answers):
            if existing.key == answer.key:
                self.state.answers[position] = answer
                return
        self.state.answers.append(answer)

    def set_current_question(self, index: int) -> None:
        if self.state.questions and not 0 <= index < len(self.state.questions):
            logger.warning(
                f"Ignoring question index {index}; quiz has {len(self.state.questions)} questions"
            )
            return
        self.state.current_question_index = index

    def complete_quiz(
        self,
        completed_at: Optional[str] = None,
        score: Optional[float] = None,
        quiz_id: Any = None,
        title: Optional[str] = None,
    ) -> None:
        self.state.is_completed = True
        self.state.status = TextQuizStatus.SUCCEEDED
        self.state.results = {
            "quizId": quiz_id if quiz_id is not None else self.state.quiz_id,
            "title": title or self.state.title,
            "score": score,
            "completedAt": completed_at or datetime.now(timezone.utc).isoformat(),
            "answers": [answer.to_dict() for answer in self.state.answers],
        }

    def save_quiz_state(self) -> None:
        self.state.saved_state = SavedQuizState(
            answers=deepcopy(self.state.answers),
            current_question_index=self.state.current_question_index,
        )

    def restore_quiz_state(self) -> None:
        saved = self.state.saved_state
        if saved is None:
            return
        self.state.answers = deepcopy(saved.answers)
        self.state.current_question_index = saved.current_question_index

    def clear_saved_state(self) -> None:
        self.state.saved_state = None

    def reset(self) -> None:
        self.state = TextQuizState()
