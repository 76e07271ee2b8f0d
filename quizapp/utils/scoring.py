"""Quiz-type-aware correctness and score aggregation.

Pure functions shared by the quiz client and the completion service. MCQ and
fill-in-blank answers are judged here against the authoritative answer; code
and open-ended answers are graded elsewhere (an AI grader) and only their
supplied ``is_correct`` flag is aggregated.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional

from quizapp.schemas.quiz import SERVER_GRADED_TYPES, QuizType


@dataclass
class QuestionResult:
    question_id: Any
    is_correct: bool
    user_answer: Any = None
    correct_answer: Any = None
    skipped: bool = False


@dataclass
class ScoreSummary:
    score: int
    max_score: int
    percentage: int
    question_results: List[QuestionResult] = field(default_factory=list)
    submitted_at: str = ""

    @property
    def answered(self) -> int:
        return sum(1 for r in self.question_results if not r.skipped)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "maxScore": self.max_score,
            "percentage": self.percentage,
            "submittedAt": self.submitted_at,
            "questionResults": [
                {
                    "questionId": r.question_id,
                    "isCorrect": r.is_correct,
                    "userAnswer": r.user_answer,
                    "correctAnswer": r.correct_answer,
                    "skipped": r.skipped,
                }
                for r in self.question_results
            ],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScoreSummary":
        return cls(
            score=data.get("score", 0),
            max_score=data.get("maxScore", 0),
            percentage=data.get("percentage", 0),
            submitted_at=data.get("submittedAt", ""),
            question_results=[
                QuestionResult(
                    question_id=r.get("questionId"),
                    is_correct=bool(r.get("isCorrect")),
                    user_answer=r.get("userAnswer"),
                    correct_answer=r.get("correctAnswer"),
                    skipped=bool(r.get("skipped")),
                )
                for r in data.get("questionResults", [])
            ],
        )

    def copy(self) -> "ScoreSummary":
        return ScoreSummary.from_dict(self.to_dict())


def normalize_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def is_mcq_correct(selected: Any, correct_option: Any) -> bool:
    if selected is None or correct_option is None:
        return False
    return str(selected).strip() == str(correct_option).strip()


def is_blank_correct(user_answer: Any, expected: Any) -> bool:
    # Structured blanks answers map blank ids to words; the first blank is graded
    if isinstance(user_answer, Mapping):
        user_answer = next(iter(user_answer.values()), None)
    if user_answer is None or expected is None:
        return False
    return normalize_text(user_answer) == normalize_text(expected)


def judge_answer(
    quiz_type: QuizType,
    user_answer: Any,
    expected: Any = None,
    supplied_is_correct: Optional[bool] = None,
) -> bool:
    """Decide whether one answer is correct under its quiz type's authority."""
    quiz_type = QuizType(quiz_type)
    if quiz_type in SERVER_GRADED_TYPES and expected is not None:
        if quiz_type == QuizType.MCQ:
            return is_mcq_correct(user_answer, expected)
        return is_blank_correct(user_answer, expected)
    return supplied_is_correct is True


def count_correct(flags: Iterable[Optional[bool]]) -> int:
    return sum(1 for flag in flags if flag is True)


def calculate_percentage(score: float, max_score: float) -> int:
    if not max_score:
        return 0
    # Half-up rounding, so 2/3 -> 67 and 1/8 -> 13
    return int(math.floor(100 * score / max_score + 0.5))


def score_session(
    quiz_type: QuizType,
    questions: Iterable[Any],
    answers: Mapping[str, Any],
    submitted_at: Optional[datetime] = None,
) -> ScoreSummary:
    """Score every question of a quiz against the answers keyed by question id.

    ``questions`` need ``id`` and ``answer`` attributes, ``answers`` values need
    ``answer`` and ``is_correct``. Unanswered questions count as skipped.
    """
    results = []
    for question in questions:
        answer = answers.get(str(question.id))
        if answer is None:
            results.append(
                QuestionResult(
                    question_id=question.id,
                    is_correct=False,
                    correct_answer=question.answer,
                    skipped=True,
                )
            )
            continue

        results.append(
            QuestionResult(
                question_id=question.id,
                is_correct=judge_answer(
                    quiz_type, answer.answer, question.answer, answer.is_correct
                ),
                user_answer=answer.answer,
                correct_answer=question.answer,
            )
        )

    score = count_correct(r.is_correct for r in results)
    max_score = len(results)
    submitted_at = submitted_at or datetime.now(timezone.utc)
    return ScoreSummary(
        score=score,
        max_score=max_score,
        percentage=calculate_percentage(score, max_score),
        question_results=results,
        submitted_at=submitted_at.isoformat(),
    )
