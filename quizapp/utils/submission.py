"""Canonical quiz submission payloads and the synchronous submission gate."""

import json
import logging
import math
from typing import Any, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("quizId", "type", "answers", "score", "totalTime")

_SNAKE_TO_WIRE = {
    "question_id": "questionId",
    "is_correct": "isCorrect",
    "time_spent": "timeSpent",
    "hints_used": "hintsUsed",
}


def is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def normalize_answer_value(value: Any) -> str:
    """Wire form of an answer value: strings pass through, anything else is stable JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def _as_wire_dict(answer: Any) -> dict:
    if hasattr(answer, "to_dict"):
        answer = answer.to_dict()
    return {_SNAKE_TO_WIRE.get(key, key): value for key, value in dict(answer).items()}


def fill_answer_defaults(answer: Mapping[str, Any]) -> dict:
    """Default a missing ``isCorrect`` to False and a missing ``timeSpent`` to 0."""
    filled = dict(answer)
    if filled.get("isCorrect") is None:
        filled["isCorrect"] = False
    if filled.get("timeSpent") is None:
        filled["timeSpent"] = 0
    return filled


def build_submission_payload(
    slug: str,
    quiz_type: str,
    answers: Iterable[Any],
    quiz_id: Optional[Any] = None,
    time_taken: Optional[float] = None,
    score: Optional[float] = None,
    correct_answers: Optional[int] = None,
) -> dict:
    """Turn accumulated answers into the payload the completion endpoint accepts.

    ``answers`` may be Answer objects or dicts using wire or snake_case keys.
    ``score`` and ``correct_answers`` are counted from ``isCorrect`` unless the
    caller already scored the attempt upstream (AI-graded open-ended answers).
    """
    wire_answers = []
    for raw in answers:
        answer = fill_answer_defaults(_as_wire_dict(raw))
        answer["answer"] = normalize_answer_value(answer.get("answer"))
        wire_answers.append(answer)

    counted = sum(1 for a in wire_answers if a["isCorrect"] is True)

    return {
        "quizId": quiz_id if quiz_id is not None else slug,
        "slug": slug,
        "type": quiz_type,
        "totalTime": time_taken if time_taken is not None else 0,
        "score": score if score is not None else counted,
        "correctAnswers": correct_answers if correct_answers is not None else counted,
        "answers": wire_answers,
    }


def find_missing_fields(payload: Any) -> List[str]:
    if not isinstance(payload, Mapping):
        return list(REQUIRED_FIELDS)

    missing = []
    for name in REQUIRED_FIELDS:
        value = payload.get(name)
        if name in ("score", "totalTime"):
            # zero is a legitimate score and duration
            if value is None:
                missing.append(name)
        elif name == "answers":
            if not isinstance(value, list) or not value:
                missing.append(name)
        elif value is None or value == "":
            missing.append(name)
    return missing


def validate_quiz_submission(payload: Any) -> bool:
    if not isinstance(payload, Mapping):
        return False
    if find_missing_fields(payload):
        return False
    if not is_number(payload.get("totalTime")):
        logger.debug("Submission rejected: totalTime is not a number")
        return False
    if not is_number(payload.get("score")):
        logger.debug("Submission rejected: score is not a number")
        return False
    return True
