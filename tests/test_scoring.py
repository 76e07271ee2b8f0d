from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from quizapp.schemas.quiz import QuizType
from quizapp.utils.scoring import (
    ScoreSummary,
    calculate_percentage,
    count_correct,
    is_blank_correct,
    is_mcq_correct,
    judge_answer,
    score_session,
)


def question(qid, answer):
    return SimpleNamespace(id=qid, answer=answer)


def answer(value, is_correct=None):
    return SimpleNamespace(answer=value, is_correct=is_correct)


@pytest.mark.parametrize(
    "score,max_score,expected",
    [(2, 3, 67), (1, 8, 13), (1, 3, 33), (3, 3, 100), (0, 5, 0), (0, 0, 0)],
)
def test_calculate_percentage_rounds_half_up(score, max_score, expected):
    assert calculate_percentage(score, max_score) == expected


def test_mcq_compares_selected_option():
    assert is_mcq_correct("A", " A ")
    assert not is_mcq_correct("a", "A")
    assert not is_mcq_correct(None, "A")


def test_blanks_ignore_case_and_whitespace():
    assert is_blank_correct("  Python ", "python")
    assert is_blank_correct({"blank-1": "LIST"}, "list")
    assert not is_blank_correct("tuple", "list")
    assert not is_blank_correct({}, "list")


def test_server_graded_types_ignore_supplied_flag():
    assert judge_answer(QuizType.MCQ, "B", "A", supplied_is_correct=True) is False
    assert judge_answer("blanks", "List", "list", supplied_is_correct=False) is True


def test_ai_graded_types_trust_supplied_flag():
    assert judge_answer(QuizType.CODE, "print(1)", "print(2)", True) is True
    assert judge_answer(QuizType.OPENENDED, "anything", None, None) is False


def test_mcq_without_expected_answer_falls_back_to_supplied_flag():
    assert judge_answer(QuizType.MCQ, "A", None, True) is True


def test_count_correct_counts_only_true():
    assert count_correct([True, False, None, True]) == 2


def test_score_session_marks_unanswered_questions_skipped():
    questions = [question(1, "A"), question(2, "B"), question(3, "C")]
    answers = {"1": answer("A"), "2": answer("C")}
    submitted_at = datetime(2026, 1, 1, tzinfo=timezone.utc)

    summary = score_session(QuizType.MCQ, questions, answers, submitted_at)

    assert summary.score == 1
    assert summary.max_score == 3
    assert summary.percentage == 33
    assert summary.answered == 2
    assert [r.skipped for r in summary.question_results] == [False, False, True]
    assert summary.submitted_at == "2026-01-01T00:00:00+00:00"


def test_score_never_exceeds_question_count():
    questions = [question(1, "x")]
    answers = {"1": answer("x", True), "9": answer("y", True)}

    summary = score_session(QuizType.CODE, questions, answers)

    assert 0 <= summary.score <= summary.max_score


def test_score_summary_copy_is_independent():
    summary = score_session(QuizType.MCQ, [question(1, "A")], {"1": answer("A")})
    copied = summary.copy()
    copied.question_results[0].is_correct = False

    assert summary.question_results[0].is_correct is True
    assert ScoreSummary.from_dict(summary.to_dict()).score == 1
