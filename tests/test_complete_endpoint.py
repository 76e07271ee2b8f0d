import json

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from quizapp.core.database import SessionLocal
from quizapp.models import User, UserQuiz, UserQuizAttempt, UserQuizAttemptQuestion
from quizapp.routers import quiz as quiz_routes
from quizapp.services.quiz_completion import QuizCompletionService

URL = "/api/quizzes/common/python-basics/complete"


def make_payload(**overrides):
    payload = {
        "quizId": "42",
        "type": "mcq",
        "answers": [
            {"questionId": 222, "answer": "A", "isCorrect": True, "timeSpent": 200},
            {"questionId": 223, "answer": "B", "isCorrect": False, "timeSpent": 250},
            {"questionId": 224, "answer": "C", "isCorrect": True, "timeSpent": 150},
        ],
        "score": 2,
        "totalTime": 600,
    }
    payload.update(overrides)
    return payload


def row_counts():
    session = SessionLocal()
    try:
        return (
            session.query(UserQuizAttempt).count(),
            session.query(UserQuizAttemptQuestion).count(),
        )
    finally:
        session.close()


def load_user(user_id):
    session = SessionLocal()
    try:
        user = session.query(User).filter(User.id == user_id).one()
        return user.total_quizzes_attempted, user.total_time_spent
    finally:
        session.close()


def load_best_score(quiz_id):
    session = SessionLocal()
    try:
        quiz = session.query(UserQuiz).filter(UserQuiz.id == quiz_id).one()
        return float(quiz.best_score) if quiz.best_score is not None else None
    finally:
        session.close()


def test_complete_quiz_persists_attempt(client, seeded, auth_headers):
    resp = client.post(URL, json=make_payload(), headers=auth_headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["quizId"] == 42
    assert body["slug"] == "python-basics"
    assert body["score"] == 2
    assert body["correctAnswers"] == 2
    assert body["totalQuestions"] == 3
    assert body["accuracy"] == 66.67
    assert body["totalTime"] == 600

    assert row_counts() == (1, 3)
    assert load_user(seeded["user_id"]) == (1, 600)
    assert load_best_score(seeded["quiz_id"]) == 2.0


def test_unauthenticated_caller_gets_401_without_writes(client, seeded):
    resp = client.post(URL, json=make_payload())

    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "User not authenticated"}
    assert row_counts() == (0, 0)
    assert load_user(seeded["user_id"]) == (0, 0)


def test_auth_is_checked_before_payload(client, seeded):
    resp = client.post(URL, json={"nonsense": True})
    assert resp.status_code == 401


def test_invalid_token_is_treated_as_anonymous(client, seeded):
    resp = client.post(
        URL, json=make_payload(), headers={"Authorization": "Bearer not-a-token"}
    )
    assert resp.status_code == 401


def test_missing_fields_are_listed(client, seeded, auth_headers):
    payload = make_payload()
    del payload["quizId"]
    del payload["totalTime"]

    resp = client.post(URL, json=payload, headers=auth_headers)

    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert "Missing required fields" in body["error"]
    assert "quizId" in body["error"]
    assert "totalTime" in body["error"]


def test_empty_answers_count_as_missing(client, seeded, auth_headers):
    resp = client.post(URL, json=make_payload(answers=[]), headers=auth_headers)

    assert resp.status_code == 400
    assert resp.json()["error"] == "Missing required fields: answers"


def test_zero_score_is_not_missing(client, seeded, auth_headers):
    resp = client.post(URL, json=make_payload(score=0), headers=auth_headers)
    assert resp.status_code == 200


def test_answer_without_time_spent_returns_details(client, seeded, auth_headers):
    payload = make_payload(
        answers=[{"questionId": 222, "answer": "A", "isCorrect": True}]
    )

    resp = client.post(URL, json=payload, headers=auth_headers)

    assert resp.status_code == 400
    details = resp.json()["details"]
    assert len(details) == 1
    assert details[0]["index"] == 0
    assert details[0]["questionId"] == 222
    assert details[0]["errors"]
    assert row_counts() == (0, 0)


def test_unknown_quiz_type_is_rejected(client, seeded, auth_headers):
    resp = client.post(URL, json=make_payload(type="essay"), headers=auth_headers)

    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid quiz type: essay"


def test_non_numeric_score_is_rejected(client, seeded, auth_headers):
    resp = client.post(URL, json=make_payload(score="two"), headers=auth_headers)
    assert resp.status_code == 400


def test_unknown_quiz_returns_404(client, seeded, auth_headers):
    resp = client.post(URL, json=make_payload(quizId="999"), headers=auth_headers)

    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Quiz not found"}
    assert row_counts() == (0, 0)


def test_non_numeric_quiz_id_returns_404(client, seeded, auth_headers):
    resp = client.post(URL, json=make_payload(quizId="python-basics"), headers=auth_headers)
    assert resp.status_code == 404


def test_question_outside_quiz_is_rejected(client, seeded, auth_headers):
    payload = make_payload(
        answers=[{"questionId": 999, "answer": "A", "timeSpent": 10}]
    )

    resp = client.post(URL, json=payload, headers=auth_headers)

    assert resp.status_code == 400
    assert resp.json()["details"][0]["questionId"] == 999
    assert row_counts() == (0, 0)


def test_resubmission_overwrites_attempt(client, seeded, auth_headers):
    first = client.post(URL, json=make_payload(), headers=auth_headers)
    retry = make_payload(
        answers=[
            {"questionId": 222, "answer": "A", "timeSpent": 100},
            {"questionId": 223, "answer": "D", "timeSpent": 100},
        ],
        totalTime=200,
    )
    second = client.post(URL, json=retry, headers=auth_headers)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["attemptId"] == first.json()["attemptId"]
    assert second.json()["correctAnswers"] == 2
    # The unanswered question's row from the first pass is dropped
    assert row_counts() == (1, 2)
    assert load_user(seeded["user_id"]) == (2, 800)


def test_best_score_never_decreases(client, seeded, auth_headers):
    client.post(URL, json=make_payload(), headers=auth_headers)
    worse = make_payload(
        answers=[{"questionId": 222, "answer": "B", "timeSpent": 30}],
        score=0,
        totalTime=30,
    )

    resp = client.post(URL, json=worse, headers=auth_headers)

    assert resp.status_code == 200
    assert resp.json()["score"] == 0
    assert resp.json()["bestScore"] == 2
    assert load_best_score(seeded["quiz_id"]) == 2.0


def test_mcq_correctness_is_recomputed_on_server(client, seeded, auth_headers):
    payload = make_payload(
        answers=[
            {"questionId": 222, "answer": "B", "isCorrect": True, "timeSpent": 5},
            {"questionId": 223, "answer": "D", "isCorrect": False, "timeSpent": 5},
        ]
    )

    resp = client.post(URL, json=payload, headers=auth_headers)

    assert resp.json()["correctAnswers"] == 1


def test_code_quiz_trusts_submitted_correctness(client, seeded, auth_headers, db_session):
    quiz = db_session.query(UserQuiz).filter(UserQuiz.id == seeded["quiz_id"]).one()
    quiz.quiz_type = "code"
    db_session.commit()
    db_session.close()

    payload = make_payload(
        type="code",
        answers=[
            {"questionId": 222, "answer": "print(1)", "isCorrect": True, "timeSpent": 5},
            {"questionId": 223, "answer": "A", "isCorrect": True, "timeSpent": 5},
            {"questionId": 224, "answer": "C", "isCorrect": False, "timeSpent": 5},
        ],
        score=2.5,
    )

    resp = client.post(URL, json=payload, headers=auth_headers)

    assert resp.status_code == 200
    assert resp.json()["correctAnswers"] == 2
    assert resp.json()["score"] == 2.5


def test_failure_mid_transaction_rolls_back(client, seeded, auth_headers, monkeypatch):
    def boom(self, user_id, time_spent):
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(QuizCompletionService, "_update_user_totals", boom)

    resp = client.post(URL, json=make_payload(), headers=auth_headers)

    assert resp.status_code == 500
    assert resp.json()["success"] is False
    assert row_counts() == (0, 0)
    assert load_best_score(seeded["quiz_id"]) is None
    assert load_user(seeded["user_id"]) == (0, 0)


def test_get_quiz_returns_questions(client, seeded):
    resp = client.get("/api/quizzes/mcq/python-basics")

    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == 42
    assert body["type"] == "mcq"
    assert [q["id"] for q in body["questions"]] == [222, 223, 224]


def test_get_quiz_with_wrong_type_is_404(client, seeded):
    resp = client.get("/api/quizzes/code/python-basics")

    assert resp.status_code == 404
    assert resp.json()["error"] == "Quiz not found"


def test_results_after_completion(client, seeded, auth_headers):
    client.post(URL, json=make_payload(), headers=auth_headers)

    resp = client.get("/api/quizzes/mcq/python-basics/results", headers=auth_headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["score"] == 2
    assert [q["isCorrect"] for q in body["questions"]] == [True, False, True]


def test_results_require_authentication(client, seeded):
    resp = client.get("/api/quizzes/mcq/python-basics/results")
    assert resp.status_code == 401


def test_results_without_attempt_is_404(client, seeded, auth_headers):
    resp = client.get("/api/quizzes/mcq/python-basics/results", headers=auth_headers)

    assert resp.status_code == 404
    assert resp.json()["error"] == "No attempt found for this quiz"


def post_raw(client, payload, headers):
    # json.dumps writes Infinity/NaN literals, which the request parser accepts
    return client.post(
        URL,
        content=json.dumps(payload),
        headers={**headers, "Content-Type": "application/json"},
    )


def test_infinite_total_time_is_a_validation_error(client, seeded, auth_headers):
    resp = post_raw(client, make_payload(totalTime=float("inf")), auth_headers)

    assert resp.status_code == 400
    assert resp.headers["content-type"].startswith("application/json")
    assert resp.json()["success"] is False
    assert row_counts() == (0, 0)


def test_infinite_time_spent_is_reported_per_answer(client, seeded, auth_headers):
    payload = make_payload(
        answers=[{"questionId": 222, "answer": "A", "timeSpent": float("inf")}]
    )

    resp = post_raw(client, payload, auth_headers)

    assert resp.status_code == 400
    assert resp.json()["details"][0]["questionId"] == 222
    assert row_counts() == (0, 0)


def test_database_work_runs_in_threadpool(client, seeded, auth_headers, monkeypatch):
    offloaded = []

    async def recording(func, *args, **kwargs):
        offloaded.append(func.__name__)
        return await run_in_threadpool(func, *args, **kwargs)

    monkeypatch.setattr(quiz_routes, "run_in_threadpool", recording)

    resp = client.post(URL, json=make_payload(), headers=auth_headers)

    assert resp.status_code == 200
    assert offloaded == ["get_quiz", "complete_quiz"]


def test_attempt_upsert_overwrites_concurrently_inserted_row(seeded, db_session):
    # Another request committed its first attempt after this one started
    other = SessionLocal()
    other.add(
        UserQuizAttempt(
            user_id=seeded["user_id"],
            user_quiz_id=seeded["quiz_id"],
            score=1,
            time_spent=10,
            accuracy=33.33,
        )
    )
    other.commit()
    other.close()

    service = QuizCompletionService(db_session)
    attempt = service._upsert_attempt(seeded["user_id"], seeded["quiz_id"], 3.0, 90, 100.0)
    db_session.commit()

    assert float(attempt.score) == 3.0
    assert attempt.time_spent == 90
    assert row_counts() == (1, 0)


def test_first_negative_score_becomes_best_score(client, seeded, auth_headers, db_session):
    quiz = db_session.query(UserQuiz).filter(UserQuiz.id == seeded["quiz_id"]).one()
    quiz.quiz_type = "openended"
    db_session.commit()
    db_session.close()

    payload = make_payload(
        type="openended",
        answers=[{"questionId": 222, "answer": "an essay", "timeSpent": 40}],
        score=-1,
    )

    resp = client.post(URL, json=payload, headers=auth_headers)

    assert resp.status_code == 200
    assert resp.json()["bestScore"] == -1
    assert resp.json()["accuracy"] == 0
    assert load_best_score(seeded["quiz_id"]) == -1.0
