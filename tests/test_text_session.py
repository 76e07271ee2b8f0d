from quizapp.client import Answer, TextQuizSession, TextQuizStatus

QUIZ = {
    "id": 5,
    "slug": "fill-the-gap",
    "title": "Fill the gap",
    "type": "blanks",
    "questions": [
        {"id": 1, "question": "A ___ is mutable", "answer": "list", "type": "blanks"},
        {"id": 2, "question": "A ___ is immutable", "answer": "tuple", "type": "blanks"},
    ],
}


def make_session():
    session = TextQuizSession()
    session.initialize_quiz(QUIZ)
    return session


def test_initialize_quiz():
    session = make_session()

    assert session.state.quiz_id == 5
    assert session.state.quiz_type == "blanks"
    assert len(session.state.questions) == 2
    assert session.state.status == TextQuizStatus.IDLE


def test_submit_answer_locally_replaces_in_place():
    session = make_session()
    session.submit_answer_locally(Answer(question_id=1, answer="set", time_spent=2))
    session.submit_answer_locally(Answer(question_id=2, answer="tuple", time_spent=3))
    session.submit_answer_locally(Answer(question_id=1, answer="list", time_spent=5))

    assert [a.answer for a in session.state.answers] == ["list", "tuple"]
    assert session.state.answers[0].time_spent == 5


def test_set_current_question_ignores_out_of_range():
    session = make_session()
    session.set_current_question(1)
    session.set_current_question(7)

    assert session.state.current_question_index == 1


def test_save_then_restore_round_trip():
    session = make_session()
    session.submit_answer_locally(Answer(question_id=1, answer="list"))
    session.set_current_question(1)
    session.save_quiz_state()
    captured = (list(session.state.answers), session.state.current_question_index)

    session.submit_answer_locally(Answer(question_id=1, answer="dict"))
    session.submit_answer_locally(Answer(question_id=2, answer="tuple"))
    session.set_current_question(0)
    session.restore_quiz_state()

    assert (session.state.answers, session.state.current_question_index) == captured


def test_clear_saved_state_always_clears():
    session = make_session()
    session.clear_saved_state()
    assert session.state.saved_state is None

    session.save_quiz_state()
    session.clear_saved_state()
    assert session.state.saved_state is None


def test_complete_quiz_records_results():
    session = make_session()
    session.submit_answer_locally(Answer(question_id=1, answer="list", is_correct=True))

    session.complete_quiz(completed_at="2026-01-01T00:00:00+00:00", score=50)

    assert session.state.is_completed
    assert session.state.status == TextQuizStatus.SUCCEEDED
    assert session.state.results["quizId"] == 5
    assert session.state.results["score"] == 50
    assert session.state.results["answers"][0]["questionId"] == 1


def test_reset():
    session = make_session()
    session.submit_answer_locally(Answer(question_id=1, answer="list"))

    session.reset()

    assert session.state.quiz_id is None
    assert session.state.answers == []
