import os
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DEBUG"] = "false"

from fastapi.testclient import TestClient  # noqa: E402

from main import app  # noqa: E402
from quizapp.core.database import Base, SessionLocal, engine  # noqa: E402
from quizapp.core.security import jwt_manager  # noqa: E402
from quizapp.models import User, UserQuiz, UserQuizQuestion  # noqa: E402

QUIZ_ID = 42
QUESTION_IDS = (222, 223, 224)


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.ttls = {}

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def get(self, key):
        return self.store.get(key)

    def delete(self, key):
        self.store.pop(key, None)


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded(db_session):
    """A user and a three-question MCQ quiz; returns ids and a bearer token."""
    user = User(id=7, email="learner@example.com", full_name="Quiz Learner")
    db_session.add(user)
    db_session.flush()

    quiz = UserQuiz(
        id=QUIZ_ID,
        user_id=user.id,
        slug="python-basics",
        title="Python Basics",
        quiz_type="mcq",
    )
    db_session.add(quiz)
    for question_id, answer in zip(QUESTION_IDS, ("A", "D", "C")):
        db_session.add(
            UserQuizQuestion(
                id=question_id,
                user_quiz_id=QUIZ_ID,
                question=f"Question {question_id}",
                answer=answer,
                options=["A", "B", "C", "D"],
                question_type="mcq",
            )
        )
    db_session.commit()

    token = jwt_manager.create_access_token(user)
    data = {"user_id": user.id, "quiz_id": QUIZ_ID, "slug": quiz.slug, "token": token}
    db_session.close()
    return data


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def auth_headers(seeded):
    return {"Authorization": f"Bearer {seeded['token']}"}


@pytest.fixture
def fake_redis():
    return FakeRedis()
