"""Client-side quiz session state machine.

Each instance owns one explicit ``QuizSession``; collaborators (API client,
snapshot persistence) are injected so independent sessions can coexist.
Plain mutations are synchronous. ``fetch_quiz``, ``submit_quiz`` and
``recover_session`` are the only coroutines and they suspend only on I/O:

    idle -> loading -> idle | error          (fetch_quiz)
    idle -> submitting -> submitted | error  (submit_quiz)

An in-flight submission cannot be cancelled from here; the server applies a
completed submission atomically either way.
"""

import logging
import time
from typing import Any, Optional, Union

import httpx
from pydantic import ValidationError

from quizapp.client.api import QuizAPIClient, QuizAPIError
from quizapp.client.persistence import SessionPersistence
from quizapp.client.result import Err, ErrorKind, Ok, Result, kind_for_status
from quizapp.client.state import (
    Answer,
    AuthRedirectSnapshot,
    QuizSession,
    QuizStatus,
    answers_from_snapshot,
    answers_to_list,
)
from quizapp.schemas.quiz import QuestionOut, QuizOut, QuizType
from quizapp.utils.scoring import ScoreSummary, score_session
from quizapp.utils.submission import build_submission_payload

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = "No data received from server"
NO_QUIZ_ID_MESSAGE = "No quiz ID found"
NO_QUESTIONS_MESSAGE = "No questions available for submission"


class QuizSessionStateMachine:
    def __init__(
        self,
        api: QuizAPIClient,
        persistence: Optional[SessionPersistence] = None,
        state: Optional[QuizSession] = None,
    ):
        self.api = api
        self.persistence = persistence
        self.state = state or QuizSession()
        self._restore_attempted = set()

    # ==================== Setters ====================

    def set_quiz_id(self, quiz_id: Any) -> None:
        self.state.quiz_id = quiz_id

    def set_quiz_type(self, quiz_type: str) -> None:
        self.state.quiz_type = quiz_type

    def set_current_question_index(self, index: int) -> None:
        self.state.current_question_index = index

    def set_session_id(self, session_id: str) -> None:
        self.state.session_id = session_id

    def set_last_saved(self, timestamp: Optional[float]) -> None:
        self.state.last_saved = timestamp

    # ==================== Answers ====================

    def set_answer(self, answer: Answer) -> None:
        """Insert or replace the answer for its question."""
        self.state.answers[answer.key] = answer

    def clear_answers(self) -> None:
        self.state.answers = {}

    def reset_quiz(self) -> None:
        """Start the loaded quiz over, keeping its metadata and questions."""
        self.state.current_question_index = 0
        self.state.answers = {}
        self.state.status = QuizStatus.IDLE
        self.state.error = None
        self.state.results = None
        self.state.completion = None

    def clear_quiz(self) -> None:
        """Tear the session down to its initial state, keeping only the session id."""
        self.state = QuizSession(session_id=self.state.session_id)
        self._restore_attempted.clear()

    # ==================== Auth redirect ====================

    def save_auth_redirect_state(self, snapshot: AuthRedirectSnapshot) -> None:
        self.state.auth_redirect_state = snapshot

    def clear_auth_redirect_state(self) -> None:
        self.state.auth_redirect_state = None

    def restore_auth_redirect_state(self) -> Optional[AuthRedirectSnapshot]:
        """Replay progress captured before sign-in, then drop the snapshot."""
        snapshot = self.state.auth_redirect_state
        if snapshot is None:
            return None

        if snapshot.quiz_id is not None and self.state.quiz_id is None:
            self.state.quiz_id = snapshot.quiz_id
        self.state.slug = self.state.slug or snapshot.slug
        self.state.quiz_type = self.state.quiz_type or snapshot.quiz_type
        for answer in snapshot.answers.values():
            self.set_answer(answer)
        self.state.current_question_index = snapshot.current_question_index
        self.clear_auth_redirect_state()
        logger.info(f"Restored {len(snapshot.answers)} answers after sign-in")
        return snapshot

    # ==================== Selectors ====================

    @property
    def current_question(self) -> Optional[QuestionOut]:
        questions = self.state.questions
        index = self.state.current_question_index
        if 0 <= index < len(questions):
            return questions[index]
        return None

    @property
    def answered_count(self) -> int:
        return len(self.state.answers)

    @property
    def is_complete(self) -> bool:
        questions = self.state.questions
        if not questions:
            return False
        return all(str(q.id) in self.state.answers for q in questions)

    @property
    def in_progress(self) -> bool:
        return 0 < self.answered_count < len(self.state.questions)

    # ==================== Transitions ====================

    def _fetch_pending(self) -> None:
        self.state.status = QuizStatus.LOADING
        self.state.error = None

    def _fetch_fulfilled(self, quiz: QuizOut) -> None:
        self.state.status = QuizStatus.IDLE
        self.state.quiz_id = quiz.id
        self.state.quiz_type = quiz.quiz_type.value
        self.state.slug = quiz.slug
        self.state.title = quiz.title
        self.state.description = quiz.description
        self.state.questions = list(quiz.questions)
        self.state.total_questions = len(quiz.questions)
        self.state.error = None

    def _submit_pending(self) -> None:
        self.state.status = QuizStatus.SUBMITTING
        self.state.error = None

    def _submit_fulfilled(self, summary: ScoreSummary, completion: dict) -> None:
        self.state.status = QuizStatus.SUBMITTED
        self.state.results = summary
        self.state.completion = completion

    def _reject(self, kind: ErrorKind, message: str, status_code: Optional[int] = None) -> Err:
        self.state.status = QuizStatus.ERROR
        self.state.error = message
        logger.warning(f"Quiz session error ({kind.value}): {message}")
        return Err(kind, message, status_code)

    # ==================== Async operations ====================

    async def fetch_quiz(
        self,
        quiz_type: str,
        slug: str,
        data: Optional[Union[QuizOut, dict]] = None,
    ) -> Result:
        """Load a quiz, from ``data`` when the caller already has it."""
        self._fetch_pending()

        try:
            if data is not None:
                quiz = data if isinstance(data, QuizOut) else QuizOut.model_validate(data)
            else:
                quiz = await self.api.fetch_quiz(quiz_type, slug)
        except QuizAPIError as e:
            return self._reject(kind_for_status(e.status_code), e.message, e.status_code)
        except httpx.HTTPError as e:
            return self._reject(ErrorKind.NETWORK, f"Failed to fetch quiz: {e}")
        except ValidationError as e:
            return self._reject(ErrorKind.VALIDATION, f"Malformed quiz data: {e}")

        if quiz is None:
            return self._reject(ErrorKind.NO_DATA, NO_DATA_MESSAGE)

        self._fetch_fulfilled(quiz)
        return Ok(quiz)

    def _graded_answers(self, summary: ScoreSummary) -> list:
        verdicts = {str(r.question_id): r.is_correct for r in summary.question_results}
        graded = []
        for answer in self.state.answers.values():
            data = answer.to_dict()
            if answer.key in verdicts:
                data["isCorrect"] = verdicts[answer.key]
            graded.append(data)
        return graded

    async def submit_quiz(self, time_taken: Optional[float] = None) -> Result:
        """Score the session locally, then record it with the completion endpoint."""
        if not self.state.quiz_id:
            return self._reject(ErrorKind.VALIDATION, NO_QUIZ_ID_MESSAGE)
        if not self.state.questions:
            return self._reject(ErrorKind.VALIDATION, NO_QUESTIONS_MESSAGE)

        self._submit_pending()

        quiz_type = QuizType(self.state.quiz_type or QuizType.MCQ.value)
        summary = score_session(quiz_type, self.state.questions, self.state.answers)

        if time_taken is None:
            time_taken = sum(a.time_spent or 0 for a in self.state.answers.values())

        slug = self.state.slug or str(self.state.quiz_id)
        payload = build_submission_payload(
            slug=slug,
            quiz_type=quiz_type.value,
            answers=self._graded_answers(summary),
            quiz_id=self.state.quiz_id,
            time_taken=time_taken,
            score=summary.score,
            correct_answers=summary.score,
        )

        try:
            completion = await self.api.complete_quiz(slug, payload)
        except QuizAPIError as e:
            return self._reject(kind_for_status(e.status_code), e.message, e.status_code)
        except httpx.HTTPError as e:
            return self._reject(ErrorKind.NETWORK, f"Failed to submit quiz: {e}")

        self._submit_fulfilled(summary, completion)
        self._clear_snapshots()
        logger.info(
            f"Quiz {self.state.quiz_id} submitted: {summary.score}/{summary.max_score}"
        )
        return Ok(summary)

    async def recover_session(self, session_id: str) -> Result:
        """Merge a previously saved session into this one.

        Nothing stored under ``session_id`` leaves the state untouched.
        """
        if self.persistence is None:
            return Ok(None)

        snapshot = self.persistence.load(SessionPersistence.session_key(session_id))
        if snapshot is None:
            logger.debug(f"No saved quiz session {session_id}")
            return Ok(None)

        answers = self._snapshot_answers(snapshot, session_id)
        if answers is None:
            return Ok(None)

        self.state.answers.update(answers)
        self.state.session_id = session_id
        self.state.last_saved = snapshot.get("lastSaved")

        quiz_id = snapshot.get("quizId")
        quiz_type = snapshot.get("quizType") or self.state.quiz_type
        if quiz_id is not None and str(quiz_id) != str(self.state.quiz_id) and quiz_type:
            result = await self.fetch_quiz(quiz_type, snapshot.get("slug") or str(quiz_id))
            if isinstance(result, Err):
                return result

        return Ok(snapshot)

    # ==================== Snapshots ====================

    @staticmethod
    def _snapshot_answers(snapshot: dict, key: str) -> Optional[dict]:
        raw = snapshot.get("answers")
        if raw is not None and not isinstance(raw, (list, dict)):
            logger.warning(f"Discarding quiz snapshot {key}: answers are not a list")
            return None
        return answers_from_snapshot(raw)

    def _progress_key(self) -> Optional[str]:
        if not self.state.slug:
            return None
        prefix = self.state.quiz_type or QuizType.MCQ.value
        return SessionPersistence.storage_key(prefix, self.state.slug)

    def save_session(self) -> bool:
        """Store the session under its id for ``recover_session``."""
        if self.persistence is None:
            return False

        saved_at = time.time()
        snapshot = {
            "quizId": self.state.quiz_id,
            "quizType": self.state.quiz_type,
            "slug": self.state.slug,
            "answers": answers_to_list(self.state.answers),
            "currentQuestionIndex": self.state.current_question_index,
            "lastSaved": saved_at,
        }
        saved = self.persistence.save(
            SessionPersistence.session_key(self.state.session_id), snapshot
        )
        if saved:
            self.state.last_saved = saved_at
        return saved

    def save_progress(self) -> bool:
        key = self._progress_key()
        if self.persistence is None or key is None:
            return False
        snapshot = {
            "answers": answers_to_list(self.state.answers),
            "currentQuestionIndex": self.state.current_question_index,
        }
        return self.persistence.save(key, snapshot)

    def restore_progress(self) -> bool:
        """Restore stored progress for the loaded quiz; tried once per key."""
        key = self._progress_key()
        if self.persistence is None or key is None or key in self._restore_attempted:
            return False
        self._restore_attempted.add(key)

        snapshot = self.persistence.load(key)
        if snapshot is None:
            return False

        answers = self._snapshot_answers(snapshot, key)
        if answers is None:
            return False
        try:
            index = int(snapshot.get("currentQuestionIndex") or 0)
        except (TypeError, ValueError):
            logger.warning(f"Discarding quiz progress {key}: bad question index")
            return False

        self.state.answers = answers
        self.state.current_question_index = index
        logger.info(f"Restored quiz progress from {key}")
        return True

    def _clear_snapshots(self) -> None:
        if self.persistence is None:
            return
        key = self._progress_key()
        if key:
            self.persistence.clear(key)
        self.persistence.clear(SessionPersistence.session_key(self.state.session_id))
