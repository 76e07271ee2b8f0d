"""
Quiz client package
Session state machines and their collaborators
"""

from .api import QuizAPIClient, QuizAPIError
from .persistence import SessionPersistence
from .result import Err, ErrorKind, Ok, Result
from .session import QuizSessionStateMachine
from .state import Answer, AuthRedirectSnapshot, QuizSession, QuizStatus
from .text_session import TextQuizSession, TextQuizState, TextQuizStatus

__all__ = [
    "Answer",
    "AuthRedirectSnapshot",
    "Err",
    "ErrorKind",
    "Ok",
    "QuizAPIClient",
    "QuizAPIError",
    "QuizSession",
    "QuizSessionStateMachine",
    "QuizStatus",
    "Result",
    "SessionPersistence",
    "TextQuizSession",
    "TextQuizState",
    "TextQuizStatus",
]
