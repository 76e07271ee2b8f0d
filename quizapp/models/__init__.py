"""
Models package initialization
Import all models and setup relationships
"""

from .relations import setup_relationships
from .user import User
from .user_quiz import UserQuiz
from .user_quiz_attempt import UserQuizAttempt
from .user_quiz_attempt_question import UserQuizAttemptQuestion
from .user_quiz_question import UserQuizQuestion

# Setup all relationships after models are imported
setup_relationships()

# Make models available at package level
__all__ = [
    "User",
    "UserQuiz",
    "UserQuizAttempt",
    "UserQuizAttemptQuestion",
    "UserQuizQuestion",
]
