import logging
from functools import wraps
from typing import Any, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class APIException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: Optional[List[Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)

    def to_response(self) -> dict:
        content = {"success": False, "error": self.message}
        if self.details is not None:
            content["details"] = self.details
        return content


def db_exception(func):
    """Roll back the service session and surface a 500 on any database failure.

    Wrapped callables must be methods of an object exposing ``db``.
    """

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Integrity error in {func.__name__}: {e}")
            raise APIException("Conflicting write, please retry", 500)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error in {func.__name__}: {e}", exc_info=True)
            raise APIException("Failed to save quiz attempt", 500)

    return wrapper
