import logging
from typing import Optional

from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from quizapp.core.database import get_db
from quizapp.core.decorator import APIException
from quizapp.core.security import jwt_manager
from quizapp.models.user import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Dependency that returns a user if a valid user token is provided, or None otherwise.
    Missing, invalid or expired tokens and unknown users all resolve to None so the
    route decides how to answer an anonymous caller.
    """
    if not credentials:
        return None

    try:
        payload = jwt_manager.verify_token(credentials.credentials, token_type="access")
    except HTTPException:
        return None

    if "user_id" not in payload:
        return None

    user = db.query(User).filter(User.id == payload.get("user_id")).first()
    if not user or not user.is_active:
        return None

    return user


async def get_current_user(
    user: Optional[User] = Depends(get_optional_user),
) -> User:
    """
    Dependency that requires an authenticated, active user.
    """
    if user is None:
        logger.info("Rejected anonymous request")
        raise APIException("User not authenticated", 401)
    return user
