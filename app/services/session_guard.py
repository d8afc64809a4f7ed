# app/services/session_guard.py
"""
Bearer-session check for protected routes.

check_session() returns a UserContext or the AuthError describing why the
request is rejected; require_session() is the FastAPI dependency that
raises it. Handlers receive the resolved UserContext as an argument.
"""

from dataclasses import dataclass
from typing import Optional, Union

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.database import get_db
from app.exceptions import AuthError
from app.models.user import User
from app.models.user_session import UserSession
from app.services import auth_service

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class UserContext:
    id: str
    email: str
    name: Optional[str] = None


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


def check_session(db: Session, session_token: Optional[str]) -> Union[UserContext, AuthError]:
    if not session_token:
        return AuthError("Missing or invalid authorization header")

    row = (
        db.query(User)
        .join(UserSession, UserSession.user_id == User.id)
        .filter(
            UserSession.session_token == auth_service.hash_session_token(session_token),
            UserSession.expires_at > auth_service.utcnow(),
        )
        .first()
    )
    if row is None:
        return AuthError("Invalid or expired session")
    return UserContext(id=row.id, email=row.email, name=row.name)


def validate_session(db: Session, session_token: Optional[str]) -> UserContext:
    result = check_session(db, session_token)
    if isinstance(result, AuthError):
        raise result
    return result


def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    """Dependency: the raw bearer token, or 401 when the header is missing."""
    token = extract_bearer_token(authorization)
    if token is None:
        raise AuthError("Missing or invalid authorization header")
    return token


def require_session(
    session_token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
) -> UserContext:
    return validate_session(db, session_token)
