"""
Shared dependencies: get_current_user from the auth cookie (or Bearer token for API clients).
Enrollment and analytics APIs use this to scope by user_id.
"""
import logging
from uuid import UUID
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.user import User
from app.services.auth import decode_access_token

security = HTTPBearer(auto_error=False)
logger = logging.getLogger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Require a valid token from the auth cookie or Authorization header; return User or 401."""
    token = (request.cookies.get(settings.auth_cookie_name) or "").strip()
    if not token and credentials:
        token = (getattr(credentials, "credentials", None) or "").strip()
    if not token:
        logger.debug("Auth failed: no token cookie or Bearer header")
        raise _unauthorized("User not authenticated")
    payload = decode_access_token(token)
    if not payload or "sub" not in payload:
        logger.debug("Auth failed: invalid or expired token")
        raise _unauthorized("Invalid or expired token")
    try:
        user_id = UUID(payload["sub"])
    except ValueError:
        raise _unauthorized("Invalid or expired token")
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise _unauthorized("User not found")
    return user


def require_instructor(current_user: User = Depends(get_current_user)) -> User:
    """403 unless the authenticated user is an instructor."""
    if current_user.role != "instructor":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Instructor access required")
    return current_user
