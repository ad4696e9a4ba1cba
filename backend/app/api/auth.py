"""
Auth routes: register (default role student), login (JWT in httpOnly cookie), logout, GET /auth/me.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.config import settings
from app.database import get_db
from app.models.types import utcnow
from app.models.user import User
from app.schemas.auth import RegisterRequest, LoginRequest, LoginResponse, MessageResponse, UserResponse
from app.services.auth import hash_password, verify_password, create_access_token, cookie_options
from app.api.deps import get_current_user

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=str(user.id),
        name=user.name,
        email=user.email,
        role=user.role,
        category=user.category,
        school=user.school or "",
        enrolled_courses=[str(cid) for cid in user.enrolled_course_ids],
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    """Register a new user; role is always student (instructors are provisioned separately)."""
    email = data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists with this email.")
    user = User(
        name=data.name,
        email=email,
        password_hash=hash_password(data.password),
        role="student",
        category=data.category,
        school=data.school.strip(),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning("Register IntegrityError: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists with this email.")
    db.refresh(user)
    logger.info("register: user=%s", user.id)
    return user_to_response(user)


@router.post("/login", response_model=LoginResponse)
def login(data: LoginRequest, response: Response, db: Session = Depends(get_db)):
    """Login with email/password; sets the token cookie and also returns the JWT."""
    user = db.query(User).filter(User.email == data.email.lower()).first()
    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Incorrect email or password")
    user.last_login = utcnow()
    user.is_active = True
    db.commit()
    db.refresh(user)
    token = create_access_token(user.id, user.role)
    response.set_cookie(settings.auth_cookie_name, token, **cookie_options())
    return LoginResponse(message=f"Welcome back {user.name}", user=user_to_response(user), token=token)


@router.get("/logout", response_model=MessageResponse)
def logout(response: Response, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Clear the token cookie and mark the user inactive."""
    current_user.is_active = False
    db.commit()
    response.delete_cookie(settings.auth_cookie_name, path="/")
    return MessageResponse(message="Logged out successfully.")


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    """Return the current user with enrolled course ids."""
    return user_to_response(current_user)
