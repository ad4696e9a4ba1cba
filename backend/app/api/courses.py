"""
Courses API: the thin authoring surface the test flow needs (create, replace questions, publish, delete)
plus public reads. Public shapes never include the answer key.
"""
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, selectinload

from app.config import settings
from app.database import get_db
from app.models.course import Course, CourseQuestion
from app.models.user import User
from app.schemas.course import (
    CourseCreateRequest,
    CourseListResponse,
    CourseResponse,
    QuestionPayload,
    QuestionsUpdateRequest,
)
from app.api.deps import get_current_user, require_instructor

router = APIRouter(prefix="/courses", tags=["courses"])
logger = logging.getLogger(__name__)


def course_to_response(c: Course) -> CourseResponse:
    return CourseResponse(
        id=str(c.id),
        title=c.title,
        subtitle=c.subtitle,
        description=c.description,
        category=c.category,
        level=c.level,
        thumbnail_url=c.thumbnail_url,
        video_url=c.video_url,
        test_time_limit=c.test_time_limit,
        is_published=c.is_published,
        is_live=c.is_live,
        question_count=len(c.questions),
        creator_id=str(c.creator_id) if c.creator_id else None,
    )


def _build_questions(payloads: list[QuestionPayload]) -> list[CourseQuestion]:
    return [
        CourseQuestion(
            sort_order=i,
            question=q.question,
            options=list(q.options),
            correct_answer=q.correct_answer,
        )
        for i, q in enumerate(payloads)
    ]


def _get_course_or_404(db: Session, course_id: uuid.UUID) -> Course:
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    return course


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
def create_course(
    data: CourseCreateRequest,
    current_user: User = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    """Create an unpublished course, optionally with its test questions."""
    course = Course(
        title=data.title,
        subtitle=data.subtitle,
        description=data.description,
        category=data.category,
        level=data.level,
        thumbnail_url=data.thumbnail_url,
        video_url=data.video_url,
        test_time_limit=data.test_time_limit or settings.default_test_time_limit,
        creator_id=current_user.id,
        questions=_build_questions(data.test_questions),
    )
    db.add(course)
    db.commit()
    db.refresh(course)
    logger.info("create_course: course=%s questions=%s by=%s", course.id, len(course.questions), current_user.id)
    return course_to_response(course)


@router.put("/{course_id}/questions", response_model=CourseResponse)
def replace_questions(
    course_id: uuid.UUID,
    data: QuestionsUpdateRequest,
    current_user: User = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    """Replace the whole question list (and optionally the time limit). Past attempts keep their own totals."""
    course = _get_course_or_404(db, course_id)
    course.questions = _build_questions(data.test_questions)
    if data.test_time_limit:
        course.test_time_limit = data.test_time_limit
    db.commit()
    db.refresh(course)
    return course_to_response(course)


@router.patch("/{course_id}/publish", response_model=CourseResponse)
def toggle_publish(
    course_id: uuid.UUID,
    publish: bool,
    current_user: User = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    """Publish or unpublish. Publishing a course makes it required for certificate eligibility."""
    course = _get_course_or_404(db, course_id)
    course.is_published = publish
    db.commit()
    db.refresh(course)
    logger.info("toggle_publish: course=%s published=%s", course.id, course.is_published)
    return course_to_response(course)


@router.patch("/{course_id}/live", response_model=CourseResponse)
def toggle_live(
    course_id: uuid.UUID,
    live: bool,
    current_user: User = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    course = _get_course_or_404(db, course_id)
    course.is_live = live
    db.commit()
    db.refresh(course)
    return course_to_response(course)


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_course(
    course_id: uuid.UUID,
    current_user: User = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    """Delete a course; its questions, enrollments and attempts are deleted with it."""
    course = _get_course_or_404(db, course_id)
    db.delete(course)
    db.commit()
    logger.info("delete_course: course=%s by=%s", course_id, current_user.id)


@router.get("/published", response_model=CourseListResponse)
def list_published(db: Session = Depends(get_db)):
    """Published courses, newest first (public)."""
    courses = (
        db.query(Course)
        .filter(Course.is_published.is_(True))
        .options(selectinload(Course.questions))
        .order_by(Course.created_at.desc())
        .all()
    )
    return CourseListResponse(items=[course_to_response(c) for c in courses], total=len(courses))


@router.get("/published/mine", response_model=CourseListResponse)
def list_published_for_me(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Published courses in the current user's category, newest first."""
    courses = (
        db.query(Course)
        .filter(Course.is_published.is_(True), Course.category == current_user.category)
        .options(selectinload(Course.questions))
        .order_by(Course.created_at.desc())
        .all()
    )
    return CourseListResponse(items=[course_to_response(c) for c in courses], total=len(courses))

@router.get("/{course_id}", response_model=CourseResponse)
def get_course(course_id: uuid.UUID, db: Session = Depends(get_db)):
    """One course without its answer key (public)."""
    return course_to_response(_get_course_or_404(db, course_id))
