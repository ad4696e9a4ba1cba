"""
Analytics API (instructors): dashboard counters and per-enrollment marks.
Pass rate and "completed" use the same pass mark as scoring (settings.pass_threshold_percent).
"""
import logging
import uuid
from datetime import timedelta

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.config import settings
from app.database import get_db
from app.models.course import Course
from app.models.enrollment import Enrollment, TestAttempt
from app.models.types import utcnow
from app.models.user import User
from app.schemas.analytics import (
    CourseStats,
    DashboardStatsResponse,
    EnrollmentStats,
    MarksResponse,
    MarksRow,
    PerformanceStats,
    PopularCourse,
    UserStats,
)
from app.api.deps import require_instructor
from app.services.progress import is_course_complete
from app.services.scoring import percent_half_up

router = APIRouter(prefix="/analytics", tags=["analytics"])
logger = logging.getLogger(__name__)

RECENT_DAYS = 7
POPULAR_LIMIT = 5


@router.get("/stats", response_model=DashboardStatsResponse)
def dashboard_stats(
    current_user: User = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    """Counts for the instructor dashboard; pass rate = enrollments with any passing attempt / enrollments tested."""
    since = utcnow() - timedelta(days=RECENT_DAYS)
    threshold = settings.pass_threshold_percent

    total_students = db.query(User).filter(User.role == "student").count()
    total_instructors = db.query(User).filter(User.role == "instructor").count()
    recent_users = db.query(User).filter(User.role == "student", User.created_at >= since).count()

    total_courses = db.query(Course).count()
    published_courses = db.query(Course).filter(Course.is_published.is_(True)).count()

    total_enrollments = db.query(Enrollment).count()
    recent_enrollments = db.query(Enrollment).filter(Enrollment.enrolled_at >= since).count()
    watched = db.query(Enrollment).filter(Enrollment.video_watched.is_(True)).count()
    completed = db.query(Enrollment).filter(Enrollment.certificate_generated.is_(True)).count()
    took_test = db.query(func.count(func.distinct(TestAttempt.enrollment_id))).scalar() or 0
    passed_any = (
        db.query(func.count(func.distinct(TestAttempt.enrollment_id)))
        .filter(TestAttempt.score >= threshold)
        .scalar()
        or 0
    )
    attempts_count, score_sum = db.query(func.count(TestAttempt.id), func.coalesce(func.sum(TestAttempt.score), 0)).one()
    average = percent_half_up(int(score_sum), int(attempts_count) * 100) if attempts_count else 0
    pass_rate = percent_half_up(passed_any, took_test) if took_test else 0

    popular_rows = (
        db.query(Course.id, Course.title, Course.thumbnail_url, func.count(Enrollment.id).label("n"))
        .join(Enrollment, Enrollment.course_id == Course.id)
        .group_by(Course.id, Course.title, Course.thumbnail_url)
        .order_by(func.count(Enrollment.id).desc(), Course.title)
        .limit(POPULAR_LIMIT)
        .all()
    )

    return DashboardStatsResponse(
        users=UserStats(
            total_students=total_students,
            total_instructors=total_instructors,
            recent_users=recent_users,
        ),
        courses=CourseStats(
            total_courses=total_courses,
            published_courses=published_courses,
            unpublished_courses=total_courses - published_courses,
        ),
        enrollments=EnrollmentStats(
            total_enrollments=total_enrollments,
            recent_enrollments=recent_enrollments,
            students_watched_video=watched,
            students_took_test=took_test,
            students_completed=completed,
        ),
        performance=PerformanceStats(
            average_test_score=average,
            pass_rate=pass_rate,
            pass_threshold=threshold,
        ),
        popular_courses=[
            PopularCourse(course_id=str(cid), course_name=title, enrollment_count=n, thumbnail=thumb)
            for cid, title, thumb, n in popular_rows
        ],
    )


@router.get("/marks", response_model=MarksResponse)
def marks(
    course_id: uuid.UUID | None = Query(default=None, alias="courseId"),
    current_user: User = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    """Per-enrollment marks for students, optionally for one course. completed = watched and any pass."""
    q = (
        db.query(Enrollment)
        .join(User, User.id == Enrollment.user_id)
        .join(Course, Course.id == Enrollment.course_id)
        .filter(User.role == "student")
        .options(
            selectinload(Enrollment.attempts),
            selectinload(Enrollment.user),
            selectinload(Enrollment.course),
        )
    )
    if course_id is not None:
        q = q.filter(Enrollment.course_id == course_id)
    rows = []
    for e in q.order_by(User.name, Course.title).all():
        latest = e.latest_attempt
        rows.append(
            MarksRow(
                enrollment_id=str(e.id),
                student_id=str(e.user_id),
                student_name=e.user.name,
                student_email=e.user.email,
                course_id=str(e.course_id),
                course_title=e.course.title,
                video_watched=e.video_watched,
                attempts=len(e.attempts),
                best_score=e.best_score,
                latest_score=latest.score if latest else None,
                completed=is_course_complete(e),
                last_attempt_at=latest.completed_at if latest else None,
            )
        )
    return MarksResponse(items=rows, total=len(rows))
