"""
Progress service: enrollment lifecycle, the video-watched gate and retake policy, attempt append and
certificate eligibility. Routers call these functions; they raise app.services.errors on gate failures.

Attempt append is a single INSERT whose attempt_number is computed by a sub-select; the unique
(enrollment_id, attempt_number) key turns a concurrent duplicate into IntegrityError, which is rolled back
and retried (tenacity). best_score and the certificate stamp are conditional UPDATEs, never read-modify-write.
"""
import logging
import uuid
from enum import Enum
from typing import NamedTuple

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_random

from app.config import settings
from app.metrics import increment_attempt_append_conflicts_total
from app.models.course import Course
from app.models.enrollment import Enrollment, TestAttempt
from app.models.types import utcnow
from app.services.errors import (
    AnswerCountMismatch,
    AttemptAppendConflict,
    CourseNotFound,
    EnrollmentNotFound,
    NotEnrolled,
    TestNotAvailable,
    VideoNotWatched,
)
from app.services.scoring import ScoreResult, is_passing, score_answers

logger = logging.getLogger(__name__)


class GateState(str, Enum):
    UNATTEMPTED = "unattempted"
    COMPLETED = "completed"
    RETAKABLE = "retakable"


class SubmitOutcome(NamedTuple):
    result: ScoreResult
    attempt_number: int
    certificate_generated: bool
    best_score: int


class CertificateCheck(NamedTuple):
    eligible: bool
    total_courses: int
    enrolled_courses: int
    completed_courses: int


# ==================== ENROLLMENT ====================

def get_course(db: Session, course_id: uuid.UUID) -> Course:
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise CourseNotFound()
    return course


def get_enrollment(db: Session, user_id: uuid.UUID, course_id: uuid.UUID) -> Enrollment | None:
    return (
        db.query(Enrollment)
        .filter(Enrollment.user_id == user_id, Enrollment.course_id == course_id)
        .first()
    )


def enroll(db: Session, user_id: uuid.UUID, course_id: uuid.UUID) -> tuple[Enrollment, bool]:
    """Create the (user, course) enrollment or return the existing one. Returns (enrollment, created)."""
    get_course(db, course_id)
    existing = get_enrollment(db, user_id, course_id)
    if existing:
        return existing, False
    enrollment = Enrollment(user_id=user_id, course_id=course_id)
    db.add(enrollment)
    try:
        db.commit()
    except IntegrityError:
        # Lost the race against a concurrent enroll: the unique key kept one row, return it
        db.rollback()
        existing = get_enrollment(db, user_id, course_id)
        if existing is None:
            raise
        return existing, False
    db.refresh(enrollment)
    logger.info("enroll: user=%s course=%s enrollment=%s", user_id, course_id, enrollment.id)
    return enrollment, True


def mark_video_watched(db: Session, user_id: uuid.UUID, course_id: uuid.UUID) -> Enrollment:
    enrollment = get_enrollment(db, user_id, course_id)
    if not enrollment:
        raise EnrollmentNotFound()
    if not enrollment.video_watched:
        enrollment.video_watched = True
        db.commit()
        db.refresh(enrollment)
    return enrollment


def list_enrollments(db: Session, user_id: uuid.UUID) -> list[Enrollment]:
    """User's enrollments, most recent first. Inner join on Course so a dangling row is never returned."""
    return (
        db.query(Enrollment)
        .join(Course, Course.id == Enrollment.course_id)
        .filter(Enrollment.user_id == user_id)
        .options(selectinload(Enrollment.course), selectinload(Enrollment.attempts))
        .order_by(Enrollment.enrolled_at.desc())
        .all()
    )


# ==================== GATE / RETAKE POLICY ====================

def resolve_gate(enrollment: Enrollment) -> GateState:
    """Latest attempt decides: none -> unattempted, passed -> completed, failed -> retakable."""
    latest = enrollment.latest_attempt
    if latest is None:
        return GateState.UNATTEMPTED
    return GateState.COMPLETED if latest.passed else GateState.RETAKABLE


def require_test_access(db: Session, user_id: uuid.UUID, course_id: uuid.UUID) -> tuple[Enrollment, Course]:
    """Enrollment must exist and have the video watched; the course must be published with questions."""
    enrollment = get_enrollment(db, user_id, course_id)
    if not enrollment:
        raise NotEnrolled()
    if not enrollment.video_watched:
        raise VideoNotWatched()
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course or not course.has_test:
        raise TestNotAvailable()
    return enrollment, course


# ==================== SUBMIT ====================

def _insert_next_attempt(db: Session, enrollment_id: uuid.UUID, result: ScoreResult) -> int:
    """Insert one attempt numbered MAX+1 in the same statement; return the number it got."""
    attempt_id = uuid.uuid4()
    next_number = (
        select(func.coalesce(func.max(TestAttempt.attempt_number), 0) + 1)
        .where(TestAttempt.enrollment_id == enrollment_id)
        .scalar_subquery()
    )
    db.execute(
        insert(TestAttempt).values(
            id=attempt_id,
            enrollment_id=enrollment_id,
            attempt_number=next_number,
            score=result.score,
            correct_answers=result.correct_answers,
            wrong_answers=result.wrong_answers,
            total_questions=result.total_questions,
            passed=result.passed,
            answers=result.answers,
            completed_at=utcnow(),
        )
    )
    return db.execute(
        select(TestAttempt.attempt_number).where(TestAttempt.id == attempt_id)
    ).scalar_one()


def _raise_best_score(db: Session, enrollment_id: uuid.UUID, score: int) -> None:
    db.execute(
        update(Enrollment)
        .where(Enrollment.id == enrollment_id, Enrollment.best_score < score)
        .values(best_score=score)
    )


def _stamp_certificate(db: Session, enrollment_id: uuid.UUID, user_id: uuid.UUID, course_id: uuid.UUID) -> None:
    db.execute(
        update(Enrollment)
        .where(Enrollment.id == enrollment_id, Enrollment.certificate_generated.is_(False))
        .values(
            certificate_generated=True,
            completed_at=utcnow(),
            certificate_url=f"certificate_{user_id}_{course_id}",
        )
    )


def _log_append_retry(retry_state) -> None:
    logger.warning(
        "submit: attempt_number collision, retrying (try %s)", retry_state.attempt_number
    )


def append_attempt(
    db: Session,
    enrollment_id: uuid.UUID,
    user_id: uuid.UUID,
    course_id: uuid.UUID,
    result: ScoreResult,
) -> int:
    """Append result as the next attempt and commit; retry on a concurrent duplicate attempt_number."""
    max_tries = max(1, settings.attempt_append_retries)

    @retry(
        retry=retry_if_exception_type(IntegrityError),
        stop=stop_after_attempt(max_tries),
        wait=wait_random(min=0, max=0.05),
        before_sleep=_log_append_retry,
        reraise=True,
    )
    def _do() -> int:
        try:
            number = _insert_next_attempt(db, enrollment_id, result)
            _raise_best_score(db, enrollment_id, result.score)
            if result.passed:
                _stamp_certificate(db, enrollment_id, user_id, course_id)
            db.commit()
            return number
        except IntegrityError:
            db.rollback()
            increment_attempt_append_conflicts_total()
            raise

    try:
        return _do()
    except IntegrityError as e:
        logger.error("submit: gave up appending attempt for enrollment %s after %s tries", enrollment_id, max_tries)
        raise AttemptAppendConflict() from e


def submit_test(db: Session, user_id: uuid.UUID, course_id: uuid.UUID, answers: list) -> SubmitOutcome:
    """Gate, score and append. answers must have exactly one entry per question (-1/None = unanswered)."""
    enrollment, course = require_test_access(db, user_id, course_id)
    key = [q.correct_answer for q in course.questions]
    if len(answers) != len(key):
        raise AnswerCountMismatch(expected=len(key), got=len(answers))
    result = score_answers(key, answers)
    enrollment_id = enrollment.id
    number = append_attempt(db, enrollment_id, user_id, course_id, result)
    db.refresh(enrollment)
    logger.info(
        "submit: user=%s course=%s attempt=%s score=%s passed=%s",
        user_id, course_id, number, result.score, result.passed,
    )
    return SubmitOutcome(
        result=result,
        attempt_number=number,
        certificate_generated=enrollment.certificate_generated,
        best_score=enrollment.best_score,
    )


# ==================== CERTIFICATE ====================

def is_course_complete(enrollment: Enrollment, threshold: int | None = None) -> bool:
    """Video watched and ANY attempt at or above the pass mark; a later failure does not undo it."""
    if not enrollment.video_watched:
        return False
    return any(is_passing(a.score, threshold) for a in enrollment.attempts)


def check_certificate(db: Session, user_id: uuid.UUID) -> CertificateCheck:
    """Eligible only when every published course has a completed enrollment for this user."""
    published_ids = {
        row[0] for row in db.query(Course.id).filter(Course.is_published.is_(True)).all()
    }
    enrollments = (
        db.query(Enrollment)
        .join(Course, Course.id == Enrollment.course_id)
        .filter(Enrollment.user_id == user_id, Course.is_published.is_(True))
        .options(selectinload(Enrollment.attempts))
        .all()
    )
    enrolled = {e.course_id for e in enrollments}
    completed = {e.course_id for e in enrollments if is_course_complete(e)}
    total = len(published_ids)
    eligible = total > 0 and published_ids <= completed
    return CertificateCheck(
        eligible=eligible,
        total_courses=total,
        enrolled_courses=len(enrolled & published_ids),
        completed_courses=len(completed & published_ids),
    )
