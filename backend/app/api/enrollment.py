"""
Enrollment API: enroll, status, video-watched, test (gate + retake policy), submit, my enrollments,
certificate status. All scoped by the authenticated user; gate failures are raised by app.services.progress.
"""
import logging
import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.enrollment import Enrollment, TestAttempt
from app.models.types import utcnow
from app.models.user import User
from app.schemas.enrollment import (
    AttemptResponse,
    CertificateData,
    CertificateProgress,
    CertificateStatusResponse,
    CourseSummary,
    EnrollmentResponse,
    EnrollmentStatusResponse,
    EnrollResponse,
    MyEnrollmentItem,
    MyEnrollmentsResponse,
    PreviousResult,
    SubmitRequest,
    SubmitResult,
    TestQuestion,
    TestView,
)
from app.api.deps import get_current_user
from app.services import progress
from app.services.progress import GateState

router = APIRouter(prefix="/enrollment", tags=["enrollment"])
logger = logging.getLogger(__name__)


def _attempt_to_response(a: TestAttempt) -> AttemptResponse:
    return AttemptResponse(
        attempt_number=a.attempt_number,
        score=a.score,
        correct_answers=a.correct_answers,
        wrong_answers=a.wrong_answers,
        total_questions=a.total_questions,
        passed=a.passed,
        completed_at=a.completed_at,
    )


def _enrollment_to_response(e: Enrollment) -> EnrollmentResponse:
    return EnrollmentResponse(
        id=str(e.id),
        user_id=str(e.user_id),
        course_id=str(e.course_id),
        video_watched=e.video_watched,
        best_score=e.best_score,
        certificate_generated=e.certificate_generated,
        certificate_url=e.certificate_url,
        completed_at=e.completed_at,
        enrolled_at=e.enrolled_at,
        test_attempts=[_attempt_to_response(a) for a in e.attempts],
    )


def _previous_result(e: Enrollment, include_certificate: bool) -> PreviousResult:
    latest = e.latest_attempt
    return PreviousResult(
        score=latest.score,
        correct_answers=latest.correct_answers,
        wrong_answers=latest.wrong_answers,
        total_questions=latest.total_questions,
        passed=latest.passed,
        attempt_number=latest.attempt_number,
        certificate_generated=e.certificate_generated if include_certificate else None,
    )


@router.get("/my-enrollments", response_model=MyEnrollmentsResponse)
def my_enrollments(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Current user's enrollments with a course summary, most recent first."""
    items = []
    for e in progress.list_enrollments(db, current_user.id):
        c = e.course
        base = _enrollment_to_response(e)
        items.append(
            MyEnrollmentItem(
                **base.model_dump(),
                course=CourseSummary(
                    id=str(c.id),
                    title=c.title,
                    subtitle=c.subtitle,
                    thumbnail_url=c.thumbnail_url,
                    level=c.level,
                    category=c.category,
                    video_url=c.video_url,
                ),
            )
        )
    return MyEnrollmentsResponse(enrollments=items)


@router.get("/certificate-status", response_model=CertificateStatusResponse)
def certificate_status(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Recomputed on every call: eligible when every published course is enrolled, watched and passed."""
    check = progress.check_certificate(db, current_user.id)
    if check.eligible:
        return CertificateStatusResponse(
            eligible=True,
            certificate_data=CertificateData(
                user_name=current_user.name,
                completion_date=utcnow(),
                total_courses=check.total_courses,
            ),
        )
    if check.total_courses == 0:
        message = "No published courses available"
    elif check.enrolled_courses < check.total_courses:
        message = "Not enrolled in all courses"
    else:
        message = "Not all courses completed"
    return CertificateStatusResponse(
        eligible=False,
        message=message,
        progress=CertificateProgress(
            total_courses=check.total_courses,
            enrolled_courses=check.enrolled_courses,
            completed_courses=check.completed_courses,
        ),
    )


@router.post("/{course_id}/enroll", response_model=EnrollResponse)
def enroll(
    course_id: uuid.UUID,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Idempotent: 201 on first enroll, 200 with the existing enrollment afterwards."""
    enrollment, created = progress.enroll(db, current_user.id, course_id)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    message = "Enrolled successfully" if created else "Already enrolled"
    return EnrollResponse(message=message, enrollment=_enrollment_to_response(enrollment))


@router.get("/{course_id}/status", response_model=EnrollmentStatusResponse)
def enrollment_status(
    course_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    enrollment = progress.get_enrollment(db, current_user.id, course_id)
    if not enrollment:
        return EnrollmentStatusResponse(enrolled=False)
    return EnrollmentStatusResponse(enrolled=True, enrollment=_enrollment_to_response(enrollment))


@router.patch("/{course_id}/video-watched", response_model=EnrollResponse)
def video_watched(
    course_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Satisfy the test gate for this course."""
    enrollment = progress.mark_video_watched(db, current_user.id, course_id)
    return EnrollResponse(message="Video marked as watched", enrollment=_enrollment_to_response(enrollment))


@router.get("/{course_id}/test", response_model=TestView)
def get_test(
    course_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Serve the test per the retake policy: questions (no key) when unattempted or the latest attempt failed;
    only the previous result once the latest attempt passed.
    """
    enrollment, course = progress.require_test_access(db, current_user.id, course_id)
    gate = progress.resolve_gate(enrollment)
    if gate is GateState.COMPLETED:
        return TestView(
            has_attempted=True,
            gate=gate.value,
            questions=[],
            time_limit=course.test_time_limit,
            previous_result=_previous_result(enrollment, include_certificate=True),
        )
    questions = [
        TestQuestion(question_number=i + 1, question=q.question, options=list(q.options))
        for i, q in enumerate(course.questions)
    ]
    previous = None
    if gate is GateState.RETAKABLE:
        previous = _previous_result(enrollment, include_certificate=False)
    return TestView(
        has_attempted=False,
        gate=gate.value,
        questions=questions,
        time_limit=course.test_time_limit,
        previous_result=previous,
    )


@router.post("/{course_id}/test/submit", response_model=SubmitResult)
def submit_test(
    course_id: uuid.UUID,
    data: SubmitRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Score answers and append the next attempt. 400 when the answer count differs from the question count."""
    outcome = progress.submit_test(db, current_user.id, course_id, data.answers)
    r = outcome.result
    return SubmitResult(
        score=r.score,
        correct_answers=r.correct_answers,
        wrong_answers=r.wrong_answers,
        total_questions=r.total_questions,
        passed=r.passed,
        attempt_number=outcome.attempt_number,
        certificate_generated=outcome.certificate_generated,
        best_score=outcome.best_score,
    )
