"""
Enrollment, test and certificate schemas.
"""
from datetime import datetime

from pydantic import field_validator

from app.schemas.base import CamelModel


class AttemptResponse(CamelModel):
    attempt_number: int
    score: int
    correct_answers: int
    wrong_answers: int
    total_questions: int
    passed: bool
    completed_at: datetime


class EnrollmentResponse(CamelModel):
    id: str
    user_id: str
    course_id: str
    video_watched: bool
    best_score: int
    certificate_generated: bool
    certificate_url: str | None = None
    completed_at: datetime | None = None
    enrolled_at: datetime
    test_attempts: list[AttemptResponse] = []


class EnrollResponse(CamelModel):
    success: bool = True
    message: str
    enrollment: EnrollmentResponse


class EnrollmentStatusResponse(CamelModel):
    enrolled: bool
    enrollment: EnrollmentResponse | None = None


class CourseSummary(CamelModel):
    id: str
    title: str
    subtitle: str | None = None
    thumbnail_url: str | None = None
    level: str | None = None
    category: str
    video_url: str | None = None


class MyEnrollmentItem(EnrollmentResponse):
    course: CourseSummary


class MyEnrollmentsResponse(CamelModel):
    enrollments: list[MyEnrollmentItem]


class TestQuestion(CamelModel):
    """A question as served to a student: no answer key."""

    question_number: int
    question: str
    options: list[str]


class PreviousResult(CamelModel):
    score: int
    correct_answers: int
    wrong_answers: int
    total_questions: int
    passed: bool
    attempt_number: int
    certificate_generated: bool | None = None


class TestView(CamelModel):
    """GET /enrollment/{course_id}/test. questions is empty once the latest attempt passed."""

    has_attempted: bool
    gate: str  # unattempted | completed | retakable
    questions: list[TestQuestion]
    time_limit: int
    previous_result: PreviousResult | None = None


class SubmitRequest(CamelModel):
    answers: list[int | None]  # one per question; -1 or null = unanswered

    @field_validator("answers")
    @classmethod
    def answers_not_empty(cls, v: list[int | None]) -> list[int | None]:
        if not v:
            raise ValueError("answers must contain one entry per question")
        return v


class SubmitResult(CamelModel):
    score: int
    correct_answers: int
    wrong_answers: int
    total_questions: int
    passed: bool
    attempt_number: int
    certificate_generated: bool
    best_score: int


class CertificateData(CamelModel):
    user_name: str
    completion_date: datetime
    total_courses: int


class CertificateProgress(CamelModel):
    total_courses: int
    enrolled_courses: int
    completed_courses: int


class CertificateStatusResponse(CamelModel):
    eligible: bool
    message: str | None = None
    certificate_data: CertificateData | None = None
    progress: CertificateProgress | None = None
