"""
Instructor analytics schemas: dashboard counters and per-enrollment marks.
"""
from datetime import datetime

from app.schemas.base import CamelModel


class UserStats(CamelModel):
    total_students: int
    total_instructors: int
    recent_users: int


class CourseStats(CamelModel):
    total_courses: int
    published_courses: int
    unpublished_courses: int


class EnrollmentStats(CamelModel):
    total_enrollments: int
    recent_enrollments: int
    students_watched_video: int
    students_took_test: int
    students_completed: int


class PerformanceStats(CamelModel):
    average_test_score: int
    pass_rate: int
    pass_threshold: int


class PopularCourse(CamelModel):
    course_id: str
    course_name: str
    enrollment_count: int
    thumbnail: str | None = None


class DashboardStatsResponse(CamelModel):
    users: UserStats
    courses: CourseStats
    enrollments: EnrollmentStats
    performance: PerformanceStats
    popular_courses: list[PopularCourse]


class MarksRow(CamelModel):
    enrollment_id: str
    student_id: str
    student_name: str
    student_email: str
    course_id: str
    course_title: str
    video_watched: bool
    attempts: int
    best_score: int
    latest_score: int | None = None
    completed: bool
    last_attempt_at: datetime | None = None


class MarksResponse(CamelModel):
    items: list[MarksRow]
    total: int
