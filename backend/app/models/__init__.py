"""
SQLAlchemy models. Import here so Alembic and app can use them.
"""
from app.models.user import User
from app.models.course import Course, CourseQuestion
from app.models.enrollment import Enrollment, TestAttempt

__all__ = ["User", "Course", "CourseQuestion", "Enrollment", "TestAttempt"]
