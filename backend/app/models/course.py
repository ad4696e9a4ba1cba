"""
Course: title, category, level, media references and a timed MCQ test.
The test is inert (not servable, not submittable) until is_published and at least one question exists.
"""
import uuid
from datetime import datetime
from sqlalchemy import String, Text, Integer, Boolean, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.types import JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base
from app.models.types import UuidType

LEVELS = ("Beginner", "Medium", "Advance")


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[uuid.UUID] = mapped_column(
        UuidType(), primary_key=True, default=uuid.uuid4
    )
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    subtitle: Mapped[str | None] = mapped_column(String(512), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    level: Mapped[str | None] = mapped_column(String(20), nullable=True)  # Beginner | Medium | Advance
    thumbnail_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    video_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    test_time_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=20)  # minutes
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    is_live: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    creator_id: Mapped[uuid.UUID | None] = mapped_column(
        UuidType(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("level IS NULL OR level IN ('Beginner', 'Medium', 'Advance')", name="courses_level_check"),
        CheckConstraint("test_time_limit > 0", name="courses_time_limit_check"),
    )

    creator = relationship("User", back_populates="courses_created")
    questions = relationship(
        "CourseQuestion", back_populates="course", cascade="all, delete-orphan",
        order_by="CourseQuestion.sort_order", passive_deletes=True,
    )
    enrollments = relationship("Enrollment", back_populates="course", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def has_test(self) -> bool:
        """True when students can be served and can submit this course's test."""
        return bool(self.is_published) and len(self.questions) > 0


class CourseQuestion(Base):
    """One MCQ of a course test: four options, correct_answer is the 0-based option index."""

    __tablename__ = "course_questions"

    id: Mapped[uuid.UUID] = mapped_column(
        UuidType(), primary_key=True, default=uuid.uuid4
    )
    course_id: Mapped[uuid.UUID] = mapped_column(
        UuidType(), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list] = mapped_column(JSON, nullable=False)  # ["...", "...", "...", "..."]
    correct_answer: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("correct_answer >= 0 AND correct_answer <= 3", name="course_questions_correct_answer_check"),
    )

    course = relationship("Course", back_populates="questions")
