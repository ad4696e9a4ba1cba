"""
Enrollment: one row per (user, course) holding video status, best score and certificate flag.
TestAttempt: append-only log keyed by (enrollment_id, attempt_number); rows are never updated or deleted
by the application. attempt_number is 1-based and gap-free per enrollment.
"""
import uuid
from datetime import datetime
from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.types import JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base
from app.models.types import UuidType, utcnow


class Enrollment(Base):
    __tablename__ = "enrollments"

    id: Mapped[uuid.UUID] = mapped_column(
        UuidType(), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UuidType(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    course_id: Mapped[uuid.UUID] = mapped_column(
        UuidType(), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    video_watched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    best_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    certificate_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    certificate_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    enrolled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="enrollments_user_course_key"),
    )

    user = relationship("User", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")
    attempts = relationship(
        "TestAttempt", back_populates="enrollment", cascade="all, delete-orphan",
        order_by="TestAttempt.attempt_number", passive_deletes=True,
    )

    @property
    def latest_attempt(self) -> "TestAttempt | None":
        return self.attempts[-1] if self.attempts else None


class TestAttempt(Base):
    __tablename__ = "test_attempts"

    id: Mapped[uuid.UUID] = mapped_column(
        UuidType(), primary_key=True, default=uuid.uuid4
    )
    enrollment_id: Mapped[uuid.UUID] = mapped_column(
        UuidType(), ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    correct_answers: Mapped[int] = mapped_column(Integer, nullable=False)
    wrong_answers: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False)
    answers: Mapped[list] = mapped_column(JSON, nullable=False)  # [{"questionIndex", "selectedAnswer", "isCorrect"}]
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("enrollment_id", "attempt_number", name="test_attempts_enrollment_number_key"),
        CheckConstraint("attempt_number >= 1", name="test_attempts_number_check"),
        CheckConstraint("score >= 0 AND score <= 100", name="test_attempts_score_check"),
    )

    enrollment = relationship("Enrollment", back_populates="attempts")
