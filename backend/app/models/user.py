"""
User model: auth (email + password), role (instructor | student), grade category and school.
Enrollments are scoped by user_id; enrolled course ids are derived from them.
"""
import uuid
from datetime import datetime
from sqlalchemy import String, Boolean, DateTime, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base
from app.models.types import UuidType

ROLES = ("instructor", "student")
CATEGORIES = (
    "grade_3_5_basic",
    "grade_6_8_basic",
    "grade_9_12_basic",
    "grade_3_5_advance",
    "grade_6_8_advance",
    "grade_9_12_advance",
)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UuidType(), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(30), nullable=False, default="student"
    )  # instructor | student
    category: Mapped[str] = mapped_column(String(40), nullable=False, default="grade_3_5_basic")
    school: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("role IN ('instructor', 'student')", name="users_role_check"),
    )

    enrollments = relationship("Enrollment", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    courses_created = relationship("Course", back_populates="creator")

    @property
    def enrolled_course_ids(self) -> list[uuid.UUID]:
        return [e.course_id for e in self.enrollments]
