"""
Course and test-question schemas. Public shapes never carry the answer key.
"""
from typing import Literal

from pydantic import Field, field_validator, model_validator

from app.schemas.base import CamelModel


class QuestionPayload(CamelModel):
    question: str
    options: list[str]
    correct_answer: int

    @field_validator("options")
    @classmethod
    def four_options(cls, v: list[str]) -> list[str]:
        if len(v) != 4:
            raise ValueError("options must have exactly 4 items")
        return v

    @model_validator(mode="after")
    def answer_in_range(self):
        if not 0 <= self.correct_answer < len(self.options):
            raise ValueError("correct_answer must index one of the options (0-3)")
        return self


class CourseCreateRequest(CamelModel):
    title: str
    category: str
    subtitle: str | None = None
    description: str | None = None
    level: Literal["Beginner", "Medium", "Advance"] | None = None
    thumbnail_url: str | None = None
    video_url: str | None = None
    test_time_limit: int | None = Field(default=None, ge=1)  # minutes; default from settings
    test_questions: list[QuestionPayload] = []


class QuestionsUpdateRequest(CamelModel):
    test_questions: list[QuestionPayload]
    test_time_limit: int | None = Field(default=None, ge=1)


class CourseResponse(CamelModel):
    id: str
    title: str
    subtitle: str | None = None
    description: str | None = None
    category: str
    level: str | None = None
    thumbnail_url: str | None = None
    video_url: str | None = None
    test_time_limit: int
    is_published: bool
    is_live: bool
    question_count: int
    creator_id: str | None = None


class CourseListResponse(CamelModel):
    items: list[CourseResponse]
    total: int
