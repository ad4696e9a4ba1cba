"""
Auth request/response schemas.
"""
from typing import Literal

from pydantic import EmailStr, field_validator

from app.schemas.base import CamelModel

Category = Literal[
    "grade_3_5_basic",
    "grade_6_8_basic",
    "grade_9_12_basic",
    "grade_3_5_advance",
    "grade_6_8_advance",
    "grade_9_12_advance",
]


def _check_password(v: str) -> str:
    if len(v.encode("utf-8")) > 72:
        raise ValueError("Password must be at most 72 bytes (bcrypt limit)")
    return v


class RegisterRequest(CamelModel):
    name: str
    email: EmailStr
    password: str
    category: Category = "grade_3_5_basic"
    school: str = ""

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return _check_password(v)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return _check_password(v)


class UserResponse(CamelModel):
    id: str
    name: str
    email: str
    role: str
    category: str
    school: str
    enrolled_courses: list[str] = []


class LoginResponse(CamelModel):
    success: bool = True
    message: str
    user: UserResponse
    token: str


class MessageResponse(CamelModel):
    success: bool = True
    message: str
