"""
Shared fixtures: a throwaway SQLite file per session, schema reset per test, and logged-in TestClients.
DATABASE_URL is set before app modules are imported so the engine binds to the temp file.
"""
import os
import tempfile
import uuid

_DB_DIR = tempfile.mkdtemp(prefix="lms-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/test.db"

import pytest
from fastapi.testclient import TestClient

from app import models  # noqa: F401  (registers tables on Base.metadata)
from app.database import Base, SessionLocal, engine
from app.main import app
from app.models.user import User
from app.services.auth import hash_password

PASSWORD = "testpass123"


@pytest.fixture(autouse=True)
def fresh_schema():
    """Every test starts from empty tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_user(role: str = "student", name: str = "Test User") -> User:
    """Insert a user directly (instructors cannot self-register); return it detached."""
    session = SessionLocal()
    try:
        user = User(
            name=name,
            email=f"{role}-{uuid.uuid4().hex[:8]}@tests.example.com",
            password_hash=hash_password(PASSWORD),
            role=role,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        session.expunge(user)
        return user
    finally:
        session.close()


def login(client: TestClient, email: str, password: str = PASSWORD):
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def student():
    return make_user("student", name="Asha Student")


@pytest.fixture
def student_client(student):
    """TestClient carrying the student's auth cookie."""
    with TestClient(app) as c:
        login(c, student.email)
        yield c


@pytest.fixture
def instructor_client():
    instructor = make_user("instructor", name="Ira Instructor")
    with TestClient(app) as c:
        login(c, instructor.email)
        yield c


def question(correct: int, text: str = "Pick one") -> dict:
    return {"question": text, "options": ["A", "B", "C", "D"], "correctAnswer": correct}


def create_course(instructor: TestClient, key: list[int], publish: bool = True, title: str = "Course", **extra) -> str:
    """Create a course whose answer key is `key`; publish it unless told not to. Returns the course id."""
    body = {
        "title": title,
        "category": "science",
        "videoUrl": "https://videos.example.com/1.mp4",
        "testQuestions": [question(k, f"Q{i + 1}") for i, k in enumerate(key)],
        **extra,
    }
    r = instructor.post("/courses", json=body)
    assert r.status_code == 201, r.text
    course_id = r.json()["id"]
    if publish:
        r = instructor.patch(f"/courses/{course_id}/publish", params={"publish": True})
        assert r.status_code == 200, r.text
    return course_id


def enroll_and_watch(student: TestClient, course_id: str) -> None:
    assert student.post(f"/enrollment/{course_id}/enroll").status_code == 201
    assert student.patch(f"/enrollment/{course_id}/video-watched").status_code == 200
