"""
FastAPI application entrypoint.
APIs: auth, courses, enrollment, analytics. Run with: uvicorn app.main:app --reload --port 8080

API base path: routes are mounted at root (no /api/v1 prefix).
  - Auth:       POST /auth/register, POST /auth/login, GET /auth/logout, GET /auth/me
  - Courses:    POST /courses, PUT /courses/{id}/questions, PATCH /courses/{id}/publish, GET /courses/published, GET /courses/published/mine, ...
  - Enrollment: POST /enrollment/{course_id}/enroll, PATCH /enrollment/{course_id}/video-watched,
                GET /enrollment/{course_id}/test, POST /enrollment/{course_id}/test/submit,
                GET /enrollment/certificate-status, GET /enrollment/my-enrollments
  - Analytics:  GET /analytics/stats, GET /analytics/marks

Errors are returned as {"success": false, "message": ...} with the matching status code.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.api.auth import router as auth_router
from app.api.courses import router as courses_router
from app.api.enrollment import router as enrollment_router
from app.api.analytics import router as analytics_router
from app.services.errors import AppError

logger = logging.getLogger("app.main")

app = FastAPI(
    title="Course Progress API",
    description="Enrollment, video-gated MCQ tests, retake policy and certificate eligibility.",
    version="0.1.0",
)

_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins if _origins else ["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(courses_router)
app.include_router(enrollment_router)
app.include_router(analytics_router)


def _envelope(status_code: int, message: str, headers: dict | None = None, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, **extra},
        headers=headers,
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    logger.info("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.message)
    return _envelope(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _envelope(exc.status_code, message, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    first = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return _envelope(422, first, detail=errors)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    message = "Internal server error. Check server logs for details."
    if getattr(settings, "debug", False):
        message = f"Internal server error: {type(exc).__name__}: {exc}"
    return _envelope(500, message)


@app.on_event("startup")
def startup():
    """Init SQLite DB. Fail fast if production uses default SECRET_KEY."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    if settings.is_production:
        if (getattr(settings, "secret_key", "") or "").strip() == "change-me-in-production":
            logger.critical("SECRET_KEY must be set in production. Set SECRET_KEY in env or .env.")
            raise RuntimeError("SECRET_KEY must be set in production. Set SECRET_KEY in env or .env.")
    from app.database import init_sqlite_db
    init_sqlite_db()
    logger.info("Pass mark: %s%% (PASS_THRESHOLD_PERCENT)", settings.pass_threshold_percent)


@app.get("/health")
def health():
    """Health check (JSON)."""
    return {"status": "ok", "message": "Course Progress API"}
