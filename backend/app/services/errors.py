"""
Domain errors for enrollment, testing and certificates. Each carries the HTTP status the API returns;
app.main turns them into the {success: false, message} envelope.
"""


class AppError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class NotEnrolled(AppError):
    status_code = 403
    message = "Not enrolled in this course"


class VideoNotWatched(AppError):
    status_code = 403
    message = "Please watch the video first"


class CourseNotFound(AppError):
    status_code = 404
    message = "Course not found"


class EnrollmentNotFound(AppError):
    status_code = 404
    message = "Enrollment not found"


class TestNotAvailable(AppError):
    status_code = 404
    message = "Test not available"


class AnswerCountMismatch(AppError):
    status_code = 400

    def __init__(self, expected: int, got: int):
        super().__init__(f"Expected {expected} answers, got {got}")
        self.expected = expected
        self.got = got


class AttemptAppendConflict(AppError):
    """Raised only when concurrent submissions kept colliding after all retries."""
    status_code = 409
    message = "Another submission for this test is in progress. Try again."
