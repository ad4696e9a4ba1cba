"""
Client tests: LmsClient over the real app (TestClient) and the test-taking session state machine
(violations, restart countdown, auto-submit, listener release).
"""
import httpx
import pytest

from app.client import api as lms
from app.client import session as ts

from conftest import create_course, enroll_and_watch


@pytest.fixture
def signals():
    return ts.Signal("visibility-hidden"), ts.Signal("history-back")


def _session(student_client, course_id, signals, warnings=None, **kwargs):
    hidden, back = signals
    on_warning = warnings.append if warnings is not None else None
    return ts.TestSession(lms.LmsClient(http=student_client), course_id, hidden, back, on_warning=on_warning, **kwargs)


def test_client_raises_api_error_with_message(student_client, instructor_client):
    course_id = create_course(instructor_client, [0])
    client = lms.LmsClient(http=student_client)
    with pytest.raises(lms.ApiError) as exc:
        client.get_test(course_id)
    assert exc.value.status_code == 403
    assert exc.value.message == "Not enrolled in this course"


def test_client_not_authenticated(client):
    with pytest.raises(lms.NotAuthenticated):
        lms.LmsClient(http=client).my_enrollments()


def test_client_login_keeps_cookie(client, student):
    from conftest import PASSWORD

    api = lms.LmsClient(http=client)
    assert api.login(student.email, PASSWORD)["user"]["email"] == student.email
    assert api.me()["name"] == "Asha Student"
    assert api.my_enrollments() == []


def test_tab_switch_restarts_with_empty_answers(student_client, instructor_client, signals):
    course_id = create_course(instructor_client, [0, 0, 0, 0, 0])
    enroll_and_watch(student_client, course_id)
    warnings = []
    s = _session(student_client, course_id, signals, warnings)
    s.load()
    s.start()
    hidden, back = signals
    assert hidden.listener_count == 1
    assert back.listener_count == 1
    for i in range(3):
        s.select(i, 0)
    assert s.answered_count == 3

    hidden.fire()
    assert s.state is ts.SessionState.VIOLATED
    assert s.violation_count == 1
    assert warnings == ["Tab switch detected! Test will restart."]
    assert hidden.listener_count == 0
    assert back.listener_count == 0
    assert s.timer_running is False
    assert s.answers == {}

    s.tick()
    assert s.state is ts.SessionState.VIOLATED
    s.tick()
    assert s.state is ts.SessionState.NOT_STARTED
    assert s.answers == {}
    assert s.answered_count == 0

    s.start()
    back.fire()
    assert s.violation_count == 2
    assert warnings[-1] == "Cannot go back during test! Test will restart."


def test_manual_submit_requires_every_answer(student_client, instructor_client, signals):
    course_id = create_course(instructor_client, [0, 1])
    enroll_and_watch(student_client, course_id)
    s = _session(student_client, course_id, signals)
    s.load()
    s.start()
    s.select(0, 0)
    assert s.can_submit is False
    with pytest.raises(ts.SubmissionNotAllowed):
        s.submit()

    s.select(1, 1)
    result = s.submit()
    assert result["score"] == 100
    assert result["attemptNumber"] == 1
    assert s.state is ts.SessionState.SUBMITTED
    assert s.listening is False
    assert signals[0].listener_count == 0


def test_timer_expiry_auto_submits_partial_answers(student_client, instructor_client, signals):
    course_id = create_course(instructor_client, [0, 0, 0], testTimeLimit=1)
    enroll_and_watch(student_client, course_id)
    warnings = []
    s = _session(student_client, course_id, signals, warnings)
    s.load()
    s.start()
    assert s.time_left == 60
    s.select(0, 0)
    for _ in range(59):
        s.tick()
    assert s.state is ts.SessionState.IN_PROGRESS
    s.tick()
    assert s.state is ts.SessionState.SUBMITTED
    assert "Time's up! Submitting your answers..." in warnings
    assert s.result["score"] == 33
    assert s.result["passed"] is False
    s.tick()
    attempts = student_client.get(f"/enrollment/{course_id}/status").json()["enrollment"]["testAttempts"]
    assert len(attempts) == 1


def test_passed_test_loads_as_submitted(student_client, instructor_client, signals):
    course_id = create_course(instructor_client, [0])
    enroll_and_watch(student_client, course_id)
    student_client.post(f"/enrollment/{course_id}/test/submit", json={"answers": [0]})
    s = _session(student_client, course_id, signals)
    s.load()
    assert s.state is ts.SessionState.SUBMITTED
    assert s.questions == []
    assert s.result["score"] == 100
    with pytest.raises(ts.SubmissionNotAllowed):
        s.start()


def test_failed_test_loads_retake_with_previous_result(student_client, instructor_client, signals):
    course_id = create_course(instructor_client, [0])
    enroll_and_watch(student_client, course_id)
    student_client.post(f"/enrollment/{course_id}/test/submit", json={"answers": [1]})
    s = _session(student_client, course_id, signals)
    s.load()
    assert s.state is ts.SessionState.NOT_STARTED
    assert s.gate == "retakable"
    assert s.previous_result["score"] == 0
    assert len(s.questions) == 1


class _FailingClient:
    def __init__(self, questions, error=None):
        self._questions = questions
        self.error = error or lms.ApiError(500, "boom")
        self.calls = 0

    def get_test(self, course_id):
        return {"hasAttempted": False, "gate": "unattempted", "questions": self._questions, "timeLimit": 1}

    def submit_test(self, course_id, answers):
        self.calls += 1
        raise self.error


def test_failed_submission_stays_in_progress(signals):
    hidden, back = signals
    warnings = []
    fake = _FailingClient([{"questionNumber": 1, "question": "Q", "options": ["A", "B", "C", "D"]}])
    s = ts.TestSession(fake, "course", hidden, back, on_warning=warnings.append)
    s.load()
    s.start()
    s.select(0, 2)
    assert s.submit() is None
    assert fake.calls == 1
    assert s.state is ts.SessionState.IN_PROGRESS
    assert s.submitting is False
    assert s.listening is True
    assert warnings[-1].startswith("Failed to submit test. Please try again.")
    assert s.can_submit is True


def test_close_releases_listeners_and_discards_answers(student_client, instructor_client, signals):
    course_id = create_course(instructor_client, [0, 0])
    enroll_and_watch(student_client, course_id)
    s = _session(student_client, course_id, signals)
    s.load()
    s.start()
    s.select(0, 1)
    s.close()
    assert signals[0].listener_count == 0
    assert signals[1].listener_count == 0
    assert s.state is ts.SessionState.NOT_STARTED
    assert s.answers == {}
    signals[0].fire()
    assert s.violation_count == 0


def test_zero_restart_delay_restarts_immediately(signals):
    hidden, back = signals
    fake = _FailingClient([{"questionNumber": 1, "question": "Q", "options": ["A", "B", "C", "D"]}])
    s = ts.TestSession(fake, "course", hidden, back, on_warning=lambda m: None, restart_delay=0)
    s.load()
    s.start()
    hidden.fire()
    assert s.state is ts.SessionState.NOT_STARTED
    assert s.violation_count == 1


def test_subscription_release_is_idempotent():
    sig = ts.Signal("x")
    sub = sig.subscribe(lambda: None)
    assert sig.listener_count == 1
    sub.release()
    sub.release()
    assert sig.listener_count == 0
    assert sub.active is False


ONE_QUESTION = [{"questionNumber": 1, "question": "Q", "options": ["A", "B", "C", "D"]}]


def test_network_failure_on_submit_keeps_session_usable(signals):
    hidden, back = signals
    warnings = []
    fake = _FailingClient(ONE_QUESTION, error=httpx.ConnectError("connection refused"))
    s = ts.TestSession(fake, "course", hidden, back, on_warning=warnings.append)
    s.load()
    s.start()
    s.select(0, 1)
    assert s.submit() is None
    assert s.state is ts.SessionState.IN_PROGRESS
    assert s.submitting is False
    assert s.can_submit is True
    assert "connection refused" in warnings[-1]

    assert s.submit() is None
    assert fake.calls == 2

    hidden.fire()
    assert s.state is ts.SessionState.VIOLATED


def test_network_failure_on_auto_submit_allows_retry(signals):
    hidden, back = signals
    fake = _FailingClient(ONE_QUESTION, error=httpx.ReadTimeout("timed out"))
    s = ts.TestSession(fake, "course", hidden, back, on_warning=lambda m: None)
    s.load()
    s.start()
    for _ in range(60):
        s.tick()
    assert fake.calls == 1
    assert s.state is ts.SessionState.IN_PROGRESS
    assert s.time_left == 0
    assert s.can_submit is True


def test_client_wraps_transport_errors():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    http = httpx.Client(base_url="http://lms.invalid", transport=httpx.MockTransport(refuse))
    with lms.LmsClient(http=http) as api:
        with pytest.raises(lms.ApiError) as exc:
            api.submit_test("course", [0])
    assert exc.value.status_code == 0
    assert "Network error" in exc.value.message
    http.close()


def test_select_rejects_out_of_range_option(signals):
    hidden, back = signals
    s = ts.TestSession(_FailingClient(ONE_QUESTION), "course", hidden, back, on_warning=lambda m: None)
    s.load()
    s.start()
    for bad in (-1, 4, 9):
        with pytest.raises(ValueError):
            s.select(0, bad)
    assert s.all_answered is False
    assert s.can_submit is False
    with pytest.raises(ts.SubmissionNotAllowed):
        s.submit()
    s.select(0, 3)
    assert s.all_answered is True
