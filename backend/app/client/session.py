"""
Test-taking state machine for a timed MCQ test, driven by a host UI loop.

    NOT_STARTED --start()--> IN_PROGRESS --timer hits 0 / submit()--> SUBMITTED
                                  |
                     tab hidden / history back
                                  v
                              VIOLATED --restart delay elapses--> NOT_STARTED (empty answers)

The host calls tick() once per second and fires the visibility / back-navigation signals. The session holds
a Subscription on each signal only while IN_PROGRESS and releases them on every exit (submit, violation,
close). The timer is stopped before a submission is sent, so a zero-countdown auto-submit and a manual submit
never both go out; while a submission is pending, further submits are ignored.
"""
import logging
from enum import Enum
from typing import Callable

import httpx

from app.client.api import ApiError, LmsClient
from app.config import settings

logger = logging.getLogger(__name__)

UNANSWERED = -1


class SessionState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    VIOLATED = "violated"


class SubmissionNotAllowed(Exception):
    """Manual submit while a question is unanswered or outside IN_PROGRESS."""


class Subscription:
    """Handle returned by Signal.subscribe; release() is idempotent."""

    def __init__(self, signal: "Signal", callback: Callable[[], None]):
        self._signal = signal
        self._callback = callback
        self.active = True

    def release(self) -> None:
        if self.active:
            self._signal._detach(self._callback)
            self.active = False


class Signal:
    """Event source owned by the host (e.g. 'visibility hidden', 'history back')."""

    def __init__(self, name: str):
        self.name = name
        self._listeners: list[Callable[[], None]] = []

    def subscribe(self, callback: Callable[[], None]) -> Subscription:
        self._listeners.append(callback)
        return Subscription(self, callback)

    def _detach(self, callback: Callable[[], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def fire(self) -> None:
        for cb in list(self._listeners):
            cb()


class TestSession:
    """One learner's run at one course test."""

    def __init__(
        self,
        client: LmsClient,
        course_id: str,
        visibility_hidden: Signal,
        back_navigation: Signal,
        on_warning: Callable[[str], None] | None = None,
        restart_delay: int | None = None,
    ):
        self.client = client
        self.course_id = str(course_id)
        self.visibility_hidden = visibility_hidden
        self.back_navigation = back_navigation
        self.on_warning = on_warning or (lambda msg: logger.warning("%s", msg))
        self.restart_delay = settings.violation_restart_delay_seconds if restart_delay is None else restart_delay

        self.state = SessionState.NOT_STARTED
        self.questions: list[dict] = []
        self.time_limit_minutes = settings.default_test_time_limit
        self.gate: str | None = None
        self.previous_result: dict | None = None
        self.result: dict | None = None

        self.answers: dict[int, int] = {}
        self.time_left = 0
        self.timer_running = False
        self.violation_count = 0
        self.submitting = False
        self._restart_in = 0
        self._subscriptions: list[Subscription] = []

    # ==================== LOAD / START ====================

    def load(self) -> None:
        """Fetch the test. A passed test opens straight on its previous result; nothing can be answered."""
        data = self.client.get_test(self.course_id)
        self.questions = data.get("questions") or []
        self.time_limit_minutes = data.get("timeLimit") or settings.default_test_time_limit
        self.gate = data.get("gate")
        self.previous_result = data.get("previousResult")
        if data.get("hasAttempted") and self.previous_result and self.previous_result.get("passed"):
            self.result = self.previous_result
            self.state = SessionState.SUBMITTED
        else:
            self.result = None
            self.state = SessionState.NOT_STARTED

    def start(self) -> None:
        if self.state is not SessionState.NOT_STARTED:
            raise SubmissionNotAllowed(f"cannot start from {self.state.value}")
        if not self.questions:
            raise SubmissionNotAllowed("no questions loaded")
        self.answers = {}
        self.time_left = self.time_limit_minutes * 60
        self.timer_running = True
        self.state = SessionState.IN_PROGRESS
        self._subscriptions = [
            self.visibility_hidden.subscribe(lambda: self._violate("Tab switch detected! Test will restart.")),
            self.back_navigation.subscribe(lambda: self._violate("Cannot go back during test! Test will restart.")),
        ]

    # ==================== ANSWERS ====================

    def select(self, question_index: int, option_index: int) -> None:
        if self.state is not SessionState.IN_PROGRESS or self.submitting:
            return
        if not 0 <= question_index < len(self.questions):
            raise IndexError(f"question {question_index} out of range")
        option_count = len(self.questions[question_index].get("options") or [])
        if not 0 <= option_index < option_count:
            raise ValueError(f"option {option_index} out of range for question {question_index}")
        self.answers[question_index] = option_index

    @property
    def answered_count(self) -> int:
        return len(self.answers)

    @property
    def all_answered(self) -> bool:
        return bool(self.questions) and all(i in self.answers for i in range(len(self.questions)))

    @property
    def can_submit(self) -> bool:
        """Every question answered, or time ran out (a failed auto-submit can be retried as is)."""
        if self.state is not SessionState.IN_PROGRESS or self.submitting:
            return False
        return self.all_answered or self.time_left == 0

    def answers_payload(self) -> list[int]:
        return [self.answers.get(i, UNANSWERED) for i in range(len(self.questions))]

    # ==================== CLOCK ====================

    def tick(self) -> None:
        """Advance one second: count down the test, or the restart delay after a violation."""
        if self.state is SessionState.VIOLATED:
            self._restart_in -= 1
            if self._restart_in <= 0:
                self._restart()
            return
        if self.state is not SessionState.IN_PROGRESS or not self.timer_running:
            return
        self.time_left = max(0, self.time_left - 1)
        if self.time_left == 0:
            self.on_warning("Time's up! Submitting your answers...")
            self._send()

    # ==================== SUBMIT ====================

    def submit(self) -> dict | None:
        """Manual submit; only allowed once every question has an answer. Ignored while one is pending."""
        if self.submitting:
            return None
        if not self.can_submit:
            raise SubmissionNotAllowed("answer every question before submitting")
        return self._send()

    def _send(self) -> dict | None:
        if self.submitting:
            return None
        self.timer_running = False
        self.submitting = True
        try:
            result = self.client.submit_test(self.course_id, self.answers_payload())
        except (ApiError, httpx.HTTPError) as e:
            detail = e.message if isinstance(e, ApiError) else str(e) or type(e).__name__
            self.on_warning(f"Failed to submit test. Please try again. ({detail})")
            return None
        finally:
            self.submitting = False
        self._release_subscriptions()
        self.result = result
        self.state = SessionState.SUBMITTED
        return result

    # ==================== VIOLATION / TEARDOWN ====================

    def _violate(self, message: str) -> None:
        if self.state is not SessionState.IN_PROGRESS or self.submitting:
            return
        self.violation_count += 1
        self.timer_running = False
        self.answers = {}
        self._release_subscriptions()
        self.state = SessionState.VIOLATED
        self._restart_in = self.restart_delay
        self.on_warning(message)
        if self._restart_in <= 0:
            self._restart()

    def _restart(self) -> None:
        self.answers = {}
        self.time_left = 0
        self.timer_running = False
        self.state = SessionState.NOT_STARTED

    def _release_subscriptions(self) -> None:
        for sub in self._subscriptions:
            sub.release()
        self._subscriptions = []

    @property
    def listening(self) -> bool:
        return any(sub.active for sub in self._subscriptions)

    def close(self) -> None:
        """Host is tearing the view down: drop listeners and timer; nothing in progress is persisted."""
        self._release_subscriptions()
        self.timer_running = False
        if self.state in (SessionState.IN_PROGRESS, SessionState.VIOLATED):
            self._restart()
