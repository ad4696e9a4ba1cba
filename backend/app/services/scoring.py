"""
Test scoring: pure function from the course question key and submitted answers to a score and verdict.
Score is the percentage of correct answers rounded half up (2/3 -> 67, 1/8 -> 13), never banker's rounding.
"""
from typing import NamedTuple

from app.config import settings

UNANSWERED = -1


class ScoreResult(NamedTuple):
    """Outcome of scoring one submission; answers is the per-question detail stored on the attempt."""

    correct_answers: int
    total_questions: int
    score: int
    passed: bool
    answers: list[dict]  # [{"questionIndex", "selectedAnswer", "isCorrect"}]

    @property
    def wrong_answers(self) -> int:
        return self.total_questions - self.correct_answers


def percent_half_up(correct: int, total: int) -> int:
    """round(correct / total * 100) with .5 rounded up, in integer arithmetic."""
    if total <= 0:
        raise ValueError("total must be positive")
    return (200 * correct + total) // (2 * total)


def is_passing(score: int, threshold: int | None = None) -> bool:
    limit = settings.pass_threshold_percent if threshold is None else threshold
    return score >= limit


def normalize_answer(value) -> int:
    """None, bools and negatives all mean 'unanswered'."""
    if value is None or isinstance(value, bool):
        return UNANSWERED
    value = int(value)
    return value if value >= 0 else UNANSWERED


def score_answers(correct_key: list[int], answers: list, threshold: int | None = None) -> ScoreResult:
    """
    Score answers against correct_key (0-based option index per question).
    answers must have one entry per question; unanswered (-1/None) and out-of-range picks are incorrect.
    """
    if not correct_key:
        raise ValueError("cannot score a test with no questions")
    if len(answers) != len(correct_key):
        raise ValueError(f"expected {len(correct_key)} answers, got {len(answers)}")
    correct = 0
    detail = []
    for index, (expected, raw) in enumerate(zip(correct_key, answers)):
        selected = normalize_answer(raw)
        ok = selected != UNANSWERED and selected == expected
        if ok:
            correct += 1
        detail.append({"questionIndex": index, "selectedAnswer": selected, "isCorrect": ok})
    score = percent_half_up(correct, len(correct_key))
    return ScoreResult(
        correct_answers=correct,
        total_questions=len(correct_key),
        score=score,
        passed=is_passing(score, threshold),
        answers=detail,
    )
