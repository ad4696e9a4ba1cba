"""Unit tests for scoring: half-up percentages, unanswered handling, pass mark."""
import pytest

from app.services.scoring import UNANSWERED, is_passing, normalize_answer, percent_half_up, score_answers


def test_percent_half_up_rounds_half_up():
    assert percent_half_up(2, 3) == 67
    assert percent_half_up(1, 8) == 13  # 12.5
    assert percent_half_up(5, 8) == 63  # 62.5
    assert percent_half_up(1, 3) == 33
    assert percent_half_up(0, 4) == 0
    assert percent_half_up(4, 4) == 100


def test_percent_half_up_rejects_zero_total():
    with pytest.raises(ValueError):
        percent_half_up(0, 0)


def test_score_partial_pass():
    result = score_answers([0, 0], [0, 1])
    assert result.correct_answers == 1
    assert result.wrong_answers == 1
    assert result.total_questions == 2
    assert result.score == 50
    assert result.passed is True


def test_score_all_correct():
    result = score_answers([2, 1, 3], [2, 1, 3])
    assert result.score == 100
    assert result.passed


def test_unanswered_counts_as_wrong():
    result = score_answers([1, 2, 3], [UNANSWERED, None, 3])
    assert result.correct_answers == 1
    assert result.score == 33
    assert result.passed is False
    assert [d["selectedAnswer"] for d in result.answers] == [-1, -1, 3]
    assert [d["isCorrect"] for d in result.answers] == [False, False, True]


def test_out_of_range_answer_is_incorrect():
    result = score_answers([0], [7])
    assert result.correct_answers == 0
    assert result.answers[0] == {"questionIndex": 0, "selectedAnswer": 7, "isCorrect": False}


def test_length_mismatch_raises():
    with pytest.raises(ValueError):
        score_answers([0, 1, 2], [0, 1])


def test_empty_key_raises():
    with pytest.raises(ValueError):
        score_answers([], [])


def test_threshold_boundary():
    assert is_passing(40) is True
    assert is_passing(39) is False
    assert is_passing(39, threshold=30) is True
    # 2 of 5 = 40: exactly the pass mark
    assert score_answers([0] * 5, [0, 0, 1, 1, 1]).passed is True
    assert score_answers([0] * 5, [0, 0, 1, 1, 1], threshold=41).passed is False


def test_normalize_answer():
    assert normalize_answer(None) == UNANSWERED
    assert normalize_answer(-5) == UNANSWERED
    assert normalize_answer(True) == UNANSWERED
    assert normalize_answer(2) == 2
