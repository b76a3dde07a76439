import pytest

from training_portal.engine.grading import (
    QuestionType, compute_score, grade_response, grade_true_false, grade_multiple_choice,
    is_passing, parse_true_false,
)


def test_multiple_choice_matches_correct_option():
    assert grade_multiple_choice("12", [12]) is True
    assert grade_multiple_choice(12, [12, 13]) is True
    assert grade_multiple_choice("11", [12]) is False
    assert grade_multiple_choice("not-a-number", [12]) is False


def test_true_false_compares_with_stored_answer():
    assert grade_true_false("true", True) is True
    assert grade_true_false("False", False) is True
    assert grade_true_false("false", True) is False
    assert grade_true_false(True, True) is True
    assert grade_true_false("maybe", True) is False


def test_parse_true_false():
    assert parse_true_false(" TRUE ") is True
    assert parse_true_false("false") is False
    assert parse_true_false("yes") is None


def test_short_answer_is_not_auto_graded():
    assert grade_response(QuestionType.SHORT_ANSWER, "anything") is None
    assert grade_response("short-answer", "") is None


def test_grade_response_dispatches_by_type():
    assert grade_response("multiple-choice", "5", correct_option_ids=[5]) is True
    assert grade_response("true-false", "false", correct_answer=False) is True


def test_unknown_question_type():
    with pytest.raises(ValueError):
        grade_response("essay", "text")


@pytest.mark.parametrize("correct,total,expected", [
    (3, 4, 75),
    (0, 0, 0),
    (0, 5, 0),
    (5, 5, 100),
    (1, 3, 33),
    (2, 3, 67),
    (1, 8, 13),  # 12.5 四舍五入
])
def test_compute_score(correct, total, expected):
    assert compute_score(correct, total) == expected


def test_is_passing():
    assert is_passing(70, 70) is True
    assert is_passing(69, 70) is False
    assert is_passing(None, 70) is False
