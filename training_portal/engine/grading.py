"""
测验评分规则

- multiple-choice: 提交的选项ID等于被标记为正确的选项ID即判对
- true-false: 与题目存储的正确答案比较
- short-answer: 不自动评分，返回None等待人工批阅
"""

from enum import Enum
from typing import Iterable, Optional


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"


TRUE_FALSE_OPTIONS = [
    {"id": "true", "option_text": "True"},
    {"id": "false", "option_text": "False"},
]


def parse_option_id(answer) -> Optional[int]:
    try:
        return int(str(answer).strip())
    except (TypeError, ValueError):
        return None


def parse_true_false(answer) -> Optional[bool]:
    if isinstance(answer, bool):
        return answer
    value = str(answer).strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def grade_multiple_choice(answer, correct_option_ids: Iterable[int]) -> bool:
    option_id = parse_option_id(answer)
    return option_id is not None and option_id in set(correct_option_ids)


def grade_true_false(answer, correct_answer: Optional[bool]) -> bool:
    value = parse_true_false(answer)
    return value is not None and correct_answer is not None and value == correct_answer


def grade_response(question_type, answer, correct_option_ids: Iterable[int] = (),
                   correct_answer: Optional[bool] = None) -> Optional[bool]:
    """按题型评分，返回 True/False，简答题返回 None"""
    question_type = QuestionType(question_type)
    if question_type == QuestionType.MULTIPLE_CHOICE:
        return grade_multiple_choice(answer, correct_option_ids)
    if question_type == QuestionType.TRUE_FALSE:
        return grade_true_false(answer, correct_answer)
    return None


def compute_score(correct_count: int, total_count: int) -> int:
    """
    计算百分制得分，四舍五入（.5 向上）
    没有任何作答时得分为0
    """
    if total_count <= 0:
        return 0
    return (200 * correct_count + total_count) // (2 * total_count)


def is_passing(score: Optional[int], passing_score: int) -> bool:
    return score is not None and score >= passing_score
