#!/usr/bin/env python3
"""
测验服务模块
负责测验编写（测验、题目、选项）、作答生命周期（开始/作答/交卷）、评分和成绩查询
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from training_portal.config.settings import settings
from training_portal.engine.grading import (
    QuestionType, TRUE_FALSE_OPTIONS, compute_score, grade_response, is_passing,
)
from training_portal.engine.state_machine import AttemptState, AttemptStateMachine
from training_portal.models.quiz import Quiz, QuizQuestion, QuizAttempt, QuizResponse
from training_portal.repositories.attempt_repository import AttemptRepository, ResponseRepository
from training_portal.repositories.quiz_repository import QuizRepository, QuestionRepository
from training_portal.repositories.training_repository import TrainingRepository
from training_portal.utils.exceptions import (
    ConflictError, InvalidStateError, NotFoundError, ValidationError,
)
from training_portal.utils.database import is_unique_violation
from training_portal.utils.helpers import ensure_utc, parse_int, utc_now

logger = logging.getLogger(__name__)


def _quiz_dict(quiz: Quiz) -> Dict[str, Any]:
    return {
        "id": quiz.id,
        "training_id": quiz.training_id,
        "title": quiz.title,
        "description": quiz.description or "",
        "time_limit": quiz.time_limit,
        "passing_score": quiz.passing_score,
        "created_at": quiz.created_at,
    }


def _question_dict(question: QuizQuestion, include_answers: bool) -> Dict[str, Any]:
    item = {
        "id": question.id,
        "quiz_id": question.quiz_id,
        "question": question.question,
        "type": question.question_type,
        "points": question.points,
        "options": [],
    }
    if question.question_type == QuestionType.MULTIPLE_CHOICE.value:
        for option in question.options:
            option_item = {"id": option.id, "option_text": option.option_text}
            if include_answers:
                option_item["is_correct"] = bool(option.is_correct)
            item["options"].append(option_item)
    elif question.question_type == QuestionType.TRUE_FALSE.value:
        item["options"] = [dict(option) for option in TRUE_FALSE_OPTIONS]
        if include_answers:
            item["correct_answer"] = question.correct_answer
    return item


def _attempt_dict(attempt: QuizAttempt) -> Dict[str, Any]:
    return {
        "id": attempt.id,
        "quiz_id": attempt.quiz_id,
        "user_id": attempt.user_id,
        "state": attempt.state,
        "start_time": attempt.start_time,
        "end_time": attempt.end_time,
        "score": attempt.score,
    }


class QuizService:
    """测验服务"""

    def __init__(self, db: Session):
        self.db = db
        self.training_repo = TrainingRepository(db)
        self.quiz_repo = QuizRepository(db)
        self.question_repo = QuestionRepository(db)
        self.attempt_repo = AttemptRepository(db)
        self.response_repo = ResponseRepository(db)

    # ------------------------------------------------------------------
    # 测验编写
    # ------------------------------------------------------------------

    def create_quiz(self, training_id: Optional[int], title: Optional[str], description: Optional[str] = None,
                    time_limit: Any = None, passing_score: Any = None) -> Dict[str, Any]:
        """
        创建测验
        时限缺省或无法解析时为30分钟，及格分缺省或无法解析时为70
        """
        if not training_id or not title or not str(title).strip():
            raise ValidationError("Training ID and title are required")

        resolved_time_limit = parse_int(time_limit, settings.DEFAULT_QUIZ_TIME_LIMIT)
        if resolved_time_limit <= 0:
            resolved_time_limit = settings.DEFAULT_QUIZ_TIME_LIMIT
        resolved_passing_score = parse_int(passing_score, settings.DEFAULT_PASSING_SCORE)
        if not 0 <= resolved_passing_score <= 100:
            raise ValidationError("Passing score must be between 0 and 100")

        if not self.training_repo.get_by_id(training_id):
            raise NotFoundError("Training not found")

        quiz = self.quiz_repo.create(
            training_id=training_id,
            title=str(title).strip(),
            description=description or "",
            time_limit=resolved_time_limit,
            passing_score=resolved_passing_score,
        )
        logger.info(f"测验创建成功: {quiz.id} (培训 {training_id}, 时限 {quiz.time_limit} 分钟, 及格分 {quiz.passing_score})")
        return _quiz_dict(quiz)

    def add_question(self, quiz_id: int, question: Optional[str], question_type: Optional[str],
                     points: Any = None, options: Optional[Sequence[Dict[str, Any]]] = None,
                     correct_answer: Optional[bool] = None) -> Dict[str, Any]:
        """
        添加题目

        - multiple-choice: 至少两个非空选项，且至少一个正确选项
        - true-false: 必须提供 correct_answer
        - short-answer: 忽略选项，不自动评分
        """
        if not self.quiz_repo.get_by_id(quiz_id):
            raise NotFoundError("Quiz not found")

        if not question or not str(question).strip():
            raise ValidationError("Question text is required")

        try:
            resolved_type = QuestionType(question_type)
        except ValueError:
            raise ValidationError("Invalid question type", allowed_types=[t.value for t in QuestionType])

        resolved_points = parse_int(points, 1)
        if resolved_points < 1:
            raise ValidationError("Points must be at least 1")

        cleaned_options: List[Tuple[str, bool]] = []
        if resolved_type == QuestionType.MULTIPLE_CHOICE:
            cleaned_options = self._validate_options(options or [])
        elif resolved_type == QuestionType.TRUE_FALSE:
            if correct_answer is None:
                raise ValidationError("True/false questions require a correct answer")

        try:
            new_question = self.question_repo.add(
                quiz_id=quiz_id,
                question=str(question).strip(),
                question_type=resolved_type.value,
                points=resolved_points,
                correct_answer=bool(correct_answer) if resolved_type == QuestionType.TRUE_FALSE else None,
            )
            for option_text, is_correct in cleaned_options:
                self.question_repo.add_option(new_question.id, option_text, is_correct)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(new_question)
        logger.info(f"测验 {quiz_id} 添加题目 {new_question.id} ({resolved_type.value}, {len(cleaned_options)} 个选项)")
        return _question_dict(new_question, include_answers=True)

    @staticmethod
    def _validate_options(options: Sequence[Dict[str, Any]]) -> List[Tuple[str, bool]]:
        cleaned = []
        for option in options:
            text = str(option.get("option_text") or "").strip()
            if text:
                cleaned.append((text, bool(option.get("is_correct"))))
        if len(cleaned) < 2:
            raise ValidationError("Multiple-choice questions need at least two options")
        if not any(is_correct for _, is_correct in cleaned):
            raise ValidationError("Multiple-choice questions need at least one correct option")
        return cleaned

    def list_quizzes(self, training_id: int, include_answers: bool = False) -> List[Dict[str, Any]]:
        """获取培训下的全部测验，包含题目和选项"""
        if not self.training_repo.get_by_id(training_id):
            raise NotFoundError("Training not found")

        result = []
        for quiz, question_count, attempt_count in self.quiz_repo.list_with_counts(training_id):
            item = _quiz_dict(quiz)
            item["question_count"] = int(question_count or 0)
            item["attempt_count"] = int(attempt_count or 0)
            item["questions"] = [_question_dict(q, include_answers) for q in quiz.questions]
            result.append(item)
        logger.info(f"培训 {training_id} 共有 {len(result)} 个测验")
        return result

    def get_quiz(self, quiz_id: int) -> Dict[str, Any]:
        """获取单个测验（答题视图，不包含正确答案）"""
        quiz = self.quiz_repo.get_by_id(quiz_id)
        if not quiz:
            raise NotFoundError("Quiz not found")
        item = _quiz_dict(quiz)
        item["questions"] = [_question_dict(q, include_answers=False) for q in quiz.questions]
        return item

    # ------------------------------------------------------------------
    # 作答生命周期
    # ------------------------------------------------------------------

    def _state_machine(self, attempt: QuizAttempt, quiz: Optional[Quiz] = None) -> AttemptStateMachine:
        quiz = quiz or attempt.quiz
        return AttemptStateMachine(
            attempt.state,
            started_at=ensure_utc(attempt.start_time),
            time_limit_minutes=quiz.time_limit if settings.ENFORCE_QUIZ_TIME_LIMIT else None,
            grace_seconds=settings.QUIZ_TIME_LIMIT_GRACE_SECONDS,
        )

    def _get_owned_attempt(self, attempt_id: int, user_id: int) -> QuizAttempt:
        attempt = self.attempt_repo.get_by_id(attempt_id)
        if not attempt or attempt.user_id != user_id:
            raise NotFoundError("Attempt not found")
        return attempt

    def start_attempt(self, quiz_id: int, user_id: int) -> Tuple[QuizAttempt, bool]:
        """
        开始作答

        Returns:
            (attempt, created): 已有进行中的作答时原样返回，created 为 False
        """
        quiz = self.quiz_repo.get_by_id(quiz_id)
        if not quiz:
            raise NotFoundError("Quiz not found")

        existing = self.attempt_repo.get_in_progress(quiz_id, user_id)
        if existing:
            machine = self._state_machine(existing, quiz)
            if not machine.is_expired(utc_now()):
                logger.info(f"用户 {user_id} 继续测验 {quiz_id} 的作答 {existing.id}")
                return existing, False
            # 超时未交卷的作答标记为放弃
            self.attempt_repo.update(
                existing,
                state=machine.transition(AttemptState.ABANDONED).value,
                end_time=utc_now(),
            )
            self.db.commit()
            logger.info(f"作答 {existing.id} 已超时，标记为 abandoned")

        try:
            attempt = self.attempt_repo.create(
                quiz_id=quiz_id,
                user_id=user_id,
                state=AttemptState.IN_PROGRESS.value,
                start_time=utc_now(),
            )
        except IntegrityError as e:
            # 并发开始时由部分唯一索引兜底，返回对方创建的作答
            self.db.rollback()
            if not is_unique_violation(e):
                raise
            existing = self.attempt_repo.get_in_progress(quiz_id, user_id)
            if existing:
                return existing, False
            raise ConflictError("Quiz attempt already in progress")

        logger.info(f"用户 {user_id} 开始测验 {quiz_id}，作答ID: {attempt.id}")
        return attempt, True

    def submit_response(self, attempt_id: int, user_id: int, question_id: int, answer: Any) -> QuizResponse:
        """
        提交一道题的答案并评分
        同一作答的同一题重复提交时覆盖原答案
        """
        attempt = self._get_owned_attempt(attempt_id, user_id)
        machine = self._state_machine(attempt)
        if not machine.is_open():
            raise ConflictError(f"Quiz attempt is already {attempt.state}")
        if machine.is_expired(utc_now()):
            logger.warning(f"作答 {attempt_id} 已超过时限，拒绝提交答案")
            raise InvalidStateError("Quiz time limit exceeded")

        question = self.question_repo.get_by_id(question_id)
        if not question:
            raise NotFoundError("Question not found")
        if question.quiz_id != attempt.quiz_id:
            raise ValidationError("Question does not belong to this quiz")

        answer_text = self._normalize_answer(answer)
        correct_option_ids = ()
        if question.question_type == QuestionType.MULTIPLE_CHOICE.value:
            correct_option_ids = self.question_repo.get_correct_option_ids(question.id)
        is_correct = grade_response(
            question.question_type, answer_text,
            correct_option_ids=correct_option_ids,
            correct_answer=question.correct_answer,
        )

        response = self.response_repo.get_response(attempt_id, question_id)
        if response:
            self.response_repo.update(response, answer=answer_text, is_correct=is_correct)
            self.db.commit()
        else:
            try:
                response = self.response_repo.add(
                    attempt_id=attempt_id,
                    question_id=question_id,
                    answer=answer_text,
                    is_correct=is_correct,
                )
                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                if not is_unique_violation(e):
                    raise
                # 同一题并发提交，覆盖先写入的答案
                response = self.response_repo.get_response(attempt_id, question_id)
                self.response_repo.update(response, answer=answer_text, is_correct=is_correct)
                self.db.commit()

        self.db.refresh(response)
        logger.debug(f"作答 {attempt_id} 第 {question_id} 题已提交，判定: {is_correct}")
        return response

    @staticmethod
    def _normalize_answer(answer: Any) -> str:
        if isinstance(answer, bool):
            return "true" if answer else "false"
        if answer is None:
            return ""
        return str(answer).strip()

    def complete_attempt(self, attempt_id: int, user_id: int) -> Dict[str, Any]:
        """
        交卷并计算得分
        得分 = 答对题数 / 已答题数 × 100（四舍五入），没有作答时为0
        已交卷的作答重复交卷时返回原成绩
        """
        attempt = self._get_owned_attempt(attempt_id, user_id)
        quiz = attempt.quiz
        correct_count, total_count = self.response_repo.count_correct_and_total(attempt_id)

        if attempt.state == AttemptState.COMPLETED.value:
            logger.info(f"作答 {attempt_id} 已交卷，返回原成绩")
            return self._completion_result(attempt, quiz, correct_count, total_count)

        machine = self._state_machine(attempt, quiz)
        if not machine.can_transition(AttemptState.COMPLETED):
            raise ConflictError(f"Quiz attempt is already {attempt.state}")

        score = compute_score(correct_count, total_count)
        self.attempt_repo.update(
            attempt,
            state=machine.transition(AttemptState.COMPLETED).value,
            end_time=utc_now(),
            score=score,
        )
        self.db.commit()
        self.db.refresh(attempt)

        logger.info(f"作答 {attempt_id} 交卷完成: {correct_count}/{total_count}，得分 {score}")
        return self._completion_result(attempt, quiz, correct_count, total_count)

    @staticmethod
    def _completion_result(attempt: QuizAttempt, quiz: Quiz, correct_count: int, total_count: int) -> Dict[str, Any]:
        return {
            "attempt_id": attempt.id,
            "quiz_id": quiz.id,
            "score": attempt.score,
            "passing_score": quiz.passing_score,
            "passed": is_passing(attempt.score, quiz.passing_score),
            "correct_answers": correct_count,
            "total_answered": total_count,
            "state": attempt.state,
            "end_time": attempt.end_time,
            "message": "Quiz completed successfully",
        }

    def get_results(self, quiz_id: int, user_id: int) -> List[Dict[str, Any]]:
        """获取用户在该测验下的全部作答，最近的在前"""
        if not self.quiz_repo.get_by_id(quiz_id):
            raise NotFoundError("Quiz not found")

        results = []
        for attempt, quiz, total_answered, correct_answers in self.attempt_repo.get_results(quiz_id, user_id):
            item = _attempt_dict(attempt)
            item.update({
                "quiz_title": quiz.title,
                "passing_score": quiz.passing_score,
                "total_answered": int(total_answered or 0),
                "correct_answers": int(correct_answers or 0),
                "passed": is_passing(attempt.score, quiz.passing_score),
            })
            results.append(item)
        return results
