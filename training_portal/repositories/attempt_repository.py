from typing import List, Optional, Tuple
from sqlalchemy import func, case
from sqlalchemy.orm import Session

from training_portal.engine.state_machine import AttemptState
from training_portal.models.quiz import Quiz, QuizAttempt, QuizResponse
from training_portal.repositories.base import BaseRepository


class AttemptRepository(BaseRepository[QuizAttempt]):
    def __init__(self, db: Session):
        super().__init__(db, QuizAttempt)

    def get_in_progress(self, quiz_id: int, user_id: int) -> Optional[QuizAttempt]:
        """获取用户在该测验下进行中的作答"""
        return self.db.query(QuizAttempt).filter(
            QuizAttempt.quiz_id == quiz_id,
            QuizAttempt.user_id == user_id,
            QuizAttempt.state == AttemptState.IN_PROGRESS.value
        ).first()

    def get_results(self, quiz_id: int, user_id: int) -> List[Tuple[QuizAttempt, Quiz, int, int]]:
        """
        获取用户在该测验下的全部作答及答题统计
        返回 (attempt, quiz, 已答题数, 答对题数)，最近开始的在前
        """
        correct = func.coalesce(func.sum(case((QuizResponse.is_correct.is_(True), 1), else_=0)), 0)
        return self.db.query(
            QuizAttempt,
            Quiz,
            func.count(QuizResponse.id),
            correct,
        ).join(
            Quiz, QuizAttempt.quiz_id == Quiz.id
        ).outerjoin(
            QuizResponse, QuizResponse.attempt_id == QuizAttempt.id
        ).filter(
            QuizAttempt.quiz_id == quiz_id,
            QuizAttempt.user_id == user_id
        ).group_by(
            QuizAttempt.id, Quiz.id
        ).order_by(
            QuizAttempt.start_time.desc(), QuizAttempt.id.desc()
        ).all()


class ResponseRepository(BaseRepository[QuizResponse]):
    def __init__(self, db: Session):
        super().__init__(db, QuizResponse)

    def get_response(self, attempt_id: int, question_id: int) -> Optional[QuizResponse]:
        return self.db.query(QuizResponse).filter(
            QuizResponse.attempt_id == attempt_id,
            QuizResponse.question_id == question_id
        ).first()

    def count_correct_and_total(self, attempt_id: int) -> Tuple[int, int]:
        """统计作答的答对数和总答题数（待批阅的简答题计入总数）"""
        correct, total = self.db.query(
            func.coalesce(func.sum(case((QuizResponse.is_correct.is_(True), 1), else_=0)), 0),
            func.count(QuizResponse.id),
        ).filter(QuizResponse.attempt_id == attempt_id).one()
        return int(correct or 0), int(total or 0)
