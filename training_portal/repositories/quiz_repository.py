from typing import List, Tuple
from sqlalchemy import func, distinct
from sqlalchemy.orm import Session

from training_portal.models.quiz import Quiz, QuizQuestion, QuizOption, QuizAttempt
from training_portal.repositories.base import BaseRepository


class QuizRepository(BaseRepository[Quiz]):
    def __init__(self, db: Session):
        super().__init__(db, Quiz)

    def list_with_counts(self, training_id: int) -> List[Tuple[Quiz, int, int]]:
        """获取培训下的测验及题目数、作答次数"""
        return self.db.query(
            Quiz,
            func.count(distinct(QuizQuestion.id)),
            func.count(distinct(QuizAttempt.id)),
        ).outerjoin(
            QuizQuestion, QuizQuestion.quiz_id == Quiz.id
        ).outerjoin(
            QuizAttempt, QuizAttempt.quiz_id == Quiz.id
        ).filter(
            Quiz.training_id == training_id
        ).group_by(Quiz.id).order_by(Quiz.id.asc()).all()


class QuestionRepository(BaseRepository[QuizQuestion]):
    def __init__(self, db: Session):
        super().__init__(db, QuizQuestion)

    def get_correct_option_ids(self, question_id: int) -> List[int]:
        rows = self.db.query(QuizOption.id).filter(
            QuizOption.question_id == question_id,
            QuizOption.is_correct.is_(True)
        ).all()
        return [row[0] for row in rows]

    def add_option(self, question_id: int, option_text: str, is_correct: bool) -> QuizOption:
        """添加选项（不提交）"""
        option = QuizOption(question_id=question_id, option_text=option_text, is_correct=is_correct)
        self.db.add(option)
        self.db.flush()
        return option
