from typing import Dict, List, Optional, Tuple
from sqlalchemy import func, case
from sqlalchemy.orm import Session

from training_portal.models.feedback import Feedback
from training_portal.models.user import User
from training_portal.repositories.base import BaseRepository


class FeedbackRepository(BaseRepository[Feedback]):
    def __init__(self, db: Session):
        super().__init__(db, Feedback)

    def get_user_feedback(self, training_id: int, user_id: int) -> Optional[Feedback]:
        return self.db.query(Feedback).filter(
            Feedback.training_id == training_id,
            Feedback.user_id == user_id
        ).first()

    def get_owned(self, feedback_id: int, user_id: int) -> Optional[Feedback]:
        """获取属于该用户的反馈"""
        return self.db.query(Feedback).filter(
            Feedback.id == feedback_id,
            Feedback.user_id == user_id
        ).first()

    def list_with_authors(self, training_id: int) -> List[Tuple[Feedback, str]]:
        """获取培训的全部反馈及作者姓名，最新在前"""
        return self.db.query(Feedback, User.full_name).join(
            User, Feedback.user_id == User.id
        ).filter(
            Feedback.training_id == training_id
        ).order_by(Feedback.created_at.desc(), Feedback.id.desc()).all()

    def get_statistics(self, training_id: int) -> Dict[str, object]:
        """评分统计：总数、平均分、各星级数量"""
        star_columns = [
            func.count(case((Feedback.rating == star, Feedback.id))) for star in (5, 4, 3, 2, 1)
        ]
        row = self.db.query(
            func.count(Feedback.id),
            func.coalesce(func.avg(Feedback.rating), 0),
            *star_columns
        ).filter(Feedback.training_id == training_id).one()

        return {
            "total_feedback": row[0],
            "average_rating": round(float(row[1]), 2),
            "five_stars": row[2],
            "four_stars": row[3],
            "three_stars": row[4],
            "two_stars": row[5],
            "one_star": row[6],
        }
