from typing import List, Optional, Tuple
from sqlalchemy import func, distinct, or_
from sqlalchemy.orm import Session

from training_portal.models.training import Training, TrainingStatus
from training_portal.models.enrollment import Enrollment, AttendanceRecord
from training_portal.models.feedback import Feedback
from training_portal.models.user import User
from training_portal.repositories.base import BaseRepository


class TrainingRepository(BaseRepository[Training]):
    def __init__(self, db: Session):
        super().__init__(db, Training)

    def list_with_stats(self) -> List[Tuple[Training, Optional[str], int]]:
        """获取所有培训及讲师姓名、报名人数，按开始日期倒序"""
        return self.db.query(
            Training,
            User.full_name,
            func.count(distinct(Enrollment.user_id)),
        ).outerjoin(
            User, Training.trainer_id == User.id
        ).outerjoin(
            Enrollment, Enrollment.training_id == Training.id
        ).group_by(
            Training.id, User.full_name
        ).order_by(
            Training.start_date.desc(), Training.id.desc()
        ).all()

    def list_for_employee(self, user_id: int) -> List[Tuple[Training, Optional[str], Optional[Enrollment]]]:
        """员工可见的培训：进行中、即将开始或本人已报名的"""
        return self.db.query(
            Training,
            User.full_name,
            Enrollment,
        ).outerjoin(
            User, Training.trainer_id == User.id
        ).outerjoin(
            Enrollment, (Enrollment.training_id == Training.id) & (Enrollment.user_id == user_id)
        ).filter(
            or_(
                Training.status.in_([TrainingStatus.ACTIVE.value, TrainingStatus.UPCOMING.value]),
                Enrollment.id.isnot(None),
            )
        ).order_by(
            Training.start_date.desc(), Training.id.desc()
        ).all()

    def get_trainer_name(self, training: Training) -> Optional[str]:
        return training.trainer.full_name if training.trainer else None

    def count_attendance(self, training_id: int) -> int:
        return self.db.query(func.count(AttendanceRecord.id)).filter(
            AttendanceRecord.training_id == training_id
        ).scalar() or 0

    def get_feedback_stats(self, training_id: int) -> Tuple[Optional[float], int]:
        """返回 (平均评分, 反馈条数)"""
        average, count = self.db.query(
            func.avg(Feedback.rating), func.count(Feedback.id)
        ).filter(Feedback.training_id == training_id).one()
        return (float(average) if average is not None else None), count
