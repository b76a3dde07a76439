from typing import List, Optional, Tuple
from sqlalchemy.orm import Session

from training_portal.models.enrollment import Enrollment
from training_portal.models.training import Training
from training_portal.models.user import User
from training_portal.repositories.base import BaseRepository


class EnrollmentRepository(BaseRepository[Enrollment]):
    def __init__(self, db: Session):
        super().__init__(db, Enrollment)

    def get_enrollment(self, training_id: int, user_id: int) -> Optional[Enrollment]:
        """获取用户在某培训下的报名记录（任意状态）"""
        return self.db.query(Enrollment).filter(
            Enrollment.training_id == training_id,
            Enrollment.user_id == user_id
        ).first()

    def get_enrollment_in_statuses(self, training_id: int, user_id: int,
                                   statuses) -> Optional[Enrollment]:
        return self.db.query(Enrollment).filter(
            Enrollment.training_id == training_id,
            Enrollment.user_id == user_id,
            Enrollment.status.in_(list(statuses))
        ).first()

    def get_user_enrollments(self, user_id: int) -> List[Tuple[Enrollment, Training, Optional[str]]]:
        """获取用户的报名记录及对应培训、讲师姓名，最近报名在前"""
        return self.db.query(Enrollment, Training, User.full_name).join(
            Training, Enrollment.training_id == Training.id
        ).outerjoin(
            User, Training.trainer_id == User.id
        ).filter(
            Enrollment.user_id == user_id
        ).order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc()).all()
