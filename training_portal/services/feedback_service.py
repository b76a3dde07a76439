import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from training_portal.models.feedback import Feedback
from training_portal.repositories.enrollment_repository import EnrollmentRepository
from training_portal.repositories.feedback_repository import FeedbackRepository
from training_portal.repositories.training_repository import TrainingRepository
from training_portal.utils.exceptions import AuthorizationError, NotFoundError, ValidationError
from training_portal.utils.database import is_unique_violation

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def _feedback_dict(feedback: Feedback, user_name: Optional[str] = None) -> Dict[str, Any]:
    return {
        "id": feedback.id,
        "training_id": feedback.training_id,
        "user_id": feedback.user_id,
        "user_name": user_name,
        "rating": feedback.rating,
        "comment": feedback.comment or "",
        "created_at": feedback.created_at,
        "updated_at": feedback.updated_at,
    }


class FeedbackService:
    """培训反馈服务：每个学员对每个培训最多一条反馈"""

    def __init__(self, db: Session):
        self.db = db
        self.training_repo = TrainingRepository(db)
        self.enrollment_repo = EnrollmentRepository(db)
        self.feedback_repo = FeedbackRepository(db)

    def submit_or_update_feedback(self, training_id: int, user_id: int, rating: int,
                                  comment: Optional[str] = None) -> Tuple[Feedback, bool]:
        """
        提交或更新反馈

        Returns:
            (feedback, created): 首次提交时 created 为 True
        """
        if rating is None or not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError("Rating must be between 1 and 5")

        if not self.training_repo.get_by_id(training_id):
            raise NotFoundError("Training not found")

        if not self.enrollment_repo.get_enrollment(training_id, user_id):
            logger.warning(f"用户 {user_id} 未报名培训 {training_id}，不能提交反馈")
            raise AuthorizationError("You must be enrolled in this training to submit feedback")

        comment = comment or ""
        feedback = self.feedback_repo.get_user_feedback(training_id, user_id)
        if feedback:
            return self._update_feedback(feedback, rating, comment), False

        try:
            feedback = self.feedback_repo.create(
                training_id=training_id, user_id=user_id, rating=rating, comment=comment
            )
        except IntegrityError as e:
            self.db.rollback()
            if not is_unique_violation(e):
                raise
            # 并发提交时另一请求已写入，改为更新
            existing = self.feedback_repo.get_user_feedback(training_id, user_id)
            return self._update_feedback(existing, rating, comment), False

        logger.info(f"反馈已提交: {feedback.id} (培训 {training_id}, 评分 {rating})")
        return feedback, True

    def _update_feedback(self, feedback: Feedback, rating: int, comment: str) -> Feedback:
        self.feedback_repo.update(feedback, rating=rating, comment=comment)
        self.db.commit()
        self.db.refresh(feedback)
        logger.info(f"反馈已更新: {feedback.id} (培训 {feedback.training_id}, 评分 {rating})")
        return feedback

    def get_feedback(self, training_id: int, user_id: int) -> Dict[str, Any]:
        """获取培训的反馈统计、反馈列表以及当前用户自己的反馈"""
        if not self.training_repo.get_by_id(training_id):
            raise NotFoundError("Training not found")

        own = self.feedback_repo.get_user_feedback(training_id, user_id)
        return {
            "stats": self.feedback_repo.get_statistics(training_id),
            "feedback": [
                _feedback_dict(feedback, user_name)
                for feedback, user_name in self.feedback_repo.list_with_authors(training_id)
            ],
            "user_feedback": _feedback_dict(own) if own else None,
        }

    def delete_feedback(self, feedback_id: int, user_id: int) -> None:
        """只能删除自己的反馈，别人的反馈与不存在同样返回404"""
        feedback = self.feedback_repo.get_owned(feedback_id, user_id)
        if not feedback:
            raise NotFoundError("Feedback not found or unauthorized")
        self.feedback_repo.delete(feedback)
        self.db.commit()
        logger.info(f"反馈已删除: {feedback_id} (用户 {user_id})")

    @staticmethod
    def to_dict(feedback: Feedback, user_name: Optional[str] = None) -> Dict[str, Any]:
        return _feedback_dict(feedback, user_name)
