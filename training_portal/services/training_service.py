import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from training_portal.models.training import Training, TrainingStatus
from training_portal.repositories.training_repository import TrainingRepository
from training_portal.repositories.enrollment_repository import EnrollmentRepository
from training_portal.repositories.user_repository import UserRepository
from training_portal.utils.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = (
    "title", "description", "trainer_id", "start_date", "end_date",
    "capacity", "location", "category", "level", "status",
)


def _training_dict(training: Training, trainer_name: Optional[str] = None) -> Dict[str, Any]:
    return {
        "id": training.id,
        "title": training.title,
        "description": training.description or "",
        "trainer_id": training.trainer_id,
        "trainer_name": trainer_name,
        "start_date": training.start_date,
        "end_date": training.end_date,
        "capacity": training.capacity,
        "location": training.location or "",
        "category": training.category,
        "level": training.level,
        "status": training.status,
        "created_at": training.created_at,
    }


class TrainingService:
    """培训管理服务"""

    def __init__(self, db: Session):
        self.db = db
        self.training_repo = TrainingRepository(db)
        self.enrollment_repo = EnrollmentRepository(db)
        self.user_repo = UserRepository(db)

    def get_training_or_404(self, training_id: int) -> Training:
        training = self.training_repo.get_by_id(training_id)
        if not training:
            raise NotFoundError("Training not found")
        return training

    def list_trainings(self) -> List[Dict[str, Any]]:
        """获取所有培训，附带讲师姓名和报名人数"""
        rows = self.training_repo.list_with_stats()
        result = []
        for training, trainer_name, enrolled_count in rows:
            item = _training_dict(training, trainer_name)
            item["enrolled_count"] = int(enrolled_count or 0)
            result.append(item)
        logger.info(f"查询到 {len(result)} 个培训")
        return result

    def get_training(self, training_id: int, user_id: int) -> Dict[str, Any]:
        """
        获取培训详情
        包括当前用户的报名情况、考勤记录数和反馈统计
        """
        training = self.get_training_or_404(training_id)
        enrollment = self.enrollment_repo.get_enrollment(training_id, user_id)
        average_rating, feedback_count = self.training_repo.get_feedback_stats(training_id)

        item = _training_dict(training, self.training_repo.get_trainer_name(training))
        item.update({
            "is_enrolled": enrollment is not None,
            "enrollment_status": enrollment.status if enrollment else None,
            "attendance_count": self.training_repo.count_attendance(training_id),
            "feedback_stats": {
                "average_rating": average_rating,
                "count": feedback_count,
            },
        })
        return item

    def list_employee_trainings(self, user_id: int) -> List[Dict[str, Any]]:
        """员工视角的培训列表"""
        result = []
        for training, trainer_name, enrollment in self.training_repo.list_for_employee(user_id):
            item = _training_dict(training, trainer_name)
            item.update({
                "is_enrolled": enrollment is not None,
                "enrollment_status": enrollment.status if enrollment else None,
                "enrolled_at": enrollment.enrolled_at if enrollment else None,
            })
            result.append(item)
        return result

    def create_training(self, data: Dict[str, Any]) -> Training:
        """创建培训，默认状态为 Active"""
        self._validate_trainer(data.get("trainer_id"))
        self._validate_dates(data.get("start_date"), data.get("end_date"))
        status = self._validate_status(data.get("status") or TrainingStatus.ACTIVE.value)

        training = self.training_repo.create(
            title=data["title"].strip(),
            description=data.get("description") or "",
            trainer_id=data["trainer_id"],
            start_date=data["start_date"],
            end_date=data["end_date"],
            capacity=data.get("capacity") or 20,
            location=data.get("location") or "",
            category=data.get("category") or "Technical",
            level=data.get("level") or "Beginner",
            status=status,
        )
        logger.info(f"培训创建成功: {training.id} - {training.title}")
        return training

    def update_training(self, training_id: int, data: Dict[str, Any]) -> Training:
        """部分更新培训"""
        training = self.get_training_or_404(training_id)
        update_data = {key: value for key, value in data.items() if key in _UPDATABLE_FIELDS}

        if "trainer_id" in update_data:
            self._validate_trainer(update_data["trainer_id"])
        if "status" in update_data:
            update_data["status"] = self._validate_status(update_data["status"])
        self._validate_dates(
            update_data.get("start_date", training.start_date),
            update_data.get("end_date", training.end_date),
        )

        self.training_repo.update(training, **update_data)
        self.db.commit()
        self.db.refresh(training)
        logger.info(f"培训更新成功: {training_id}, 字段: {sorted(update_data)}")
        return training

    def delete_training(self, training_id: int) -> None:
        """删除培训，报名、考勤、反馈和测验随之级联删除"""
        training = self.get_training_or_404(training_id)
        self.training_repo.delete(training)
        self.db.commit()
        logger.info(f"培训已删除: {training_id}")

    def _validate_trainer(self, trainer_id: Optional[int]):
        if trainer_id is None or not self.user_repo.get_by_id(trainer_id):
            raise ValidationError("Trainer not found", field="trainer_id")

    @staticmethod
    def _validate_dates(start_date: Optional[date], end_date: Optional[date]):
        if start_date and end_date and start_date > end_date:
            raise ValidationError("End date must be after start date")

    @staticmethod
    def _validate_status(status: str) -> str:
        try:
            return TrainingStatus(status).value
        except ValueError:
            raise ValidationError("Invalid training status",
                                  allowed_statuses=[s.value for s in TrainingStatus])
