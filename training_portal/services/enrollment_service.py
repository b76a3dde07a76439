#!/usr/bin/env python3
"""
报名服务模块
校验报名资格、创建报名记录并生成报名当天的签到记录
"""

import logging
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from training_portal.models.enrollment import Enrollment, EnrollmentStatus, AttendanceStatus
from training_portal.repositories.attendance_repository import AttendanceRepository
from training_portal.repositories.enrollment_repository import EnrollmentRepository
from training_portal.repositories.training_repository import TrainingRepository
from training_portal.utils.exceptions import (
    ConflictError, InvalidStateError, NotFoundError, ValidationError,
)
from training_portal.utils.database import is_unique_violation
from training_portal.utils.helpers import local_today

logger = logging.getLogger(__name__)


class EnrollmentService:
    def __init__(self, db: Session):
        self.db = db
        self.training_repo = TrainingRepository(db)
        self.enrollment_repo = EnrollmentRepository(db)
        self.attendance_repo = AttendanceRepository(db)

    def enroll(self, training_id: int, user_id: int) -> Enrollment:
        """
        报名培训
        - 培训必须存在且状态为 Active
        - 同一用户不能重复报名
        - 报名记录与当天的签到记录在同一个事务中写入
        """
        training = self.training_repo.get_by_id(training_id)
        if not training:
            raise NotFoundError("Training not found")

        if not training.is_active:
            logger.warning(f"培训 {training_id} 状态为 {training.status}，拒绝用户 {user_id} 报名")
            raise InvalidStateError("Training is not currently accepting enrollments")

        if self.enrollment_repo.get_enrollment(training_id, user_id):
            raise ConflictError("Already enrolled in this training")

        try:
            enrollment = self.enrollment_repo.add(
                training_id=training_id,
                user_id=user_id,
                status=EnrollmentStatus.PENDING.value,
            )
            # 报名当天默认记为出勤
            self.attendance_repo.add(
                training_id=training_id,
                user_id=user_id,
                date=local_today(),
                status=AttendanceStatus.PRESENT.value,
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if not is_unique_violation(e):
                logger.error(f"用户 {user_id} 报名培训 {training_id} 违反完整性约束: {e.orig}")
                raise
            # 并发报名时由唯一约束兜底
            logger.warning(f"用户 {user_id} 重复报名培训 {training_id}（唯一约束）")
            raise ConflictError("Already enrolled in this training")
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(enrollment)
        logger.info(f"用户 {user_id} 报名培训 {training_id} 成功，报名ID: {enrollment.id}")
        return enrollment

    def update_enrollment_status(self, training_id: int, user_id: int, status: str) -> Enrollment:
        """审批报名：Pending 只能变为 Approved 或 Rejected"""
        try:
            target = EnrollmentStatus(status)
        except ValueError:
            raise ValidationError("Invalid enrollment status",
                                  allowed_statuses=[EnrollmentStatus.APPROVED.value,
                                                    EnrollmentStatus.REJECTED.value])
        if target == EnrollmentStatus.PENDING:
            raise ValidationError("Enrollment can only be approved or rejected")

        enrollment = self.enrollment_repo.get_enrollment(training_id, user_id)
        if not enrollment:
            raise NotFoundError("Enrollment not found")

        if enrollment.status != EnrollmentStatus.PENDING.value:
            raise InvalidStateError(f"Enrollment is already {enrollment.status}")

        self.enrollment_repo.update(enrollment, status=target.value)
        self.db.commit()
        self.db.refresh(enrollment)
        logger.info(f"报名状态更新: 培训 {training_id}, 用户 {user_id} -> {target.value}")
        return enrollment

    def list_enrolled_trainings(self, user_id: int) -> List[Dict[str, Any]]:
        """获取用户已报名的培训，最近报名的在前"""
        result = []
        for enrollment, training, trainer_name in self.enrollment_repo.get_user_enrollments(user_id):
            result.append({
                "id": training.id,
                "title": training.title,
                "description": training.description or "",
                "trainer_id": training.trainer_id,
                "trainer_name": trainer_name,
                "start_date": training.start_date,
                "end_date": training.end_date,
                "status": training.status,
                "enrollment_id": enrollment.id,
                "enrollment_status": enrollment.status,
                "enrolled_at": enrollment.enrolled_at,
            })
        return result
