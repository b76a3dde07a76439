import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from training_portal.models.enrollment import (
    AttendanceRecord, AttendanceStatus, NOT_MARKED, ROSTER_ENROLLMENT_STATUSES,
)
from training_portal.repositories.attendance_repository import AttendanceRepository
from training_portal.repositories.enrollment_repository import EnrollmentRepository
from training_portal.repositories.training_repository import TrainingRepository
from training_portal.utils.exceptions import InvalidStateError, NotFoundError
from training_portal.utils.database import is_unique_violation
from training_portal.utils.helpers import local_today

logger = logging.getLogger(__name__)


class AttendanceService:
    """考勤服务：签到名单、标记出勤和按日统计"""

    def __init__(self, db: Session):
        self.db = db
        self.training_repo = TrainingRepository(db)
        self.enrollment_repo = EnrollmentRepository(db)
        self.attendance_repo = AttendanceRepository(db)

    def get_attendance_roster(self, training_id: int, on_date: Optional[date] = None) -> List[Dict[str, Any]]:
        """
        获取某天的签到名单

        Args:
            training_id: 培训ID，培训必须存在且为 Active
            on_date: 日期，默认今天

        Returns:
            List[Dict]: 按姓名升序的学员考勤，没有记录的显示 "Not Marked"
        """
        training = self.training_repo.get_by_id(training_id)
        if not training or not training.is_active:
            raise NotFoundError("Training not found or not active")

        on_date = on_date or local_today()
        rows = self.attendance_repo.get_roster(training_id, on_date)
        logger.info(f"培训 {training_id} 在 {on_date} 的签到名单: {len(rows)} 人")

        return [
            {
                "user_id": user_id,
                "name": full_name,
                "email": email,
                "attendance_status": attendance_status or NOT_MARKED,
                "enrollment_status": enrollment_status,
                "date": on_date,
            }
            for user_id, full_name, email, attendance_status, enrollment_status in rows
        ]

    def mark_attendance(self, training_id: int, user_id: int, present: bool,
                        on_date: Optional[date] = None) -> AttendanceRecord:
        """
        标记出勤/缺勤
        同一天重复标记只更新状态，不会产生新记录
        """
        enrollment = self.enrollment_repo.get_enrollment_in_statuses(
            training_id, user_id, ROSTER_ENROLLMENT_STATUSES
        )
        if not enrollment:
            logger.warning(f"用户 {user_id} 未报名培训 {training_id}，无法标记考勤")
            raise InvalidStateError("Student is not enrolled in this training")

        on_date = on_date or local_today()
        status = AttendanceStatus.PRESENT.value if present else AttendanceStatus.ABSENT.value

        record = self.attendance_repo.get_record(training_id, user_id, on_date)
        if record:
            self.attendance_repo.update(record, status=status)
            self.db.commit()
        else:
            try:
                record = self.attendance_repo.add(
                    training_id=training_id, user_id=user_id, date=on_date, status=status
                )
                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                if not is_unique_violation(e):
                    raise
                # 并发插入时另一请求已写入，改为更新
                record = self.attendance_repo.get_record(training_id, user_id, on_date)
                self.attendance_repo.update(record, status=status)
                self.db.commit()

        self.db.refresh(record)
        logger.info(f"考勤已标记: 培训 {training_id}, 用户 {user_id}, {on_date} -> {status}")
        return record

    def get_attendance_summary(self, training_id: int) -> List[Dict[str, Any]]:
        """
        按日期汇总出勤，日期倒序
        total_enrolled 为当天有考勤记录的有效报名人数，没有任何记录的日期不出现
        """
        if not self.training_repo.get_by_id(training_id):
            raise NotFoundError("Training not found")

        return [
            {
                "date": record_date,
                "total_enrolled": int(total_enrolled or 0),
                "present_count": int(present_count or 0),
                "absent_count": int(absent_count or 0),
            }
            for record_date, total_enrolled, present_count, absent_count
            in self.attendance_repo.get_daily_counts(training_id)
        ]
