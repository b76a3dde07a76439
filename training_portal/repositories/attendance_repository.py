from datetime import date
from typing import List, Optional, Tuple
from sqlalchemy import func, distinct, case
from sqlalchemy.orm import Session

from training_portal.models.enrollment import (
    AttendanceRecord, AttendanceStatus, Enrollment, ROSTER_ENROLLMENT_STATUSES,
)
from training_portal.models.user import User
from training_portal.repositories.base import BaseRepository


class AttendanceRepository(BaseRepository[AttendanceRecord]):
    def __init__(self, db: Session):
        super().__init__(db, AttendanceRecord)

    def get_record(self, training_id: int, user_id: int, on_date: date) -> Optional[AttendanceRecord]:
        """获取某用户某天的考勤记录"""
        return self.db.query(AttendanceRecord).filter(
            AttendanceRecord.training_id == training_id,
            AttendanceRecord.user_id == user_id,
            AttendanceRecord.date == on_date
        ).first()

    def get_roster(self, training_id: int, on_date: date) -> List[Tuple]:
        """
        获取报名学员及其当天考勤
        返回 (user_id, full_name, email, attendance_status|None, enrollment_status)，按姓名升序
        """
        return self.db.query(
            User.id,
            User.full_name,
            User.email,
            AttendanceRecord.status,
            Enrollment.status,
        ).select_from(Enrollment).join(
            User, Enrollment.user_id == User.id
        ).outerjoin(
            AttendanceRecord,
            (AttendanceRecord.user_id == Enrollment.user_id)
            & (AttendanceRecord.training_id == Enrollment.training_id)
            & (AttendanceRecord.date == on_date)
        ).filter(
            Enrollment.training_id == training_id,
            Enrollment.status.in_(ROSTER_ENROLLMENT_STATUSES)
        ).order_by(User.full_name.asc(), User.id.asc()).all()

    def get_daily_counts(self, training_id: int) -> List[Tuple[date, int, int, int]]:
        """
        按日期统计考勤（仅统计有效报名学员），日期倒序
        返回 (日期, 当天有记录的报名人数, 出勤人数, 缺勤人数)
        """
        present_user = case((AttendanceRecord.status == AttendanceStatus.PRESENT.value, AttendanceRecord.user_id))
        absent_user = case((AttendanceRecord.status == AttendanceStatus.ABSENT.value, AttendanceRecord.user_id))
        return self.db.query(
            AttendanceRecord.date,
            func.count(distinct(Enrollment.user_id)),
            func.count(distinct(present_user)),
            func.count(distinct(absent_user)),
        ).select_from(Enrollment).outerjoin(
            AttendanceRecord,
            (AttendanceRecord.training_id == Enrollment.training_id)
            & (AttendanceRecord.user_id == Enrollment.user_id)
        ).filter(
            Enrollment.training_id == training_id,
            Enrollment.status.in_(ROSTER_ENROLLMENT_STATUSES),
            AttendanceRecord.date.isnot(None)
        ).group_by(AttendanceRecord.date).order_by(AttendanceRecord.date.desc()).all()
