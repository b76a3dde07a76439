from enum import Enum

from sqlalchemy import Column, String, Integer, ForeignKey, Date, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import pytz

from .base import BaseModel


class EnrollmentStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


# 参与考勤的报名状态
ROSTER_ENROLLMENT_STATUSES = (EnrollmentStatus.APPROVED.value, EnrollmentStatus.PENDING.value)


class AttendanceStatus(str, Enum):
    PRESENT = "Present"
    ABSENT = "Absent"


# 当天没有考勤记录时对外展示的状态
NOT_MARKED = "Not Marked"


"""
报名模型
同一用户对同一培训只能有一条报名记录。
"""
class Enrollment(BaseModel):
    __tablename__ = "training_enrollments"
    __table_args__ = (
        UniqueConstraint("training_id", "user_id", name="uq_enrollment_training_user"),
    )

    training_id = Column(Integer, ForeignKey("trainings.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=EnrollmentStatus.PENDING.value)
    enrolled_at = Column(DateTime(timezone=True), default=lambda: datetime.now(pytz.utc))

    training = relationship("Training", back_populates="enrollments")
    user = relationship("User")


"""
考勤模型
每个用户在每个培训的每一天最多一条记录，没有记录即"未签到"。
"""
class AttendanceRecord(BaseModel):
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("training_id", "user_id", "date", name="uq_attendance_training_user_date"),
    )

    training_id = Column(Integer, ForeignKey("trainings.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False)  # Present, Absent

    training = relationship("Training", back_populates="attendance_records")
    user = relationship("User")
