from enum import Enum

from sqlalchemy import Column, String, Integer, ForeignKey, Date, Text
from sqlalchemy.orm import relationship
from .base import BaseModel


class TrainingStatus(str, Enum):
    ACTIVE = "Active"
    UPCOMING = "Upcoming"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    INACTIVE = "Inactive"


"""
培训模型
记录一次培训的基本信息,包括标题、讲师、起止日期、容量、地点、类别、级别和状态。
删除培训时级联删除报名、考勤、反馈和测验。
"""
class Training(BaseModel):
    __tablename__ = "trainings"

    title = Column(String(200), nullable=False)
    description = Column(Text, default="")
    trainer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    capacity = Column(Integer, default=20)
    location = Column(String(200), default="")
    category = Column(String(50), default="Technical")
    level = Column(String(50), default="Beginner")
    status = Column(String(20), nullable=False, default=TrainingStatus.ACTIVE.value)

    # 关系定义
    trainer = relationship("User")
    enrollments = relationship("Enrollment", back_populates="training",
                               cascade="all, delete-orphan", passive_deletes=True)
    attendance_records = relationship("AttendanceRecord", back_populates="training",
                                      cascade="all, delete-orphan", passive_deletes=True)
    feedback = relationship("Feedback", back_populates="training",
                            cascade="all, delete-orphan", passive_deletes=True)
    quizzes = relationship("Quiz", back_populates="training",
                           cascade="all, delete-orphan", passive_deletes=True)

    @property
    def is_active(self) -> bool:
        return self.status == TrainingStatus.ACTIVE.value
