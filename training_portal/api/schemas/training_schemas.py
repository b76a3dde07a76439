from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import date, datetime


class TrainingBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    trainer_id: int
    start_date: date
    end_date: date
    capacity: Optional[int] = Field(None, ge=1)
    location: Optional[str] = None
    category: Optional[str] = None
    level: Optional[str] = None
    status: Optional[str] = None


class TrainingCreate(TrainingBase):
    pass


class TrainingUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    trainer_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    capacity: Optional[int] = Field(None, ge=1)
    location: Optional[str] = None
    category: Optional[str] = None
    level: Optional[str] = None
    status: Optional[str] = None


class TrainingResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = ""
    trainer_id: int
    trainer_name: Optional[str] = None
    start_date: date
    end_date: date
    capacity: int
    location: Optional[str] = ""
    category: str
    level: str
    status: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(
        from_attributes=True
    )


class TrainingListItem(TrainingResponse):
    enrolled_count: int = 0


class FeedbackStats(BaseModel):
    average_rating: Optional[float] = None
    count: int = 0


class TrainingDetailResponse(TrainingResponse):
    is_enrolled: bool
    enrollment_status: Optional[str] = None
    attendance_count: int = 0
    feedback_stats: FeedbackStats


class EmployeeTrainingItem(TrainingResponse):
    is_enrolled: bool
    enrollment_status: Optional[str] = None
    enrolled_at: Optional[datetime] = None


class EnrolledTrainingItem(BaseModel):
    id: int
    title: str
    description: Optional[str] = ""
    trainer_id: int
    trainer_name: Optional[str] = None
    start_date: date
    end_date: date
    status: str
    enrollment_id: int
    enrollment_status: str
    enrolled_at: datetime


class EnrollmentResponse(BaseModel):
    id: int
    training_id: int
    user_id: int
    status: str
    enrolled_at: datetime

    model_config = ConfigDict(
        from_attributes=True
    )


class EnrollmentStatusUpdate(BaseModel):
    status: str


class MessageResponse(BaseModel):
    message: str
