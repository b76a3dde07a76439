from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import date as Date


class AttendanceMark(BaseModel):
    user_id: int
    present: bool
    date: Optional[Date] = None


class RosterEntry(BaseModel):
    user_id: int
    name: str
    email: str
    attendance_status: str
    enrollment_status: str
    date: Date


class AttendanceRecordResponse(BaseModel):
    id: int
    training_id: int
    user_id: int
    date: Date
    status: str

    model_config = ConfigDict(
        from_attributes=True
    )


class AttendanceSummaryEntry(BaseModel):
    date: Date
    total_enrolled: int
    present_count: int
    absent_count: int
