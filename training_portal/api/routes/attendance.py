import logging
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from training_portal.utils.database import get_db
from training_portal.utils.exceptions import TrainingPortalError, InternalError
from training_portal.services.attendance_service import AttendanceService
from training_portal.api.deps import CurrentUser, require_staff
from training_portal.api.schemas.attendance_schemas import (
    AttendanceMark, AttendanceRecordResponse, AttendanceSummaryEntry, RosterEntry
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{training_id}/attendance", response_model=List[RosterEntry])
def get_attendance_roster(training_id: int, on_date: Optional[date] = Query(None, alias="date"),
                          current_user: CurrentUser = Depends(require_staff), db: Session = Depends(get_db)):
    """
    获取签到名单，默认今天
    """
    try:
        return AttendanceService(db).get_attendance_roster(training_id, on_date)
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"获取签到名单失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to fetch attendance", e)


@router.post("/{training_id}/attendance", response_model=AttendanceRecordResponse)
def mark_attendance(training_id: int, data: AttendanceMark,
                    current_user: CurrentUser = Depends(require_staff), db: Session = Depends(get_db)):
    """
    标记学员出勤/缺勤
    """
    try:
        return AttendanceService(db).mark_attendance(training_id, data.user_id, data.present, data.date)
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"标记考勤失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to mark attendance", e)


@router.get("/{training_id}/attendance/summary", response_model=List[AttendanceSummaryEntry])
def get_attendance_summary(training_id: int, current_user: CurrentUser = Depends(require_staff),
                           db: Session = Depends(get_db)):
    """
    按日期汇总出勤
    """
    try:
        return AttendanceService(db).get_attendance_summary(training_id)
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"获取考勤汇总失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to fetch attendance summary", e)
