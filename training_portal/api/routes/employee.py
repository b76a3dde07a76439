import logging
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from training_portal.utils.database import get_db
from training_portal.utils.exceptions import TrainingPortalError, InternalError
from training_portal.services.training_service import TrainingService
from training_portal.api.deps import CurrentUser, get_current_user
from training_portal.api.schemas.training_schemas import EmployeeTrainingItem

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/trainings", response_model=List[EmployeeTrainingItem])
def list_employee_trainings(current_user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    员工视角的培训列表：进行中/即将开始的培训以及自己报名过的培训
    """
    try:
        return TrainingService(db).list_employee_trainings(current_user.id)
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"获取员工培训列表失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to fetch trainings", e)
