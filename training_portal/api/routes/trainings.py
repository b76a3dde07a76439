import logging
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from training_portal.utils.database import get_db
from training_portal.utils.exceptions import TrainingPortalError, InternalError
from training_portal.services.training_service import TrainingService
from training_portal.services.enrollment_service import EnrollmentService
from training_portal.api.deps import CurrentUser, get_current_user, require_staff
from training_portal.api.schemas.training_schemas import (
    TrainingCreate, TrainingUpdate, TrainingResponse, TrainingListItem,
    TrainingDetailResponse, EnrolledTrainingItem, EnrollmentResponse,
    EnrollmentStatusUpdate, MessageResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=List[TrainingListItem])
def list_trainings(current_user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    获取全部培训
    """
    try:
        return TrainingService(db).list_trainings()
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"获取培训列表失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to fetch trainings", e)


# 必须在 /{training_id} 之前注册
@router.get("/enrolled", response_model=List[EnrolledTrainingItem])
def list_enrolled_trainings(current_user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    获取当前用户已报名的培训
    """
    try:
        return EnrollmentService(db).list_enrolled_trainings(current_user.id)
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"获取已报名培训失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to fetch enrolled trainings", e)


@router.get("/{training_id}", response_model=TrainingDetailResponse)
def get_training(training_id: int, current_user: CurrentUser = Depends(get_current_user),
                 db: Session = Depends(get_db)):
    """
    获取培训详情
    """
    try:
        return TrainingService(db).get_training(training_id, current_user.id)
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"获取培训详情失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to fetch training", e)


@router.post("", response_model=TrainingResponse, status_code=status.HTTP_201_CREATED)
def create_training(data: TrainingCreate, current_user: CurrentUser = Depends(require_staff),
                    db: Session = Depends(get_db)):
    """
    创建培训（讲师/管理员）
    """
    try:
        training = TrainingService(db).create_training(data.model_dump())
        logger.info(f"用户 {current_user.id} 创建培训 {training.id}")
        return training
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"创建培训失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to create training", e)


@router.put("/{training_id}", response_model=TrainingResponse)
def update_training(training_id: int, data: TrainingUpdate, current_user: CurrentUser = Depends(require_staff),
                    db: Session = Depends(get_db)):
    """
    更新培训（讲师/管理员）
    """
    try:
        return TrainingService(db).update_training(training_id, data.model_dump(exclude_unset=True))
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"更新培训失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to update training", e)


@router.delete("/{training_id}", response_model=MessageResponse)
def delete_training(training_id: int, current_user: CurrentUser = Depends(require_staff),
                    db: Session = Depends(get_db)):
    """
    删除培训（讲师/管理员）
    """
    try:
        TrainingService(db).delete_training(training_id)
        return {"message": "Training deleted successfully"}
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"删除培训失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to delete training", e)


@router.post("/{training_id}/enroll", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
def enroll(training_id: int, current_user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    报名培训
    """
    try:
        return EnrollmentService(db).enroll(training_id, current_user.id)
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"报名培训失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to enroll in training", e)


@router.patch("/{training_id}/enrollments/{user_id}", response_model=EnrollmentResponse)
def update_enrollment_status(training_id: int, user_id: int, data: EnrollmentStatusUpdate,
                             current_user: CurrentUser = Depends(require_staff), db: Session = Depends(get_db)):
    """
    审批报名（讲师/管理员）
    """
    try:
        return EnrollmentService(db).update_enrollment_status(training_id, user_id, data.status)
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"更新报名状态失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to update enrollment", e)
