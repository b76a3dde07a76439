import logging
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from training_portal.utils.database import get_db
from training_portal.utils.exceptions import TrainingPortalError, InternalError
from training_portal.services.feedback_service import FeedbackService
from training_portal.api.deps import CurrentUser, get_current_user
from training_portal.api.schemas.feedback_schemas import (
    FeedbackSubmit, FeedbackSubmitResponse, FeedbackListResponse
)
from training_portal.api.schemas.training_schemas import MessageResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/{training_id}/feedback", response_model=FeedbackSubmitResponse,
             status_code=status.HTTP_201_CREATED)
def submit_feedback(training_id: int, data: FeedbackSubmit, response: Response,
                    current_user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    提交或更新反馈，首次提交返回201，更新返回200
    """
    try:
        feedback_service = FeedbackService(db)
        feedback, created = feedback_service.submit_or_update_feedback(
            training_id, current_user.id, data.rating, data.comment
        )
        if not created:
            response.status_code = status.HTTP_200_OK
        return {
            "message": "Feedback submitted successfully" if created else "Feedback updated successfully",
            "feedback": feedback_service.to_dict(feedback, current_user.full_name),
        }
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"提交反馈失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to submit feedback", e)


@router.get("/{training_id}/feedback", response_model=FeedbackListResponse)
def get_feedback(training_id: int, current_user: CurrentUser = Depends(get_current_user),
                 db: Session = Depends(get_db)):
    """
    获取培训反馈与统计
    """
    try:
        return FeedbackService(db).get_feedback(training_id, current_user.id)
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"获取反馈失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to fetch feedback", e)


@router.delete("/feedback/{feedback_id}", response_model=MessageResponse)
def delete_feedback(feedback_id: int, current_user: CurrentUser = Depends(get_current_user),
                    db: Session = Depends(get_db)):
    """
    删除自己的反馈
    """
    try:
        FeedbackService(db).delete_feedback(feedback_id, current_user.id)
        return {"message": "Feedback deleted successfully"}
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"删除反馈失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to delete feedback", e)
