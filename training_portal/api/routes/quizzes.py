import logging
from typing import List
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from training_portal.utils.database import get_db
from training_portal.utils.exceptions import TrainingPortalError, InternalError
from training_portal.services.quiz_service import QuizService
from training_portal.api.deps import CurrentUser, get_current_user, require_staff
from training_portal.api.schemas.quiz_schemas import (
    QuizCreate, QuizResponse, QuizDetailResponse, QuizListItem,
    QuestionCreate, QuestionResponse, AttemptResponse,
    ResponseSubmit, ResponseResult, CompletionResponse, AttemptResultItem,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/training/{training_id}", response_model=List[QuizListItem], response_model_exclude_none=True)
def list_quizzes(training_id: int, current_user: CurrentUser = Depends(get_current_user),
                 db: Session = Depends(get_db)):
    """
    获取培训下的测验，讲师/管理员可以看到正确答案
    """
    try:
        return QuizService(db).list_quizzes(training_id, include_answers=current_user.is_staff)
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"获取测验列表失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to fetch quizzes", e)


@router.post("/create", response_model=QuizResponse, status_code=status.HTTP_201_CREATED)
def create_quiz(data: QuizCreate, current_user: CurrentUser = Depends(require_staff),
                db: Session = Depends(get_db)):
    """
    创建测验（讲师/管理员）
    """
    try:
        return QuizService(db).create_quiz(
            training_id=data.training_id,
            title=data.title,
            description=data.description,
            time_limit=data.time_limit,
            passing_score=data.passing_score,
        )
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"创建测验失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to create quiz", e)


@router.post("/response", response_model=ResponseResult)
def submit_response(data: ResponseSubmit, current_user: CurrentUser = Depends(get_current_user),
                    db: Session = Depends(get_db)):
    """
    提交单题答案
    """
    try:
        return QuizService(db).submit_response(data.attempt_id, current_user.id, data.question_id, data.answer)
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"提交答案失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to submit response", e)


@router.post("/attempt/{attempt_id}/complete", response_model=CompletionResponse)
def complete_attempt(attempt_id: int, current_user: CurrentUser = Depends(get_current_user),
                     db: Session = Depends(get_db)):
    """
    交卷并评分
    """
    try:
        return QuizService(db).complete_attempt(attempt_id, current_user.id)
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"交卷失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to complete quiz", e)


@router.get("/{quiz_id}", response_model=QuizDetailResponse, response_model_exclude_none=True)
def get_quiz(quiz_id: int, current_user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    获取测验（答题视图）
    """
    try:
        return QuizService(db).get_quiz(quiz_id)
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"获取测验失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to fetch quiz", e)


@router.post("/{quiz_id}/questions", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
def add_question(quiz_id: int, data: QuestionCreate, current_user: CurrentUser = Depends(require_staff),
                 db: Session = Depends(get_db)):
    """
    添加题目（讲师/管理员）
    """
    try:
        return QuizService(db).add_question(
            quiz_id,
            question=data.question,
            question_type=data.type,
            points=data.points,
            options=[option.model_dump() for option in data.options],
            correct_answer=data.correct_answer,
        )
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"添加题目失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to add question", e)


@router.post("/{quiz_id}/start", response_model=AttemptResponse, status_code=status.HTTP_201_CREATED)
def start_attempt(quiz_id: int, response: Response, current_user: CurrentUser = Depends(get_current_user),
                  db: Session = Depends(get_db)):
    """
    开始作答，已有进行中的作答时返回该作答（200）
    """
    try:
        attempt, created = QuizService(db).start_attempt(quiz_id, current_user.id)
        if not created:
            response.status_code = status.HTTP_200_OK
        return attempt
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"开始测验失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to start quiz", e)


@router.get("/{quiz_id}/results", response_model=List[AttemptResultItem])
def get_results(quiz_id: int, current_user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    获取自己在该测验下的全部作答
    """
    try:
        return QuizService(db).get_results(quiz_id, current_user.id)
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"获取测验成绩失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to fetch results", e)
