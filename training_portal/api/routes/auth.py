import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from training_portal.utils.database import get_db
from training_portal.utils.exceptions import TrainingPortalError, InternalError
from training_portal.services.auth_service import AuthService
from training_portal.api.deps import CurrentUser, get_current_user
from training_portal.api.schemas.auth_schemas import (
    RegisterRequest, RegisterResponse, LoginRequest, LoginResponse, UserResponse
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    """
    用户注册接口
    """
    try:
        auth_service = AuthService(db)
        result = auth_service.register(
            full_name=data.full_name,
            email=data.email,
            password=data.password,
            role=data.role,
        )
        return RegisterResponse(**result)
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"用户注册失败: {e}", exc_info=True)
        raise InternalError.from_exception("Registration failed", e)


@router.post("/login", response_model=LoginResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    """
    用户登录接口
    """
    try:
        auth_service = AuthService(db)
        result = auth_service.login(data.email, data.password)
        return LoginResponse(token=result["token"], user=UserResponse.model_validate(result["user"]))
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"用户登录失败: {e}", exc_info=True)
        raise InternalError.from_exception("Login failed", e)


@router.get("/profile", response_model=UserResponse)
def get_profile(current_user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    获取当前用户信息
    """
    try:
        return AuthService(db).get_profile(current_user.id)
    except TrainingPortalError:
        raise
    except Exception as e:
        logger.error(f"获取用户信息失败: {e}", exc_info=True)
        raise InternalError.from_exception("Failed to fetch profile", e)
