"""
请求依赖：解析 Bearer 令牌得到当前用户，并按角色限制访问
"""

import logging
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy.orm import Session

from training_portal.models.user import Role
from training_portal.repositories.user_repository import UserRepository
from training_portal.utils.database import get_db
from training_portal.utils.exceptions import AuthenticationError, AuthorizationError
from training_portal.utils.security import decode_access_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: int
    role: Role
    full_name: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_staff(self) -> bool:
        return self.role in (Role.TRAINER, Role.ADMIN)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> CurrentUser:
    """
    校验访问令牌

    - 缺少令牌: 401
    - 令牌过期: 401 "Token has expired"
    - 签名错误或无法解码: 401 "Invalid token"
    - 能解码但声明缺失/格式错误: 403
    - 用户已删除或被停用: 401

    角色与姓名以数据库中的当前值为准
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")

    try:
        payload = decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"令牌校验失败: {e}")
        raise AuthenticationError("Invalid token")

    try:
        user_id = int(payload["sub"])
        Role.normalize(payload["role"])
    except (KeyError, TypeError, ValueError):
        logger.warning(f"令牌声明无效: {sorted(payload)}")
        raise AuthorizationError("Invalid token claims")

    user = UserRepository(db).get_by_id(user_id)
    if user is None or not user.is_active:
        logger.warning(f"令牌对应的用户 {user_id} 不存在或已停用")
        raise AuthenticationError("User not found or inactive")

    return CurrentUser(id=user.id, role=Role.normalize(user.role), full_name=user.full_name, email=user.email)


def require_roles(*roles: Role):
    """生成只允许指定角色访问的依赖"""
    allowed = frozenset(roles)

    def dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in allowed:
            logger.warning(f"用户 {current_user.id} ({current_user.role.value}) 无权访问")
            raise AuthorizationError("Access denied", required_roles=sorted(r.value for r in allowed))
        return current_user

    return dependency


require_staff = require_roles(Role.TRAINER, Role.ADMIN)
