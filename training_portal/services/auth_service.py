#!/usr/bin/env python3
"""
认证服务模块
处理用户注册、登录和令牌签发
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from training_portal.models.user import User, Role
from training_portal.repositories.user_repository import UserRepository
from training_portal.utils.database import is_unique_violation
from training_portal.utils.exceptions import AuthenticationError, ConflictError, ValidationError, NotFoundError
from training_portal.utils.security import hash_password, verify_password, create_access_token

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)

    def register(self, full_name: str, email: str, password: str,
                 role: Optional[str] = None) -> Dict[str, Any]:
        """
        用户注册
        - 邮箱已存在返回冲突
        - 角色缺省为 Employee
        """
        if not full_name or not full_name.strip():
            raise ValidationError("Full name is required")
        try:
            resolved_role = Role.normalize(role) if role else Role.EMPLOYEE
        except ValueError:
            raise ValidationError("Invalid role", allowed_roles=[r.value for r in Role])

        if self.user_repo.get_by_email(email):
            logger.warning(f"注册失败，邮箱已存在: {email}")
            raise ConflictError("Email already exists")

        try:
            user = self.user_repo.create(
                full_name=full_name.strip(),
                email=email.strip().lower(),
                password_hash=hash_password(password),
                role=resolved_role.value,
            )
        except IntegrityError as e:
            self.db.rollback()
            if not is_unique_violation(e):
                raise
            raise ConflictError("Email already exists")

        logger.info(f"新用户注册成功: {user.id} - {user.email} ({user.role})")
        return {
            "token": self.issue_token(user),
            "user_id": user.id,
            "role": user.role,
        }

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """用户登录，凭据错误统一返回401"""
        user = self.user_repo.get_by_email(email)
        if not user or not user.is_active or not verify_password(password, user.password_hash):
            logger.warning(f"登录失败: {email}")
            raise AuthenticationError("Invalid credentials")

        logger.info(f"用户登录成功: {user.id}")
        return {"token": self.issue_token(user), "user": user}

    def get_profile(self, user_id: int) -> User:
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def issue_token(user: User) -> str:
        return create_access_token(user.id, user.role, user.full_name, user.email)
