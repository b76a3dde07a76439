from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from training_portal.models.user import User
from training_portal.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_by_email(self, email: str) -> Optional[User]:
        """根据邮箱获取用户（不区分大小写）"""
        return self.db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()
