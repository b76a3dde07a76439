from enum import Enum

from sqlalchemy import Column, String, Boolean
from .base import BaseModel


class Role(str, Enum):
    """用户角色，唯一合法的角色取值"""
    EMPLOYEE = "Employee"
    TRAINER = "Trainer"
    ADMIN = "Admin"

    @classmethod
    def normalize(cls, value) -> "Role":
        """大小写不敏感地解析角色，无法识别时抛出 ValueError"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for role in cls:
                if role.value.lower() == value.strip().lower():
                    return role
        raise ValueError(f"Unknown role: {value!r}")


"""
用户模型
记录登录账号信息,包括姓名、邮箱、密码哈希和角色(Employee/Trainer/Admin)。
"""
class User(BaseModel):
    __tablename__ = "users"

    full_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=Role.EMPLOYEE.value)
    is_active = Column(Boolean, default=True)
