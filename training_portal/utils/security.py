import logging
from datetime import timedelta
from typing import Any, Dict

import bcrypt
import jwt

from training_portal.config.settings import settings
from training_portal.utils.helpers import utc_now

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """使用bcrypt生成密码哈希"""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """校验密码，哈希格式异常时视为不匹配"""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("密码哈希格式无效")
        return False


def create_access_token(user_id: int, role: str, full_name: str, email: str) -> str:
    """
    签发访问令牌

    载荷包含 sub(用户ID)、role、name、email 和过期时间 exp
    """
    now = utc_now()
    payload = {
        "sub": str(user_id),
        "role": role,
        "name": full_name,
        "email": email,
        "iat": now,
        "exp": now + timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    解码并校验令牌
    过期抛出 jwt.ExpiredSignatureError，其他无效情况抛出 jwt.InvalidTokenError
    """
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
