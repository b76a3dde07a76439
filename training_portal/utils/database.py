import logging
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from training_portal.config.settings import settings
from training_portal.utils.exceptions import TrainingPortalError

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# PostgreSQL unique_violation
_PG_UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: IntegrityError) -> bool:
    """
    判断完整性错误是否来自唯一约束
    外键、非空、检查约束等其他完整性错误返回 False
    """
    orig = getattr(error, "orig", None)
    if getattr(orig, "pgcode", None) == _PG_UNIQUE_VIOLATION:
        return True
    message = str(orig if orig is not None else error)
    return "UNIQUE constraint failed" in message or "Duplicate entry" in message


class Database:
    """
    数据库句柄
    持有引擎和会话工厂，由应用生命周期创建并在关闭时释放，
    通过依赖注入交给请求处理函数使用。
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        if url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in url or url == "sqlite://":
                kwargs["poolclass"] = StaticPool
            self.engine: Engine = create_engine(url, echo=echo, **kwargs)
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        else:
            self.engine = create_engine(
                url,
                echo=echo,
                pool_pre_ping=True,
                pool_recycle=3600,
            )
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        logger.info(f"数据库引擎已创建: {self.engine.url.render_as_string(hide_password=True)}")

    def session(self) -> Session:
        """直接获取数据库会话"""
        return self.SessionLocal()

    def init_db(self):
        """初始化数据库表"""
        try:
            from training_portal.models.base import Base
            from training_portal.models.user import User
            from training_portal.models.training import Training
            from training_portal.models.enrollment import Enrollment, AttendanceRecord
            from training_portal.models.quiz import Quiz, QuizQuestion, QuizOption, QuizAttempt, QuizResponse
            from training_portal.models.feedback import Feedback

            # 创建所有表
            Base.metadata.create_all(bind=self.engine)
            logger.info("数据库表初始化完成")
        except Exception as e:
            logger.error(f"数据库初始化失败: {e}")
            raise

    def check_connection(self) -> bool:
        """检查数据库连接是否正常"""
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"数据库连接检查失败: {e}")
            return False

    def dispose(self):
        self.engine.dispose()
        logger.info("数据库连接池已释放")


def create_database(url: Optional[str] = None) -> Database:
    return Database(url or settings.DATABASE_URL, echo=settings.DATABASE_ECHO)


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(request: Request) -> Iterator[Session]:
    """获取数据库会话（每个请求一个）"""
    db = get_database(request).session()
    try:
        yield db
    except TrainingPortalError:
        db.rollback()
        raise
    except Exception as e:
        logger.error(f"数据库会话错误: {e}")
        db.rollback()
        raise
    finally:
        db.close()
