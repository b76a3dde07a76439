import pytest
from datetime import date, timedelta
from fastapi.testclient import TestClient

from training_portal.config.settings import settings
from training_portal.main import app
from training_portal.models.base import Base
from training_portal.models.training import Training
from training_portal.models.user import User, Role
from training_portal.utils.database import Database, get_db
from training_portal.utils.security import hash_password, create_access_token

# 测试时降低哈希强度
settings.BCRYPT_ROUNDS = 4


@pytest.fixture(scope="function")
def database():
    """内存数据库，每个测试独立建表"""
    database = Database("sqlite:///:memory:")
    database.init_db()
    yield database
    Base.metadata.drop_all(bind=database.engine)
    database.dispose()


@pytest.fixture(scope="function")
def db_session(database):
    """创建测试数据库会话"""
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session):
    """创建测试客户端"""
    def override_get_db():
        try:
            yield db_session
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """创建用户"""
    counter = {"n": 0}

    def _make_user(role=Role.EMPLOYEE, full_name=None, email=None, password="secret123"):
        counter["n"] += 1
        user = User(
            full_name=full_name or f"User {counter['n']}",
            email=email or f"user{counter['n']}@example.com",
            password_hash=hash_password(password),
            role=Role.normalize(role).value,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def auth_headers():
    """生成携带 Bearer 令牌的请求头"""
    def _auth_headers(user):
        token = create_access_token(user.id, user.role, user.full_name, user.email)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def make_training(db_session):
    """创建培训，默认今天开始、状态 Active"""
    def _make_training(trainer, title="Python Basics", status="Active", start=None, days=5):
        start = start or date.today()
        training = Training(
            title=title,
            description="",
            trainer_id=trainer.id,
            start_date=start,
            end_date=start + timedelta(days=days),
            status=status,
        )
        db_session.add(training)
        db_session.commit()
        db_session.refresh(training)
        return training

    return _make_training


@pytest.fixture
def trainer(make_user):
    return make_user(Role.TRAINER, full_name="Tina Trainer", email="trainer@example.com")


@pytest.fixture
def employee(make_user):
    return make_user(Role.EMPLOYEE, full_name="Eve Employee", email="eve@example.com")


@pytest.fixture
def miss_first_lookup(monkeypatch):
    """
    让仓储方法第一次调用返回 None，之后照常查询
    用于模拟检查通过后另一请求抢先写入的并发场景
    """
    def _miss_first_lookup(repo, method_name):
        original = getattr(repo, method_name)
        calls = {"n": 0}

        def lookup(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return original(*args, **kwargs)

        monkeypatch.setattr(repo, method_name, lookup)

    return _miss_first_lookup
