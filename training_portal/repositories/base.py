from typing import Optional, TypeVar, Generic
from sqlalchemy.orm import Session

T = TypeVar('T')


class BaseRepository(Generic[T]):
    """
    基础Repository类
    add/update/delete 只 flush 不提交，事务边界由服务层决定；
    create 是单条写入时 add + commit 的快捷方式
    """

    def __init__(self, db: Session, model_class: T):
        self.db = db
        self.model_class = model_class

    def get_by_id(self, id: int) -> Optional[T]:
        """根据ID获取记录"""
        return self.db.get(self.model_class, id)

    def create(self, **kwargs) -> T:
        """创建新记录并立即提交"""
        instance = self.add(**kwargs)
        self.db.commit()
        self.db.refresh(instance)
        return instance

    def add(self, **kwargs) -> T:
        """创建新记录（不提交）"""
        instance = self.model_class(**kwargs)
        self.db.add(instance)
        self.db.flush()
        return instance

    def update(self, instance: T, **changes) -> T:
        """修改已加载的记录（不提交）"""
        for key, value in changes.items():
            setattr(instance, key, value)
        self.db.flush()
        return instance

    def delete(self, instance: T) -> None:
        """删除已加载的记录（不提交）"""
        self.db.delete(instance)
        self.db.flush()
