from enum import Enum
from typing import Dict, FrozenSet, Optional
from datetime import datetime, timedelta
import logging

logger = logging.getLogger(__name__)


class AttemptState(str, Enum):
    """测验作答状态枚举"""
    IN_PROGRESS = "in_progress"   # 作答中
    COMPLETED = "completed"       # 已交卷评分
    ABANDONED = "abandoned"       # 超时放弃


# 允许的状态转换，completed 和 abandoned 为终态
_TRANSITIONS: Dict[AttemptState, FrozenSet[AttemptState]] = {
    AttemptState.IN_PROGRESS: frozenset({AttemptState.COMPLETED, AttemptState.ABANDONED}),
    AttemptState.COMPLETED: frozenset(),
    AttemptState.ABANDONED: frozenset(),
}


class InvalidTransition(Exception):
    def __init__(self, current: AttemptState, target: AttemptState):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move attempt from {current.value} to {target.value}")


class AttemptStateMachine:
    """
    作答状态机，管理一次测验作答的状态转换

    in_progress --(complete)--> completed
    in_progress --(timeout/abandon)--> abandoned
    """

    def __init__(self, state, started_at: Optional[datetime] = None,
                 time_limit_minutes: Optional[int] = None, grace_seconds: int = 0):
        self.state = AttemptState(state)
        self.started_at = started_at
        self.time_limit_minutes = time_limit_minutes
        self.grace_seconds = grace_seconds

    def can_transition(self, target: AttemptState) -> bool:
        return target in _TRANSITIONS[self.state]

    def transition(self, target: AttemptState) -> AttemptState:
        """执行状态转换，非法转换抛出 InvalidTransition"""
        target = AttemptState(target)
        if not self.can_transition(target):
            raise InvalidTransition(self.state, target)
        logger.debug(f"作答状态转换: {self.state.value} -> {target.value}")
        self.state = target
        return self.state

    def is_open(self) -> bool:
        return self.state == AttemptState.IN_PROGRESS

    def deadline(self) -> Optional[datetime]:
        """作答截止时间（含宽限期），未设置时限时返回None"""
        if self.started_at is None or not self.time_limit_minutes:
            return None
        return self.started_at + timedelta(minutes=self.time_limit_minutes, seconds=self.grace_seconds)

    def is_expired(self, now: datetime) -> bool:
        deadline = self.deadline()
        return deadline is not None and now > deadline
