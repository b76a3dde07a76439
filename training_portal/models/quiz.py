from sqlalchemy import (
    Column, String, Integer, ForeignKey, DateTime, Text, Boolean,
    UniqueConstraint, Index, text,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import pytz

from training_portal.engine.grading import QuestionType
from training_portal.engine.state_machine import AttemptState
from .base import BaseModel


"""
测验模型
属于某个培训,包括标题、描述、时限(分钟)和及格分(0-100)。
"""
class Quiz(BaseModel):
    __tablename__ = "quizzes"

    training_id = Column(Integer, ForeignKey("trainings.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, default="")
    time_limit = Column(Integer, nullable=False, default=30)
    passing_score = Column(Integer, nullable=False, default=70)

    training = relationship("Training", back_populates="quizzes")
    questions = relationship("QuizQuestion", back_populates="quiz", order_by="QuizQuestion.id",
                             cascade="all, delete-orphan", passive_deletes=True)
    attempts = relationship("QuizAttempt", back_populates="quiz",
                            cascade="all, delete-orphan", passive_deletes=True)


"""
测验题目模型
题型为 multiple-choice / true-false / short-answer；判断题的正确答案存放在 correct_answer。
"""
class QuizQuestion(BaseModel):
    __tablename__ = "quiz_questions"

    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    question = Column(Text, nullable=False)
    question_type = Column(String(20), nullable=False, default=QuestionType.MULTIPLE_CHOICE.value)
    points = Column(Integer, nullable=False, default=1)
    correct_answer = Column(Boolean, nullable=True)  # 仅判断题使用

    quiz = relationship("Quiz", back_populates="questions")
    options = relationship("QuizOption", back_populates="question", order_by="QuizOption.id",
                           cascade="all, delete-orphan", passive_deletes=True)


class QuizOption(BaseModel):
    __tablename__ = "quiz_options"

    question_id = Column(Integer, ForeignKey("quiz_questions.id", ondelete="CASCADE"), nullable=False, index=True)
    option_text = Column(String(500), nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)

    question = relationship("QuizQuestion", back_populates="options")


"""
作答模型
同一用户对同一测验同时最多只有一条 in_progress 的作答(部分唯一索引保证)。
score 在交卷前为空。
"""
class QuizAttempt(BaseModel):
    __tablename__ = "quiz_attempts"
    __table_args__ = (
        Index(
            "uq_quiz_attempt_in_progress",
            "quiz_id", "user_id",
            unique=True,
            sqlite_where=text("state = 'in_progress'"),
            postgresql_where=text("state = 'in_progress'"),
        ),
    )

    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    state = Column(String(20), nullable=False, default=AttemptState.IN_PROGRESS.value)
    start_time = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(pytz.utc))
    end_time = Column(DateTime(timezone=True), nullable=True)
    score = Column(Integer, nullable=True)

    quiz = relationship("Quiz", back_populates="attempts")
    responses = relationship("QuizResponse", back_populates="attempt",
                             cascade="all, delete-orphan", passive_deletes=True)


"""
作答明细模型
每次作答每道题只保留一条答案，重复提交覆盖原答案。
is_correct 为空表示简答题等待人工批阅。
"""
class QuizResponse(BaseModel):
    __tablename__ = "quiz_responses"
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_response_attempt_question"),
    )

    attempt_id = Column(Integer, ForeignKey("quiz_attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("quiz_questions.id", ondelete="CASCADE"), nullable=False, index=True)
    answer = Column(Text, nullable=False, default="")
    is_correct = Column(Boolean, nullable=True)

    attempt = relationship("QuizAttempt", back_populates="responses")
    question = relationship("QuizQuestion")
