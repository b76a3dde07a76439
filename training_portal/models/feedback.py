from sqlalchemy import Column, Integer, ForeignKey, Text, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from .base import BaseModel


"""
培训反馈模型
每个用户对每个培训只保留一条反馈(评分1-5 + 评论)，再次提交即更新。
"""
class Feedback(BaseModel):
    __tablename__ = "feedback"
    __table_args__ = (
        UniqueConstraint("training_id", "user_id", name="uq_feedback_training_user"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_feedback_rating"),
    )

    training_id = Column(Integer, ForeignKey("trainings.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, default="")

    training = relationship("Training", back_populates="feedback")
    user = relationship("User")
