from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class FeedbackSubmit(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class FeedbackItem(BaseModel):
    id: int
    training_id: int
    user_id: int
    user_name: Optional[str] = None
    rating: int
    comment: Optional[str] = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FeedbackSubmitResponse(BaseModel):
    message: str
    feedback: FeedbackItem


class FeedbackStatistics(BaseModel):
    total_feedback: int
    average_rating: float
    five_stars: int
    four_stars: int
    three_stars: int
    two_stars: int
    one_star: int


class FeedbackListResponse(BaseModel):
    stats: FeedbackStatistics
    feedback: List[FeedbackItem]
    user_feedback: Optional[FeedbackItem] = None
