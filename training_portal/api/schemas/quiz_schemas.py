from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Union
from datetime import datetime


class QuizCreate(BaseModel):
    # 缺失字段由服务层校验并返回 400
    training_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    time_limit: Optional[Union[int, str]] = None
    passing_score: Optional[Union[int, str]] = None


class OptionCreate(BaseModel):
    option_text: str = ""
    is_correct: bool = False


class QuestionCreate(BaseModel):
    question: Optional[str] = None
    type: Optional[str] = None
    points: Optional[Union[int, str]] = None
    options: List[OptionCreate] = Field(default_factory=list)
    correct_answer: Optional[bool] = None


class OptionResponse(BaseModel):
    id: Union[int, str]
    option_text: str
    is_correct: Optional[bool] = None


class QuestionResponse(BaseModel):
    id: int
    quiz_id: int
    question: str
    type: str
    points: int
    options: List[OptionResponse] = Field(default_factory=list)
    correct_answer: Optional[bool] = None


class QuizResponse(BaseModel):
    id: int
    training_id: int
    title: str
    description: Optional[str] = ""
    time_limit: int
    passing_score: int
    created_at: Optional[datetime] = None


class QuizDetailResponse(QuizResponse):
    questions: List[QuestionResponse] = Field(default_factory=list)


class QuizListItem(QuizDetailResponse):
    question_count: int = 0
    attempt_count: int = 0


class AttemptResponse(BaseModel):
    id: int
    quiz_id: int
    user_id: int
    state: str
    start_time: datetime
    end_time: Optional[datetime] = None
    score: Optional[int] = None

    model_config = ConfigDict(
        from_attributes=True
    )


class ResponseSubmit(BaseModel):
    attempt_id: int
    question_id: int
    answer: Union[bool, int, str]


class ResponseResult(BaseModel):
    id: int
    attempt_id: int
    question_id: int
    answer: str
    is_correct: Optional[bool] = None

    model_config = ConfigDict(
        from_attributes=True
    )


class CompletionResponse(BaseModel):
    attempt_id: int
    quiz_id: int
    score: int
    passing_score: int
    passed: bool
    correct_answers: int
    total_answered: int
    state: str
    end_time: Optional[datetime] = None
    message: str


class AttemptResultItem(AttemptResponse):
    quiz_title: str
    passing_score: int
    total_answered: int
    correct_answers: int
    passed: bool
