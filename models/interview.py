import math

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime

ProviderKind = Literal["gemini", "ollama", "openai"]
InterviewStatus = Literal["in_progress", "completed"]
MessageRole = Literal["interviewer", "candidate"]


class FeedbackData(BaseModel):
    """Per-answer critique returned by the provider."""
    rating: int = Field(..., ge=0, le=10)
    explanation: str
    sample_answer: str
    common_mistakes: str

    @field_validator("rating", mode="before")
    @classmethod
    def clamp_rating(cls, value):
        return _clamp(value, 0, 10)

    @field_validator("explanation", "sample_answer", "common_mistakes", mode="before")
    @classmethod
    def join_lists(cls, value):
        # Models sometimes answer with a bullet list instead of a string
        if isinstance(value, list):
            return "\n".join(str(item) for item in value)
        return value


DEFAULT_NEXT_QUESTION = "Let's move on. Can you explain the architecture?"


class AnalysisResult(BaseModel):
    feedback: FeedbackData
    next_question: str = DEFAULT_NEXT_QUESTION

    @field_validator("next_question", mode="before")
    @classmethod
    def default_blank_question(cls, value):
        # Keep the rating even when the model forgets the follow-up
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_NEXT_QUESTION
        return value


class SummaryData(BaseModel):
    overall_score: int = Field(..., ge=0, le=100)
    strengths: List[str] = []
    weaknesses: List[str] = []
    revision_topics: List[str] = []
    project_improvements: List[str] = []
    response_count: Optional[int] = None

    @field_validator("overall_score", mode="before")
    @classmethod
    def clamp_score(cls, value):
        return _clamp(value, 0, 100)

    @field_validator("strengths", "weaknesses", "revision_topics", "project_improvements", mode="before")
    @classmethod
    def coerce_list(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [str(item) for item in value]


def _clamp(value, low, high):
    if isinstance(value, bool):
        raise ValueError("expected a number")
    if isinstance(value, str):
        value = float(value.strip())
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError("expected a finite number")
    if isinstance(value, (int, float)):
        return max(low, min(high, int(round(value))))
    return value


class Interview(BaseModel):
    id: int
    user_id: int
    subject_id: Optional[int] = None
    title: str
    description: str
    link: Optional[str] = None
    provider: ProviderKind = "gemini"
    status: InterviewStatus = "in_progress"
    overall_score: Optional[int] = None
    summary: Optional[SummaryData] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class Message(BaseModel):
    id: int
    interview_id: int
    role: MessageRole
    content: str
    feedback: Optional[FeedbackData] = None
    created_at: datetime


class InterviewCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    link: Optional[str] = None
    provider: ProviderKind = "gemini"
    subject_id: Optional[int] = Field(None, alias="subjectId")
    api_key: Optional[str] = Field(None, alias="apiKey")

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


class AnswerSubmit(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(..., min_length=1)
    api_key: Optional[str] = Field(None, alias="apiKey")


class CompleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: Optional[str] = Field(None, alias="apiKey")


class AnswerResult(BaseModel):
    message: Message
    response: Message
    feedback: FeedbackData


class InterviewStats(BaseModel):
    """One row in the exported stats sheet."""
    interview_id: int
    student_name: str
    student_email: str
    project_title: str
    start_time: str
    end_time: str
    duration_minutes: int
    overall_score: int
    response_count: int
    strengths: str
    weaknesses: str
    revision_topics: str

    def as_row(self) -> list:
        return [
            self.interview_id,
            self.student_name,
            self.student_email,
            self.project_title,
            self.start_time,
            self.end_time,
            self.duration_minutes,
            self.overall_score,
            self.response_count,
            self.strengths,
            self.weaknesses,
            self.revision_topics,
        ]
