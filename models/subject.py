from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from .interview import Interview


class Subject(BaseModel):
    id: int
    name: str
    icon: Optional[str] = None
    is_preset: bool = False
    created_at: Optional[datetime] = None


class SubjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    icon: Optional[str] = None


class SubjectAnalytics(BaseModel):
    subject: Subject
    interviews: List[Interview]
    completed_count: int
    average_score: Optional[float] = None


class StudyMaterial(BaseModel):
    id: int
    user_id: int
    subject_id: int
    file_name: str
    file_type: str
    content: Optional[str] = None
    created_at: Optional[datetime] = None


class StudyMaterialInfo(BaseModel):
    """Material listing without the extracted text."""
    id: int
    subject_id: int
    file_name: str
    file_type: str
    char_count: int
    created_at: Optional[datetime] = None
