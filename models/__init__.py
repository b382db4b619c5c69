from .auth import UserCreate, UserLogin, Token, TokenData, User, UserRecord
from .interview import (
    FeedbackData, AnalysisResult, SummaryData,
    Interview, Message, InterviewCreate, AnswerSubmit, CompleteRequest, AnswerResult,
    InterviewStats, ProviderKind
)
from .subject import Subject, SubjectCreate, SubjectAnalytics, StudyMaterial, StudyMaterialInfo
